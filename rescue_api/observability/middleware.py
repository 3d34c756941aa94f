"""
Request observability for the incident API.

Instruments Flask with OpenTelemetry, tags request spans with the incident
being acted on, and writes one structured log line per request.
"""

import time
import logging
from flask import Flask, request, g
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

logger = logging.getLogger(__name__)

# Health checks poll this constantly; only failures get a log line
QUIET_PATHS = frozenset({'/api/healthz'})


def _incident_id() -> str:
    """Incident addressed by the request, from the path or the JSON body."""
    if request.view_args and request.view_args.get('incident_id'):
        return request.view_args['incident_id']
    body = request.get_json(silent=True)
    if isinstance(body, dict) and isinstance(body.get('incidentId'), str):
        return body['incidentId']
    return None


def add_observability_middleware(app: Flask):
    """Add OpenTelemetry instrumentation and request logging to Flask app."""
    FlaskInstrumentor().instrument_app(app)

    @app.before_request
    def start_request_timer():
        g.start_time = time.perf_counter()
        g.trace_id = None
        g.incident_id = _incident_id()

        span = trace.get_current_span()
        if span.is_recording():
            g.trace_id = format(span.get_span_context().trace_id, "032x")
            span.set_attribute("rescue.endpoint", request.endpoint or "")
            if g.incident_id:
                span.set_attribute("incident.id", g.incident_id)

    @app.after_request
    def log_request(response):
        duration_ms = round((time.perf_counter() - g.get('start_time', time.perf_counter())) * 1000, 2)

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("http.duration_ms", duration_ms)

        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id

        if request.path in QUIET_PATHS and response.status_code < 400:
            return response

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.path} -> {response.status_code}",
            extra={
                "extra_fields": {
                    "endpoint": request.endpoint,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                    "incident_id": g.get('incident_id'),
                    "trace_id": g.get('trace_id')
                }
            }
        )
        return response
