"""
SOS Rescue API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support, wires the
incident store, broadcaster and workflow services, and registers the routes.
"""

import atexit
import logging
from datetime import datetime, timezone
from typing import Optional

from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from . import __version__
from .config import RescueSettings
from .middleware.error_handler import ErrorHandlerMiddleware
from .observability.config import setup_observability, SERVICE_NAME
from .observability.middleware import add_observability_middleware
from .routes.incidents import incidents_bp
from .services.amqp import AMQPService
from .services.intake import IntakeService
from .services.lifecycle import LifecycleService
from .services.mongodb import MongoIncidentStore
from .services.publisher import BackgroundPublisher, Publisher
from .services.store import IncidentStore, InMemoryIncidentStore

logger = logging.getLogger(__name__)

info = Info(
    title="SOS Rescue API",
    version=__version__,
    description="SOS intake within the rescue radius and rescuer incident workflow"
)

health_tag = Tag(name="Health", description="System health and status")


def build_store(settings: RescueSettings) -> IncidentStore:
    """Incident store for the configured backend."""
    if settings.store_backend == "memory":
        logger.warning("Using in-memory incident store; incidents are lost on restart")
        return InMemoryIncidentStore()
    return MongoIncidentStore(settings.mongodb_uri, settings.mongodb_database)


def create_app(
    settings: Optional[RescueSettings] = None,
    store: Optional[IncidentStore] = None,
    publisher: Optional[Publisher] = None
) -> OpenAPI:
    """
    Application factory.

    Args:
        settings: Configuration, read from the environment when omitted
        store: Incident store override
        publisher: Broadcast publisher override

    Returns:
        Configured Flask application
    """
    settings = settings or RescueSettings.from_env()
    setup_observability(settings.environment, settings.otel_enabled)

    app = OpenAPI(__name__, info=info)
    app.config['ENVIRONMENT'] = settings.environment
    app.config['DEBUG'] = settings.debug
    app.config['RESCUE_SETTINGS'] = settings

    add_observability_middleware(app)
    ErrorHandlerMiddleware(app)

    if store is None:
        store = build_store(settings)
    amqp_service = None
    if publisher is None:
        amqp_service = AMQPService(settings.amqp)
        # Each publish declares again, so an unreachable broker here is not fatal
        amqp_service.setup_exchange()
        background = BackgroundPublisher(amqp_service)
        background.start()
        atexit.register(background.stop)
        publisher = background

    # Make services available to routes
    app.incident_store = store
    app.amqp_service = amqp_service
    app.publisher = publisher
    app.intake_service = IntakeService(
        store,
        publisher,
        rescue_center=settings.rescue_center,
        radius_km=settings.radius_km
    )
    app.lifecycle_service = LifecycleService(store)

    app.register_api(incidents_bp)

    @app.get('/api/healthz', tags=[health_tag])
    def health_check():
        """Dependency health of the incident store and broker."""
        store_health = app.incident_store.health_check()
        dependencies = {"store": store_health}
        healthy = store_health.get("status") == "healthy"

        if app.amqp_service is not None:
            broker_ok = app.amqp_service.health_check()
            dependencies["amqp"] = {"status": "healthy" if broker_ok else "unhealthy"}
            healthy = healthy and broker_ok

        body = {
            "status": "healthy" if healthy else "unhealthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "rescue_center": settings.rescue_center.model_dump(),
            "radius_km": settings.radius_km,
            "dependencies": dependencies
        }
        return jsonify(body), 200 if healthy else 503

    logger.info(
        "SOS rescue API configured",
        extra={
            "extra_fields": {
                "environment": settings.environment,
                "store_backend": type(store).__name__,
                "radius_km": settings.radius_km
            }
        }
    )
    return app


if __name__ == '__main__':
    # Development server
    dev_settings = RescueSettings.from_env()
    create_app(dev_settings).run(
        host='0.0.0.0',
        port=dev_settings.port,
        debug=dev_settings.debug
    )
