# SPDX-License-Identifier: Apache-2.0

"""
Fire-and-forget hand-off of accepted incidents to the broadcaster.

``broadcast`` only enqueues; a daemon worker thread drains the queue and
calls the broadcaster, which owns its own retry policy. Nothing raised by
the worker ever reaches the intake caller.
"""

import logging
import queue
import threading
from typing import Optional, Protocol

from opentelemetry import trace

from ..models.entities import Incident
from .amqp import PublishResult

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

_STOP = object()


class Publisher(Protocol):
    """Anything the intake service can hand an accepted incident to."""

    def broadcast(self, incident: Incident) -> None:
        ...


class IncidentBroadcaster(Protocol):
    """Synchronous delivery of one incident, e.g. ``AMQPService``."""

    def publish_incident(self, incident: Incident) -> PublishResult:
        ...


class BackgroundPublisher:
    """Queue-backed publisher with a single delivery worker."""

    def __init__(self, broadcaster: IncidentBroadcaster, max_queue_size: int = 1000):
        self.broadcaster = broadcaster
        self._queue: "queue.Queue" = queue.Queue(maxsize=max_queue_size)
        self._worker: Optional[threading.Thread] = None
        self._stop_requested = False
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        """Start the delivery worker if it is not already running."""
        with self._lock:
            if self.is_running:
                return
            self._stop_requested = False
            self._worker = threading.Thread(
                target=self._run, name="incident-publisher", daemon=True
            )
            self._worker.start()
            logger.info("Incident publisher worker started")

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        """Deliver everything already queued, then stop the worker."""
        with self._lock:
            worker = self._worker
            if worker is None:
                return
            # One sentinel per worker; a timed-out stop must not leave a second one queued
            if not self._stop_requested:
                self._queue.put(_STOP)
                self._stop_requested = True
            worker.join(timeout)
            if worker.is_alive():
                logger.warning(
                    "Incident publisher worker still delivering after stop timeout",
                    extra={"extra_fields": {"timeout": timeout, "pending": self._queue.qsize()}}
                )
                return
            self._worker = None
            self._stop_requested = False
        logger.info("Incident publisher worker stopped")

    def broadcast(self, incident: Incident) -> None:
        """Queue an incident for delivery and return immediately."""
        if not self.is_running:
            self.start()

        try:
            self._queue.put_nowait(incident)
        except queue.Full:
            logger.error(
                "Incident publish queue full, broadcast dropped",
                extra={"extra_fields": {"incident_id": incident.id, "queue_size": self._queue.qsize()}}
            )

    def flush(self) -> None:
        """Block until every queued incident has been handled."""
        self._queue.join()

    def pending(self) -> int:
        """Number of incidents waiting for delivery."""
        return self._queue.qsize()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._deliver(item)
            finally:
                self._queue.task_done()

    def _deliver(self, incident: Incident) -> None:
        with tracer.start_as_current_span("publisher.deliver") as span:
            span.set_attribute("incident.id", incident.id or "")
            try:
                result = self.broadcaster.publish_incident(incident)
            except Exception as e:
                span.record_exception(e)
                logger.error(
                    "Incident broadcast raised",
                    extra={"extra_fields": {"incident_id": incident.id, "error": str(e)}},
                    exc_info=True
                )
                return

            if not result.success:
                logger.error(
                    "Incident broadcast undelivered",
                    extra={
                        "extra_fields": {
                            "incident_id": incident.id,
                            "correlation_id": result.correlation_id,
                            "error": result.error
                        }
                    }
                )
