# SPDX-License-Identifier: Apache-2.0

"""
SOS intake: validation, radius policy, persistence and broadcast hand-off.
"""

import logging
from typing import Any, Callable, Dict
from datetime import datetime

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..domain import geo
from ..domain import incidents as incident_domain
from ..domain.incidents import SubmissionAccepted, SubmissionRejected, SubmissionOutcome
from ..models.base import utc_now
from ..models.entities import Coordinate
from .errors import ValidationError
from .publisher import Publisher
from .store import IncidentStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class IntakeService:
    """Turns SOS reports into pending incidents."""

    def __init__(
        self,
        store: IncidentStore,
        publisher: Publisher,
        rescue_center: Coordinate,
        radius_km: float = incident_domain.DEFAULT_RADIUS_KM,
        clock: Callable[[], datetime] = utc_now
    ):
        if radius_km < 0:
            raise ValueError("radius_km must be non-negative")
        self.store = store
        self.publisher = publisher
        self.rescue_center = rescue_center
        self.radius_km = radius_km
        self._clock = clock

    def submit(self, report: Dict[str, Any]) -> SubmissionOutcome:
        """
        Process an incoming SOS report.

        Args:
            report: Raw payload with ``userId``, ``location`` and optional
                ``type`` and ``message``

        Returns:
            SubmissionAccepted with the stored incident, or
            SubmissionRejected when the reporter is outside the radius

        Raises:
            ValidationError: If the payload is malformed; nothing is stored
            StoreError: If the incident could not be persisted
        """
        with tracer.start_as_current_span("intake.submit") as span:
            validation = incident_domain.validate_sos_payload(report)
            if not validation.is_valid:
                span.set_status(Status(StatusCode.ERROR, "Validation failed"))
                logger.warning(
                    "SOS payload validation failed",
                    extra={"extra_fields": {"validation_errors": validation.errors}}
                )
                raise ValidationError(validation.errors[0], validation.errors)

            sos = incident_domain.extract_sos_report(report)
            distance = geo.distance_km(sos.location, self.rescue_center)
            span.set_attributes({
                "sos.user_id": sos.user_id,
                "sos.distance_km": round(distance, 3),
                "sos.radius_km": self.radius_km
            })

            if not incident_domain.is_within_radius(distance, self.radius_km):
                logger.info(
                    "SOS rejected outside rescue radius",
                    extra={
                        "extra_fields": {
                            "user_id": sos.user_id,
                            "distance_km": round(distance, 2),
                            "radius_km": self.radius_km
                        }
                    }
                )
                span.set_attribute("sos.outcome", "rejected")
                return SubmissionRejected(
                    reason=incident_domain.OUTSIDE_RADIUS_REASON,
                    distance_km=distance
                )

            bearing = geo.bearing_degrees(sos.location, self.rescue_center)
            direction = geo.direction_label(bearing)
            incident = incident_domain.build_incident(sos, distance, direction, self._clock())

            stored = self.store.create(incident)

            self._hand_off(stored)

            span.set_attributes({"sos.outcome": "accepted", "incident.id": stored.id})
            logger.info(
                "SOS accepted",
                extra={
                    "extra_fields": {
                        "incident_id": stored.id,
                        "user_id": stored.user_id,
                        "distance_km": round(distance, 2),
                        "direction": stored.direction
                    }
                }
            )
            return SubmissionAccepted(incident=stored, distance_km=distance, direction=direction)

    def _hand_off(self, incident) -> None:
        # The caller's outcome never depends on the broadcast
        try:
            self.publisher.broadcast(incident)
        except Exception as e:
            logger.error(
                "Incident broadcast hand-off failed",
                extra={"extra_fields": {"incident_id": incident.id, "error": str(e)}},
                exc_info=True
            )
