# SPDX-License-Identifier: Apache-2.0

"""
Rescue workflow transitions and incident listings.

Every transition goes through the same table in ``domain.incidents``: the
action is applied only while the incident is non-terminal, and the status
check happens inside the store's atomic update.
"""

import logging
from typing import Callable, List, Optional
from datetime import datetime

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..domain import incidents as incident_domain
from ..models.base import utc_now
from ..models.entities import Incident
from ..models.enums import IncidentAction, IncidentStatus
from .errors import IncidentNotFoundError, InvalidTransitionError, StatusConflictError, ValidationError
from .store import IncidentStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class LifecycleService:
    """Applies rescuer actions to stored incidents."""

    def __init__(self, store: IncidentStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self._clock = clock

    # Transitions

    def assign_rescuer(self, incident_id: str, rescuer_id: str) -> Incident:
        """Rescuer takes the incident: status becomes broadcasted."""
        if not isinstance(rescuer_id, str) or not rescuer_id.strip():
            raise ValidationError("missing rescuerId")
        return self._transition(incident_id, IncidentAction.ASSIGN_RESCUER, rescuer_id=rescuer_id)

    def accept(self, incident_id: str) -> Incident:
        return self._transition(incident_id, IncidentAction.ACCEPT)

    def reject(self, incident_id: str) -> Incident:
        return self._transition(incident_id, IncidentAction.REJECT)

    def resolve(self, incident_id: str) -> Incident:
        return self._transition(incident_id, IncidentAction.RESOLVE)

    def _transition(self, incident_id: str, action: IncidentAction,
                    rescuer_id: Optional[str] = None) -> Incident:
        """
        Apply one lifecycle action.

        Raises:
            ValidationError: If the incident id is empty
            IncidentNotFoundError: If the incident does not exist
            InvalidTransitionError: If the incident is in a terminal status
        """
        if not isinstance(incident_id, str) or not incident_id.strip():
            raise ValidationError("missing incidentId")

        with tracer.start_as_current_span(
            f"incident.{action.value}",
            attributes={"incident.id": incident_id, "operation": action.value}
        ) as span:
            patch = incident_domain.build_transition_patch(action, rescuer_id, self._clock())

            try:
                updated = self.store.update(
                    incident_id,
                    patch,
                    allowed_statuses=incident_domain.allowed_source_statuses(action)
                )
            except IncidentNotFoundError:
                span.set_status(Status(StatusCode.ERROR, "Incident not found"))
                logger.warning(
                    "Transition on unknown incident",
                    extra={"extra_fields": {"incident_id": incident_id, "action": action.value}}
                )
                raise
            except StatusConflictError as e:
                span.set_status(Status(StatusCode.ERROR, "Invalid transition"))
                logger.warning(
                    f"Cannot {action.value} incident in terminal status '{e.current_status}'",
                    extra={
                        "extra_fields": {
                            "incident_id": incident_id,
                            "action": action.value,
                            "current_status": e.current_status
                        }
                    }
                )
                raise InvalidTransitionError(incident_id, e.current_status, action.value) from e

            span.set_attribute("incident.status", updated.status)
            logger.info(
                "Incident transitioned",
                extra={
                    "extra_fields": {
                        "incident_id": incident_id,
                        "action": action.value,
                        "status": updated.status,
                        "rescuer_id": updated.rescuer_id
                    }
                }
            )
            return updated

    # Reads

    def get_incident(self, incident_id: str) -> Incident:
        incident = self.store.find_by_id(incident_id)
        if incident is None:
            raise IncidentNotFoundError(incident_id)
        return incident

    def list_pending(self) -> List[Incident]:
        """Pending incidents, longest waiting first."""
        return self.store.find_all(
            filters={"status": IncidentStatus.PENDING.value},
            sort_by="created_at",
            descending=False
        )

    def list_all(self) -> List[Incident]:
        """All incidents, newest first."""
        return self.store.find_all(sort_by="created_at", descending=True)

    def list_by_user(self, user_id: str) -> List[Incident]:
        """Incidents reported by one user, newest first."""
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("missing userId")
        return self.store.find_all(
            filters={"user_id": user_id},
            sort_by="created_at",
            descending=True
        )
