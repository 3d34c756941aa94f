# SPDX-License-Identifier: Apache-2.0

"""
Incident domain logic for SOS intake and the rescue workflow.

This module contains pure functions for SOS payload validation, the rescue
radius policy, incident construction and the lifecycle transition table.
"""

import math
from typing import List, Dict, Any, Optional, Tuple, Union
from dataclasses import dataclass, field
from datetime import datetime

from ..models.base import utc_now
from ..models.entities import Coordinate, Incident
from ..models.enums import IncidentStatus, IncidentAction, CompassDirection


DEFAULT_RADIUS_KM = 50.0

OUTSIDE_RADIUS_REASON = "outside rescue radius"

# Fields a lifecycle operation may write; everything else is fixed at creation
MUTABLE_FIELDS = frozenset({"status", "rescuer_id", "updated_at"})

NON_TERMINAL_STATUSES: Tuple[IncidentStatus, ...] = (
    IncidentStatus.PENDING,
    IncidentStatus.BROADCASTED,
    IncidentStatus.ACCEPTED,
)

# Every action is allowed from any non-terminal status
TRANSITIONS: Dict[IncidentAction, IncidentStatus] = {
    IncidentAction.ASSIGN_RESCUER: IncidentStatus.BROADCASTED,
    IncidentAction.ACCEPT: IncidentStatus.ACCEPTED,
    IncidentAction.REJECT: IncidentStatus.REJECTED,
    IncidentAction.RESOLVE: IncidentStatus.RESOLVED,
}


@dataclass
class ValidationResult:
    """Result of payload validation."""
    is_valid: bool
    errors: List[str]


@dataclass(frozen=True)
class SOSReport:
    """Validated SOS submission."""
    user_id: str
    location: Coordinate
    type: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class SubmissionAccepted:
    """SOS inside the radius; the incident has been stored."""
    incident: Incident
    distance_km: float
    direction: CompassDirection
    accepted: bool = field(default=True, init=False)


@dataclass(frozen=True)
class SubmissionRejected:
    """SOS outside the radius; nothing was stored or broadcast."""
    reason: str
    distance_km: float
    accepted: bool = field(default=False, init=False)


SubmissionOutcome = Union[SubmissionAccepted, SubmissionRejected]


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a coordinate
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_location(location: Any) -> bool:
    """
    Check that a raw location has numeric, in-range ``lat`` and ``lng``.

    Args:
        location: Raw location value from the payload

    Returns:
        True if the location can be turned into a Coordinate
    """
    if not isinstance(location, dict):
        return False

    lat = location.get('lat')
    lng = location.get('lng')
    if not _is_number(lat) or not _is_number(lng):
        return False

    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def validate_sos_payload(payload: Any) -> ValidationResult:
    """
    Validate incoming SOS payload structure.

    Checks run in order and the first failure is the one reported to the
    caller, so a report missing both reporter and location is reported as
    a missing reporter.

    Args:
        payload: Raw SOS payload

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []

    if not isinstance(payload, dict):
        return ValidationResult(is_valid=False, errors=["missing userId"])

    user_id = payload.get('userId')
    if not isinstance(user_id, str) or not user_id.strip():
        errors.append("missing userId")

    if not validate_location(payload.get('location')):
        errors.append("invalid location")

    for optional_field in ('type', 'message'):
        value = payload.get(optional_field)
        if value is not None and not isinstance(value, str):
            errors.append(f"invalid {optional_field}")

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors
    )


def extract_sos_report(payload: Dict[str, Any]) -> SOSReport:
    """
    Build an SOSReport from a payload that passed validation.

    Args:
        payload: Validated SOS payload

    Returns:
        SOSReport with optional fields passed through verbatim
    """
    location = payload['location']
    return SOSReport(
        user_id=payload['userId'],
        location=Coordinate(lat=float(location['lat']), lng=float(location['lng'])),
        type=payload.get('type'),
        message=payload.get('message')
    )


def is_within_radius(distance_km: float, radius_km: float) -> bool:
    """Radius policy; the boundary itself is serviceable."""
    return distance_km <= radius_km


def build_incident(
    report: SOSReport,
    distance_km: float,
    direction: CompassDirection,
    created_at: Optional[datetime] = None
) -> Incident:
    """
    Create the pending incident for an accepted report.

    Args:
        report: Validated SOS report
        distance_km: Distance to the rescue center
        direction: Compass direction toward the rescue center
        created_at: Creation timestamp, defaults to now

    Returns:
        Unsaved Incident with status pending
    """
    created_at = created_at or utc_now()
    return Incident(
        user_id=report.user_id,
        type=report.type,
        message=report.message,
        location=report.location,
        distance=distance_km,
        direction=direction,
        status=IncidentStatus.PENDING,
        created_at=created_at,
        updated_at=created_at
    )


def allowed_source_statuses(action: IncidentAction) -> Tuple[IncidentStatus, ...]:
    """Statuses from which ``action`` may be applied."""
    if action not in TRANSITIONS:
        raise ValueError(f"Unknown incident action: {action}")
    return NON_TERMINAL_STATUSES


def build_transition_patch(
    action: IncidentAction,
    rescuer_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Fields written by a lifecycle action.

    Only rescuer assignment touches ``rescuer_id``; plain acceptance leaves
    any earlier assignment in place.

    Args:
        action: Lifecycle action
        rescuer_id: Rescuer for assignment
        now: Update timestamp, defaults to now

    Returns:
        Patch dictionary keyed by incident field name
    """
    patch: Dict[str, Any] = {
        "status": TRANSITIONS[action].value,
        "updated_at": now or utc_now(),
    }

    if action == IncidentAction.ASSIGN_RESCUER:
        if not rescuer_id or not rescuer_id.strip():
            raise ValueError("rescuer_id is required to assign a rescuer")
        patch["rescuer_id"] = rescuer_id.strip()

    return patch
