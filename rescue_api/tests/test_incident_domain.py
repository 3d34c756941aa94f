# SPDX-License-Identifier: Apache-2.0

"""
Tests for SOS validation, the radius policy and the transition table.
"""

import pytest
from datetime import datetime, timezone

from rescue_api.domain.incidents import (
    validate_sos_payload, validate_location, extract_sos_report, is_within_radius,
    build_incident, allowed_source_statuses, build_transition_patch,
    SOSReport, NON_TERMINAL_STATUSES
)
from rescue_api.models.entities import Coordinate
from rescue_api.models.enums import IncidentStatus, IncidentAction, CompassDirection


class TestSOSValidation:
    """Test SOS payload validation."""

    def setup_method(self):
        self.valid_payload = {
            "userId": "user-1",
            "location": {"lat": 12.97, "lng": 77.59},
            "type": "flood",
            "message": "Water rising fast"
        }

    def test_valid_payload(self):
        result = validate_sos_payload(self.valid_payload)

        assert result.is_valid
        assert result.errors == []

    def test_optional_fields_may_be_absent(self):
        payload = {"userId": "user-1", "location": {"lat": 0, "lng": 0}}

        assert validate_sos_payload(payload).is_valid

    @pytest.mark.parametrize("user_id", [None, "", "   ", 42])
    def test_missing_user_id(self, user_id):
        payload = dict(self.valid_payload, userId=user_id)

        result = validate_sos_payload(payload)

        assert not result.is_valid
        assert result.errors == ["missing userId"]

    @pytest.mark.parametrize("location", [
        None,
        "12.97,77.59",
        {"lat": 12.97},
        {"lat": "12.97", "lng": 77.59},
        {"lat": 12.97, "lng": None},
        {"lat": True, "lng": 77.59},
        {"lat": 91.0, "lng": 77.59},
        {"lat": 12.97, "lng": -180.5},
        {"lat": float("nan"), "lng": 77.59},
    ])
    def test_invalid_location(self, location):
        payload = dict(self.valid_payload, location=location)

        result = validate_sos_payload(payload)

        assert not result.is_valid
        assert result.errors == ["invalid location"]

    def test_missing_user_reported_before_location(self):
        result = validate_sos_payload({"location": "nowhere"})

        assert result.errors[0] == "missing userId"
        assert "invalid location" in result.errors

    def test_non_string_optional_fields(self):
        payload = dict(self.valid_payload, type=7, message=["help"])

        result = validate_sos_payload(payload)

        assert result.errors == ["invalid type", "invalid message"]

    def test_non_object_payload(self):
        for payload in (None, [], "help"):
            result = validate_sos_payload(payload)
            assert result.errors == ["missing userId"]

    def test_boundary_coordinates_are_valid(self):
        assert validate_location({"lat": 90, "lng": -180})
        assert validate_location({"lat": -90.0, "lng": 180.0})


class TestIntakeHelpers:
    """Test report extraction, radius policy and incident construction."""

    def test_extract_report(self):
        report = extract_sos_report({
            "userId": " user-1 ",
            "location": {"lat": 12, "lng": 77.5},
            "type": "fire"
        })

        assert report.user_id == " user-1 "
        assert report.location == Coordinate(lat=12.0, lng=77.5)
        assert report.type == "fire"
        assert report.message is None

    def test_radius_boundary_is_inside(self):
        assert is_within_radius(50.0, 50.0)
        assert is_within_radius(0.0, 50.0)
        assert not is_within_radius(50.000001, 50.0)

    def test_build_incident(self):
        created = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        report = SOSReport(user_id="user-1", location=Coordinate(lat=13.0, lng=77.6), message="help")

        incident = build_incident(report, 3.2, CompassDirection.S, created)

        assert incident.status == IncidentStatus.PENDING.value
        assert incident.rescuer_id is None
        assert incident.distance == 3.2
        assert incident.direction == "S"
        assert incident.created_at == created
        assert incident.updated_at == created
        assert not incident.is_stored()


class TestStatusTransitions:
    """Test lifecycle transition rules."""

    @pytest.mark.parametrize("action", list(IncidentAction))
    def test_every_action_allowed_from_non_terminal_statuses(self, action):
        assert allowed_source_statuses(action) == NON_TERMINAL_STATUSES

    @pytest.mark.parametrize("action", list(IncidentAction))
    @pytest.mark.parametrize("status", [IncidentStatus.REJECTED, IncidentStatus.RESOLVED])
    def test_terminal_statuses_refuse_every_action(self, status, action):
        assert status.is_terminal
        assert status not in allowed_source_statuses(action)

    def test_unknown_action(self):
        with pytest.raises(ValueError):
            allowed_source_statuses("escalate")


class TestTransitionPatch:
    """Test fields written by each action."""

    def setup_method(self):
        self.now = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("action,status", [
        (IncidentAction.ACCEPT, "accepted"),
        (IncidentAction.REJECT, "rejected"),
        (IncidentAction.RESOLVE, "resolved"),
    ])
    def test_plain_actions_touch_status_only(self, action, status):
        patch = build_transition_patch(action, now=self.now)

        assert patch == {"status": status, "updated_at": self.now}

    def test_assign_rescuer_records_rescuer(self):
        patch = build_transition_patch(IncidentAction.ASSIGN_RESCUER, " rescuer-9 ", self.now)

        assert patch == {"status": "broadcasted", "rescuer_id": "rescuer-9", "updated_at": self.now}

    @pytest.mark.parametrize("rescuer_id", [None, "", "  "])
    def test_assign_rescuer_requires_rescuer(self, rescuer_id):
        with pytest.raises(ValueError):
            build_transition_patch(IncidentAction.ASSIGN_RESCUER, rescuer_id, self.now)
