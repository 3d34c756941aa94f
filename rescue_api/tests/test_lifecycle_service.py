# SPDX-License-Identifier: Apache-2.0

"""
Tests for rescuer workflow transitions and incident listings.
"""

import pytest
from unittest.mock import MagicMock

from rescue_api.domain.incidents import build_incident, SOSReport
from rescue_api.models.entities import Coordinate
from rescue_api.models.enums import CompassDirection, IncidentStatus
from rescue_api.services.errors import (
    ValidationError, IncidentNotFoundError, InvalidTransitionError, StoreError
)
from rescue_api.services.lifecycle import LifecycleService
from rescue_api.services.store import InMemoryIncidentStore
from rescue_api.tests.helpers import StepClock


class TestLifecycleTransitions:
    """Test lifecycle actions against the in-memory store."""

    def setup_method(self):
        self.store = InMemoryIncidentStore()
        self.clock = StepClock()
        self.service = LifecycleService(self.store, clock=self.clock)
        self.incident = self._create("user-1")

    def _create(self, user_id):
        report = SOSReport(user_id=user_id, location=Coordinate(lat=13.0, lng=77.6))
        return self.store.create(build_incident(report, 3.5, CompassDirection.S, self.clock()))

    def test_assign_rescuer(self):
        updated = self.service.assign_rescuer(self.incident.id, "rescuer-1")

        assert updated.status == IncidentStatus.BROADCASTED.value
        assert updated.rescuer_id == "rescuer-1"
        assert updated.updated_at > self.incident.updated_at
        assert self.store.find_by_id(self.incident.id) == updated

    def test_accept_keeps_assigned_rescuer(self):
        self.service.assign_rescuer(self.incident.id, "rescuer-1")

        updated = self.service.accept(self.incident.id)

        assert updated.status == IncidentStatus.ACCEPTED.value
        assert updated.rescuer_id == "rescuer-1"

    def test_accept_from_pending(self):
        updated = self.service.accept(self.incident.id)

        assert updated.status == IncidentStatus.ACCEPTED.value
        assert updated.rescuer_id is None

    def test_reject(self):
        updated = self.service.reject(self.incident.id)

        assert updated.status == IncidentStatus.REJECTED.value
        assert updated.is_terminal()

    def test_resolve_from_accepted(self):
        self.service.accept(self.incident.id)

        updated = self.service.resolve(self.incident.id)

        assert updated.status == IncidentStatus.RESOLVED.value

    def test_resolve_directly_from_pending(self):
        assert self.service.resolve(self.incident.id).status == IncidentStatus.RESOLVED.value

    def test_creation_fields_are_unchanged(self):
        updated = self.service.assign_rescuer(self.incident.id, "rescuer-1")

        assert updated.user_id == self.incident.user_id
        assert updated.location == self.incident.location
        assert updated.distance == self.incident.distance
        assert updated.direction == self.incident.direction
        assert updated.created_at == self.incident.created_at

    @pytest.mark.parametrize("terminal_action", ["reject", "resolve"])
    def test_terminal_incident_refuses_every_action(self, terminal_action):
        getattr(self.service, terminal_action)(self.incident.id)
        before = self.store.find_by_id(self.incident.id)

        for action in (
            lambda: self.service.assign_rescuer(self.incident.id, "rescuer-2"),
            lambda: self.service.accept(self.incident.id),
            lambda: self.service.reject(self.incident.id),
            lambda: self.service.resolve(self.incident.id),
        ):
            with pytest.raises(InvalidTransitionError) as exc_info:
                action()
            assert exc_info.value.status_code == 409

        assert self.store.find_by_id(self.incident.id) == before

    def test_unknown_incident(self):
        with pytest.raises(IncidentNotFoundError) as exc_info:
            self.service.accept("does-not-exist")

        assert exc_info.value.status_code == 404
        assert len(self.store.find_all()) == 1

    def test_assign_rescuer_requires_rescuer(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.assign_rescuer(self.incident.id, "  ")

        assert exc_info.value.message == "missing rescuerId"
        assert self.store.find_by_id(self.incident.id).status == IncidentStatus.PENDING.value

    def test_missing_incident_id(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.resolve("")

        assert exc_info.value.message == "missing incidentId"

    def test_get_incident(self):
        assert self.service.get_incident(self.incident.id) == self.incident

        with pytest.raises(IncidentNotFoundError):
            self.service.get_incident("missing")

    def test_store_failure_propagates(self):
        store = MagicMock()
        store.update.side_effect = StoreError()
        service = LifecycleService(store)

        with pytest.raises(StoreError):
            service.accept(self.incident.id)


class TestLifecycleListings:
    """Test incident listings and their ordering."""

    def setup_method(self):
        self.store = InMemoryIncidentStore()
        self.clock = StepClock()
        self.service = LifecycleService(self.store, clock=self.clock)

        self.first = self._create("user-1")
        self.second = self._create("user-2")
        self.third = self._create("user-1")

    def _create(self, user_id):
        report = SOSReport(user_id=user_id, location=Coordinate(lat=13.0, lng=77.6))
        return self.store.create(build_incident(report, 3.5, CompassDirection.S, self.clock()))

    def test_list_pending_oldest_first(self):
        self.service.accept(self.second.id)

        pending = self.service.list_pending()

        assert [i.id for i in pending] == [self.first.id, self.third.id]

    def test_list_all_newest_first(self):
        self.service.reject(self.first.id)

        incidents = self.service.list_all()

        assert [i.id for i in incidents] == [self.third.id, self.second.id, self.first.id]

    def test_list_by_user_newest_first(self):
        incidents = self.service.list_by_user("user-1")

        assert [i.id for i in incidents] == [self.third.id, self.first.id]

    def test_list_by_unknown_user_is_empty(self):
        assert self.service.list_by_user("nobody") == []

    def test_list_by_user_requires_user(self):
        with pytest.raises(ValidationError):
            self.service.list_by_user(" ")

    def test_listings_reflect_transitions(self):
        self.service.resolve(self.first.id)

        assert self.first.id not in [i.id for i in self.service.list_pending()]
        assert self.service.get_incident(self.first.id).status == IncidentStatus.RESOLVED.value

    def test_list_by_user_matches_identifier_exactly(self):
        report = SOSReport(user_id=" user-1 ", location=Coordinate(lat=13.0, lng=77.6))
        padded = self.store.create(build_incident(report, 3.5, CompassDirection.S, self.clock()))

        assert [i.id for i in self.service.list_by_user(" user-1 ")] == [padded.id]
        assert padded.id not in [i.id for i in self.service.list_by_user("user-1")]
