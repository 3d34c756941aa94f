# SPDX-License-Identifier: Apache-2.0

"""
End-to-end rescue workflow acceptance tests.

Drives the HTTP API from SOS submission through rescuer assignment,
acceptance and resolution, and checks that the broadcast hand-off and
terminal states behave as a dispatcher would expect.
"""

import pytest

from rescue_api.app import create_app
from rescue_api.config import RescueSettings
from rescue_api.models.entities import Coordinate
from rescue_api.services.store import InMemoryIncidentStore
from rescue_api.tests.helpers import RecordingPublisher, point_north_of, sos_payload


CENTER = Coordinate(lat=12.9716, lng=77.5946)


class TestRescueWorkflow:
    """Complete dispatcher and rescuer journeys."""

    @pytest.fixture(autouse=True)
    def setup_workflow(self):
        self.store = InMemoryIncidentStore()
        self.publisher = RecordingPublisher()
        settings = RescueSettings(
            environment='test',
            rescue_center=CENTER,
            radius_km=50.0,
            store_backend='memory',
            otel_enabled=False
        )
        app = create_app(settings, store=self.store, publisher=self.publisher)
        app.config['TESTING'] = True

        with app.test_client() as client:
            self.client = client
            yield

    def _submit(self, km_north, user_id="citizen-1"):
        return self.client.post(
            '/api/incidents/create',
            json=sos_payload(point_north_of(CENTER, km_north), user_id=user_id, type="flood", message="Trapped on roof")
        )

    def test_sos_to_resolution(self):
        # Citizen 10 km north of the center raises an SOS
        response = self._submit(10.0)
        assert response.status_code == 201
        incident = response.get_json()["incident"]
        assert response.get_json()["direction"] == "S"
        assert len(self.publisher.broadcasts) == 1

        # It shows up as pending for dispatchers
        pending = self.client.get('/api/incidents/pending').get_json()
        assert [i["id"] for i in pending["incidents"]] == [incident["id"]]

        # A rescuer takes it
        response = self.client.post(
            '/api/incidents/accept',
            json={"incidentId": incident["id"], "rescuerId": "rescuer-7"}
        )
        assert response.status_code == 200
        assert response.get_json()["incident"]["status"] == "broadcasted"
        assert self.client.get('/api/incidents/pending').get_json()["count"] == 0

        # Rescuer confirms, then closes the incident
        response = self.client.put(f'/api/incidents/{incident["id"]}/accept')
        assert response.get_json()["incident"]["status"] == "accepted"
        assert response.get_json()["incident"]["rescuerId"] == "rescuer-7"

        response = self.client.post('/api/incidents/resolve', json={"incidentId": incident["id"]})
        assert response.status_code == 200

        # Resolved incidents are final
        detail = self.client.get(f'/api/incidents/{incident["id"]}').get_json()["incident"]
        assert detail["status"] == "resolved"
        assert detail["rescuerId"] == "rescuer-7"
        assert detail["createdAt"] == incident["createdAt"]

        for method, url, body in (
            ("put", f'/api/incidents/{incident["id"]}/accept', None),
            ("put", f'/api/incidents/{incident["id"]}/reject', None),
            ("post", '/api/incidents/resolve', {"incidentId": incident["id"]}),
            ("post", '/api/incidents/accept', {"incidentId": incident["id"], "rescuerId": "rescuer-8"}),
        ):
            response = getattr(self.client, method)(url, json=body)
            assert response.status_code == 409

        assert self.client.get(f'/api/incidents/{incident["id"]}').get_json()["incident"]["rescuerId"] == "rescuer-7"

    def test_out_of_area_sos_leaves_no_trace(self):
        response = self._submit(51.0)

        assert response.status_code == 200
        assert response.get_json()["status"] == "rejected"
        assert self.client.get('/api/incidents/all').get_json()["count"] == 0
        assert self.publisher.broadcasts == []

    def test_rejected_incident_cannot_be_revived(self):
        incident = self._submit(5.0).get_json()["incident"]

        assert self.client.put(f'/api/incidents/{incident["id"]}/reject').status_code == 200
        assert self.client.put(f'/api/incidents/{incident["id"]}/accept').status_code == 409

    def test_citizen_history(self):
        first = self._submit(1.0, user_id="citizen-1").get_json()["incident"]
        self._submit(2.0, user_id="citizen-2")
        second = self._submit(3.0, user_id="citizen-1").get_json()["incident"]

        history = self.client.get('/api/incidents/user/citizen-1').get_json()

        assert history["count"] == 2
        assert {i["id"] for i in history["incidents"]} == {first["id"], second["id"]}
        assert self.client.get('/api/incidents/all').get_json()["count"] == 3
