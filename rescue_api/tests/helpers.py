# SPDX-License-Identifier: Apache-2.0

"""
Test doubles and payload builders shared by the test modules.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import List

from rescue_api.domain.geo import EARTH_RADIUS_KM
from rescue_api.models.entities import Coordinate, Incident


class RecordingPublisher:
    """Publisher double that keeps every broadcast incident."""

    def __init__(self):
        self.broadcasts: List[Incident] = []

    def broadcast(self, incident: Incident) -> None:
        self.broadcasts.append(incident)


class FailingPublisher:
    """Publisher double whose hand-off always raises."""

    def __init__(self):
        self.calls = 0

    def broadcast(self, incident: Incident) -> None:
        self.calls += 1
        raise RuntimeError("broker unreachable")


class StepClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime = None):
        self.current = start or datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(minutes=1)
        return value


def point_north_of(center: Coordinate, km: float) -> Coordinate:
    """Coordinate ``km`` kilometers due north of ``center``."""
    return Coordinate(lat=center.lat + math.degrees(km / EARTH_RADIUS_KM), lng=center.lng)


def sos_payload(location: Coordinate, user_id: str = "user-1", **extra) -> dict:
    payload = {"userId": user_id, "location": {"lat": location.lat, "lng": location.lng}}
    payload.update(extra)
    return payload
