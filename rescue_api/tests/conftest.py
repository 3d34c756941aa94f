# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest

from rescue_api.app import create_app
from rescue_api.config import RescueSettings
from rescue_api.models.entities import Coordinate
from rescue_api.services.store import InMemoryIncidentStore
from rescue_api.tests.helpers import RecordingPublisher, StepClock

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'


@pytest.fixture
def rescue_center():
    """Rescue center used across tests."""
    return Coordinate(lat=12.9716, lng=77.5946)


@pytest.fixture
def store():
    return InMemoryIncidentStore()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def test_settings(rescue_center):
    """Settings for an app wired to in-process doubles."""
    return RescueSettings(
        environment='test',
        rescue_center=rescue_center,
        radius_km=50.0,
        store_backend='memory',
        otel_enabled=False
    )


@pytest.fixture
def app(test_settings, store, publisher):
    application = create_app(test_settings, store=store, publisher=publisher)
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    """Create test client."""
    with app.test_client() as client:
        yield client
