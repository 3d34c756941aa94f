# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Incident workflow, persistence and broadcast integrations.
"""

from .errors import (
    RescueError,
    ValidationError,
    IncidentNotFoundError,
    InvalidTransitionError,
    StatusConflictError,
    StoreError,
    PublishError
)
from .store import IncidentStore, InMemoryIncidentStore
from .mongodb import MongoIncidentStore
from .amqp import AMQPService, AMQPConfig, PublishResult
from .publisher import BackgroundPublisher, Publisher
from .intake import IntakeService
from .lifecycle import LifecycleService

__all__ = [
    "RescueError",
    "ValidationError",
    "IncidentNotFoundError",
    "InvalidTransitionError",
    "StatusConflictError",
    "StoreError",
    "PublishError",
    "IncidentStore",
    "InMemoryIncidentStore",
    "MongoIncidentStore",
    "AMQPService",
    "AMQPConfig",
    "PublishResult",
    "BackgroundPublisher",
    "Publisher",
    "IntakeService",
    "LifecycleService"
]
