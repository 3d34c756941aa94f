# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Exception taxonomy shared by services and the HTTP error handler.
"""

from typing import List, Optional


class RescueError(Exception):
    """Base class for application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationError(RescueError):
    """Malformed or missing input; nothing was written."""

    def __init__(self, message: str, validation_errors: Optional[List[str]] = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or [message]


class IncidentNotFoundError(RescueError):
    """Referenced incident does not exist."""

    def __init__(self, incident_id: str):
        super().__init__(f"Incident not found: {incident_id}", 404, "resource-not-found")
        self.incident_id = incident_id


class InvalidTransitionError(RescueError):
    """Lifecycle action not allowed from the incident's current status."""

    def __init__(self, incident_id: str, current_status: str, action: str):
        super().__init__(
            f"Cannot {action} incident {incident_id} in status '{current_status}'",
            409,
            "invalid-transition"
        )
        self.incident_id = incident_id
        self.current_status = current_status
        self.action = action


class StoreError(RescueError):
    """Incident store failure; detail stays in the logs."""

    def __init__(self, message: str = "Incident store unavailable"):
        super().__init__(message, 500, "internal-error")


class StatusConflictError(Exception):
    """Conditional update found the incident in a non-allowed status."""

    def __init__(self, incident_id: str, current_status: str):
        super().__init__(f"Incident {incident_id} is in status '{current_status}'")
        self.incident_id = incident_id
        self.current_status = current_status


class PublishError(Exception):
    """Broadcast failure; absorbed by the publisher, never surfaced to callers."""
    pass
