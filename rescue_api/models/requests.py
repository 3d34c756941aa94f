# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for incident lifecycle endpoints.

SOS submissions are validated by the intake domain rules instead of a request
model so that missing reporter and bad location map to their own errors.
"""

from pydantic import BaseModel, Field
from .base import BaseRequest


class IncidentPath(BaseModel):
    """Path parameters for single-incident routes."""
    incident_id: str = Field(..., min_length=1, description="Incident identifier")


class UserPath(BaseModel):
    """Path parameters for per-reporter listings."""
    user_id: str = Field(..., min_length=1, description="Reporter identifier")


class AssignRescuerRequest(BaseRequest):
    """Rescuer takes ownership of an incident."""
    incident_id: str = Field(..., min_length=1, description="Incident identifier")
    rescuer_id: str = Field(..., min_length=1, description="Rescuer identifier")


class ResolveIncidentRequest(BaseRequest):
    """Rescuer closes an incident."""
    incident_id: str = Field(..., min_length=1, description="Incident identifier")
