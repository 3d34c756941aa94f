# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the SOS rescue platform.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity
from .enums import IncidentStatus, CompassDirection


class Coordinate(BaseModel):
    """Immutable WGS84 point."""
    
    model_config = ConfigDict(frozen=True, strict=True, allow_inf_nan=False)
    
    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude in degrees")
    lng: float = Field(..., ge=-180.0, le=180.0, description="Longitude in degrees")


class Incident(BaseEntity):
    """SOS report accepted inside the rescue radius."""
    
    user_id: str = Field(..., min_length=1, description="Reporter identifier")
    type: Optional[str] = Field(None, description="Free-form classification")
    message: Optional[str] = Field(None, description="Free-form text from the reporter")
    location: Coordinate = Field(..., description="Reporter location")
    distance: float = Field(..., ge=0.0, description="Kilometers from the rescue center at creation")
    direction: CompassDirection = Field(..., description="Compass direction toward the rescue center")
    status: IncidentStatus = Field(default=IncidentStatus.PENDING, description="Workflow status")
    rescuer_id: Optional[str] = Field(None, description="Rescuer assigned to the incident")
    
    @field_validator('user_id')
    @classmethod
    def validate_user_id(cls, v):
        """Validate reporter identifier."""
        if not v.strip():
            raise ValueError('userId cannot be empty')
        return v
    
    @model_validator(mode='after')
    def validate_rescuer_assignment(self):
        """A broadcasted incident always names its rescuer."""
        if self.status == IncidentStatus.BROADCASTED and not self.rescuer_id:
            raise ValueError('rescuerId is required when status is broadcasted')
        return self
    
    def is_terminal(self) -> bool:
        """Check if the incident reached a final state."""
        return IncidentStatus(self.status).is_terminal
    
    def to_public_dict(self) -> dict:
        """JSON-ready representation using wire field names."""
        return self.model_dump(mode='json', by_alias=True)
