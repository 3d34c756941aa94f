# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the SOS rescue platform.
"""

# Base models
from .base import BaseEntity, BaseRequest, generate_object_id, utc_now

# Enumerations
from .enums import IncidentStatus, CompassDirection, IncidentAction

# Core entities
from .entities import Coordinate, Incident

# Request models
from .requests import IncidentPath, UserPath, AssignRescuerRequest, ResolveIncidentRequest

__all__ = [
    # Base
    "BaseEntity",
    "BaseRequest",
    "generate_object_id",
    "utc_now",
    
    # Enums
    "IncidentStatus",
    "CompassDirection",
    "IncidentAction",
    
    # Entities
    "Coordinate",
    "Incident",
    
    # Requests
    "IncidentPath",
    "UserPath",
    "AssignRescuerRequest",
    "ResolveIncidentRequest",
]
