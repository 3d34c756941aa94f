# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the SOS rescue platform.
"""

from enum import Enum


class IncidentStatus(str, Enum):
    """Incident workflow status enumeration."""
    PENDING = "pending"
    BROADCASTED = "broadcasted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    RESOLVED = "resolved"

    @property
    def is_terminal(self) -> bool:
        return self in (IncidentStatus.REJECTED, IncidentStatus.RESOLVED)


class CompassDirection(str, Enum):
    """Eight-point compass labels, clockwise from north."""
    N = "N"
    NE = "NE"
    E = "E"
    SE = "SE"
    S = "S"
    SW = "SW"
    W = "W"
    NW = "NW"


class IncidentAction(str, Enum):
    """Lifecycle operations a rescuer can apply to an incident."""
    ASSIGN_RESCUER = "assign_rescuer"
    ACCEPT = "accept"
    REJECT = "reject"
    RESOLVE = "resolve"
