# SPDX-License-Identifier: Apache-2.0

"""
Great-circle geometry on a spherical Earth.

Distances use the haversine formula with the mean Earth radius; bearings are
initial (forward azimuth) bearings in degrees clockwise from true north.
"""

import math

from ..models.entities import Coordinate
from ..models.enums import CompassDirection


EARTH_RADIUS_KM = 6371.0

SECTOR_DEGREES = 45.0

# Clockwise from north, one label per 45 degree sector
COMPASS_POINTS = (
    CompassDirection.N,
    CompassDirection.NE,
    CompassDirection.E,
    CompassDirection.SE,
    CompassDirection.S,
    CompassDirection.SW,
    CompassDirection.W,
    CompassDirection.NW,
)


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """
    Haversine distance between two coordinates.
    
    Args:
        a: Start coordinate
        b: End coordinate
        
    Returns:
        Distance in kilometers, symmetric in its arguments
    """
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = phi2 - phi1
    dlmb = math.radians(b.lng) - math.radians(a.lng)
    
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    # Rounding can push h a hair above 1 for antipodal points
    h = min(1.0, h)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def bearing_degrees(a: Coordinate, b: Coordinate) -> float:
    """
    Initial bearing travelling from ``a`` toward ``b``.
    
    Args:
        a: Start coordinate
        b: Destination coordinate
        
    Returns:
        Bearing in [0, 360); 0.0 when both points coincide
    """
    if a.lat == b.lat and a.lng == b.lng:
        return 0.0
    
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dlmb = math.radians(b.lng - a.lng)
    
    y = math.sin(dlmb) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlmb)
    bearing = math.degrees(math.atan2(y, x)) % 360.0
    
    # -1e-15 % 360.0 rounds up to 360.0
    if bearing >= 360.0:
        bearing = 0.0
    return bearing


def direction_label(bearing: float) -> CompassDirection:
    """
    Map a bearing onto the 8-point compass.
    
    Each label owns a 45 degree sector centered on its compass point, so N
    covers [337.5, 360) and [0, 22.5). Bearings outside [0, 360) are
    normalised first.
    
    Args:
        bearing: Bearing in degrees
        
    Returns:
        Compass direction label
        
    Raises:
        ValueError: If bearing is NaN or infinite
    """
    if not math.isfinite(bearing):
        raise ValueError(f"Bearing must be a finite number, got {bearing!r}")
    
    shifted = (bearing % 360.0) + SECTOR_DEGREES / 2
    return COMPASS_POINTS[int(shifted // SECTOR_DEGREES) % len(COMPASS_POINTS)]
