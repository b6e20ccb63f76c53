"""Geospatial helpers."""
from __future__ import annotations

import math
from typing import Optional

from . import config
from .geometry import Coordinate


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    r = config.EARTH_RADIUS_MILES
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return r * c


def distance_miles(a: Coordinate, b: Coordinate) -> float:
    return haversine_miles(a.latitude, a.longitude, b.latitude, b.longitude)


def is_degenerate_center(center: Optional[Coordinate]) -> bool:
    """True for the (0, 0) placeholder clients send when they have no location."""
    if center is None:
        return False
    eps = config.DEGENERATE_CENTER_EPSILON
    return abs(center.latitude) < eps and abs(center.longitude) < eps


def looks_swapped(latitude: float, longitude: float) -> bool:
    return abs(latitude) > 90 or abs(longitude) > 180


def within_radius(center: Coordinate, point: Optional[Coordinate], radius_miles: float) -> bool:
    if point is None:
        return False
    return distance_miles(center, point) <= radius_miles
