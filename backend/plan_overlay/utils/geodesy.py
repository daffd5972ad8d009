"""Meters <-> degrees on a spherical earth. Leaf module, no engine imports."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plan_overlay.models.geo import GeoPoint

METERS_PER_DEGREE_LATITUDE = 111_000.0


def meters_per_degree_longitude(lat: float) -> float:
    """Length of one degree of longitude at ``lat``. Shrinks toward the poles."""
    return math.cos(lat * math.pi / 180.0) * METERS_PER_DEGREE_LATITUDE


def meters_to_lat_degrees(meters: float) -> float:
    return meters / METERS_PER_DEGREE_LATITUDE


def meters_to_lng_degrees(meters: float, lat: float) -> float:
    return meters / meters_per_degree_longitude(lat)


def lat_degrees_to_meters(degrees: float) -> float:
    return degrees * METERS_PER_DEGREE_LATITUDE


def lng_degrees_to_meters(degrees: float, lat: float) -> float:
    return degrees * meters_per_degree_longitude(lat)


def offset_meters(origin: GeoPoint, point: GeoPoint) -> tuple[float, float]:
    """(north, east) displacement of ``point`` from ``origin`` in meters.

    The east component is scaled at ``point``'s latitude.
    """
    north = lat_degrees_to_meters(point.lat - origin.lat)
    east = lng_degrees_to_meters(point.lng - origin.lng, point.lat)
    return north, east
