"""Bounds calculator: center-anchored and corner-anchored rectangles.

Width/height come from the site size and the overlay aspect ratio (w / h):
the longer image side gets ``size_meters`` and the other side is scaled
down. Sizes are never clamped here; see :func:`clamp_size_meters`.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from plan_overlay.errors import BoundsInvariantViolation
from plan_overlay.models.geo import Bounds, GeoPoint
from plan_overlay.models.plan import CornerPosition
from plan_overlay.utils.geodesy import meters_to_lat_degrees, meters_to_lng_degrees

logger = logging.getLogger(__name__)

# Which edges the anchor corner pins: (lat edge, lng edge)
_CORNER_EDGES: dict[CornerPosition, tuple[str, str]] = {
    CornerPosition.NORTHWEST: ("north", "west"),
    CornerPosition.NORTHEAST: ("north", "east"),
    CornerPosition.SOUTHWEST: ("south", "west"),
    CornerPosition.SOUTHEAST: ("south", "east"),
}

FALLBACK_CORNER = CornerPosition.NORTHWEST


def validate_bounds(north: float, south: float, east: float, west: float) -> Bounds:
    """Build a :class:`Bounds`, raising instead of swapping bad edges."""
    if not (north > south and east > west):
        raise BoundsInvariantViolation(
            f"Invalid bounds: north={north} south={south} east={east} west={west}"
        )
    return Bounds(north=north, south=south, east=east, west=west)


def clamp_size_meters(
    raw: float | None,
    default: float = 100.0,
    minimum: float = 10.0,
    maximum: float = 500.0,
) -> float:
    """Missing, non-positive or NaN sizes fall back to ``default``, then clamp."""
    if raw is None or math.isnan(raw) or raw <= 0:
        size = default
    else:
        size = raw
    return max(minimum, min(maximum, size))


def site_dimensions(size_meters: float, aspect_ratio: float = 1.0) -> tuple[float, float]:
    """(width, height) in meters for a site of ``size_meters`` at ``aspect_ratio``."""
    if aspect_ratio >= 1:
        return size_meters, size_meters / aspect_ratio
    return size_meters * aspect_ratio, size_meters


def resolve_corner(value: Any) -> CornerPosition:
    """Parse a corner label. Anything unrecognised anchors northwest."""
    corner = CornerPosition.parse(value)
    if corner is None:
        logger.warning("Unknown corner position %r, anchoring %s", value, FALLBACK_CORNER.value)
        return FALLBACK_CORNER
    return corner


def compute_bounds_from_center(
    center: GeoPoint,
    size_meters: float,
    aspect_ratio: float = 1.0,
) -> Bounds:
    width, height = site_dimensions(size_meters, aspect_ratio)
    half_lat = meters_to_lat_degrees(height) / 2
    half_lng = meters_to_lng_degrees(width, center.lat) / 2

    logger.debug(
        "Center bounds: size=%sm aspect=%.3f -> %.1fm x %.1fm",
        size_meters, aspect_ratio, width, height,
    )
    return validate_bounds(
        north=center.lat + half_lat,
        south=center.lat - half_lat,
        east=center.lng + half_lng,
        west=center.lng - half_lng,
    )


def compute_bounds_from_corner(
    corner: GeoPoint,
    corner_position: CornerPosition | str | None,
    size_meters: float,
    aspect_ratio: float = 1.0,
) -> Bounds:
    """Rectangle with ``corner`` exactly on its ``corner_position`` corner."""
    position = resolve_corner(corner_position)
    width, height = site_dimensions(size_meters, aspect_ratio)
    lat_delta = meters_to_lat_degrees(height)
    lng_delta = meters_to_lng_degrees(width, corner.lat)

    lat_edge, lng_edge = _CORNER_EDGES[position]
    if lat_edge == "north":
        north, south = corner.lat, corner.lat - lat_delta
    else:
        north, south = corner.lat + lat_delta, corner.lat
    if lng_edge == "west":
        west, east = corner.lng, corner.lng + lng_delta
    else:
        west, east = corner.lng - lng_delta, corner.lng

    logger.debug(
        "Corner bounds: position=%s size=%sm aspect=%.3f",
        position.value, size_meters, aspect_ratio,
    )
    return validate_bounds(north=north, south=south, east=east, west=west)
