"""Applying AI refinement adjustments to bounds, and deep-refine clamping."""

from __future__ import annotations

import logging
import math

from plan_overlay.engine.bounds import validate_bounds
from plan_overlay.errors import InvalidAdjustment
from plan_overlay.models.geo import Bounds
from plan_overlay.models.refinement import RefinementAdjustment, ShiftMeters
from plan_overlay.utils.geodesy import (
    lat_degrees_to_meters,
    lng_degrees_to_meters,
    meters_to_lat_degrees,
    meters_to_lng_degrees,
    offset_meters,
)

logger = logging.getLogger(__name__)


def apply_adjustment(current: Bounds, adjustment: RefinementAdjustment) -> Bounds:
    """Shift the center by ``shift_meters`` and scale both spans by ``scale_factor``."""
    shift = adjustment.shift_meters
    if not all(math.isfinite(v) for v in (shift.north, shift.east, adjustment.scale_factor)):
        raise InvalidAdjustment(f"Non-finite adjustment: {adjustment!r}")

    center = current.center
    new_lat = center.lat + meters_to_lat_degrees(shift.north)
    new_lng = center.lng + meters_to_lng_degrees(shift.east, center.lat)

    half_lat = current.lat_span * adjustment.scale_factor / 2
    half_lng = current.lng_span * adjustment.scale_factor / 2

    return validate_bounds(
        north=new_lat + half_lat,
        south=new_lat - half_lat,
        east=new_lng + half_lng,
        west=new_lng - half_lng,
    )


# Shrinks the clamp target so rounding in apply_adjustment cannot land past the limit
_CLAMP_MARGIN = 1e-9


def _clamp_axis(current_offset: float, shift: float, max_shift: float) -> tuple[float, bool]:
    proposed = current_offset + shift
    if abs(proposed) > max_shift:
        return math.copysign(max_shift, proposed) - current_offset, True
    return shift, False


def clamp_adjustment(
    current: Bounds,
    original: Bounds,
    adjustment: RefinementAdjustment,
    max_shift_meters: float,
) -> tuple[RefinementAdjustment, bool]:
    """Limit a shift so the center stays within ``max_shift_meters`` of ``original``'s.

    Each axis is clamped independently. The east offset is measured at the
    latitude the center ends up on, the same way :func:`offset_meters` measures
    it, so a north/south move cannot stretch an east offset past the limit.
    Returns the (possibly new) adjustment and whether anything was clamped.
    """
    limit = max_shift_meters * (1 - _CLAMP_MARGIN)
    shift = adjustment.shift_meters
    here = current.center
    start = original.center

    north, north_clamped = _clamp_axis(lat_degrees_to_meters(here.lat - start.lat), shift.north, limit)

    # apply_adjustment converts east meters at the current latitude
    new_lat = here.lat + meters_to_lat_degrees(north)
    lng_offset = here.lng - start.lng
    proposed = lng_offset + meters_to_lng_degrees(shift.east, here.lat)
    east, east_clamped = shift.east, False
    if abs(lng_degrees_to_meters(proposed, new_lat)) > limit:
        target = math.copysign(meters_to_lng_degrees(limit, new_lat), proposed)
        east, east_clamped = lng_degrees_to_meters(target - lng_offset, here.lat), True

    if not (north_clamped or east_clamped):
        return adjustment, False

    logger.info(
        "Clamped shift (%.1f, %.1f)m -> (%.1f, %.1f)m, limit %.0fm from original",
        shift.north, shift.east, north, east, max_shift_meters,
    )
    clamped = adjustment.model_copy(update={"shift_meters": ShiftMeters(north=north, east=east)})
    return clamped, True


def should_continue(
    adjustment: RefinementAdjustment | None,
    confidence_threshold: float = 0.9,
    min_shift: float = 2.0,
) -> bool:
    """Keep iterating while unsure and still moving more than ``min_shift`` on an axis."""
    if adjustment is None:
        return False
    shift = adjustment.shift_meters
    return adjustment.confidence < confidence_threshold and (
        abs(shift.north) > min_shift or abs(shift.east) > min_shift
    )


def adjustment_between(
    current: Bounds,
    target: Bounds,
    confidence: float = 0.5,
    reasoning: str = "",
) -> RefinementAdjustment:
    """The shift/scale adjustment that maps ``current`` approximately onto ``target``.

    Scale is taken from the latitude spans; ``target``'s aspect is not preserved.
    """
    north, _ = offset_meters(current.center, target.center)
    # east measured at the current latitude, which is what apply_adjustment uses
    east = lng_degrees_to_meters(target.center.lng - current.center.lng, current.center.lat)
    scale = target.lat_span / current.lat_span
    return RefinementAdjustment(
        shift_meters=ShiftMeters(north=north, east=east),
        scale_factor=scale,
        confidence=confidence,
        reasoning=reasoning,
    )


def shift_distance_meters(adjustment: RefinementAdjustment) -> float:
    return math.hypot(adjustment.shift_meters.north, adjustment.shift_meters.east)

