"""Tests for the bounds calculator."""

from __future__ import annotations

import math

import pytest

from plan_overlay.engine.bounds import (
    clamp_size_meters,
    compute_bounds_from_center,
    compute_bounds_from_corner,
    site_dimensions,
    validate_bounds,
)
from plan_overlay.errors import BoundsInvariantViolation
from plan_overlay.models.plan import CornerPosition
from plan_overlay.utils.geodesy import lat_degrees_to_meters, lng_degrees_to_meters
from tests.conftest import SUN_CITY


def _size_in_meters(bounds):
    height = lat_degrees_to_meters(bounds.lat_span)
    width = lng_degrees_to_meters(bounds.lng_span, bounds.center.lat)
    return width, height


def test_center_bounds_square_site():
    bounds = compute_bounds_from_center(SUN_CITY, 100)
    width, height = _size_in_meters(bounds)
    assert width == pytest.approx(100, rel=1e-3)
    assert height == pytest.approx(100, rel=1e-3)
    assert bounds.center.lat == pytest.approx(SUN_CITY.lat)
    assert bounds.center.lng == pytest.approx(SUN_CITY.lng)


def test_center_bounds_landscape_and_portrait():
    width, height = _size_in_meters(compute_bounds_from_center(SUN_CITY, 200, aspect_ratio=2.0))
    assert width == pytest.approx(200, rel=1e-3)
    assert height == pytest.approx(100, rel=1e-3)

    width, height = _size_in_meters(compute_bounds_from_center(SUN_CITY, 200, aspect_ratio=0.5))
    assert width == pytest.approx(100, rel=1e-3)
    assert height == pytest.approx(200, rel=1e-3)


def test_site_dimensions_longer_side_gets_size():
    assert site_dimensions(150, 1.5) == (150, 100)
    assert site_dimensions(150, 0.75) == (112.5, 150)


@pytest.mark.parametrize(
    "position, lat_edge, lng_edge",
    [
        (CornerPosition.NORTHWEST, "north", "west"),
        (CornerPosition.NORTHEAST, "north", "east"),
        (CornerPosition.SOUTHWEST, "south", "west"),
        (CornerPosition.SOUTHEAST, "south", "east"),
    ],
)
def test_corner_bounds_pin_the_intersection(position, lat_edge, lng_edge):
    bounds = compute_bounds_from_corner(SUN_CITY, position, 120, aspect_ratio=1.5)
    assert getattr(bounds, lat_edge) == SUN_CITY.lat
    assert getattr(bounds, lng_edge) == SUN_CITY.lng
    width, height = _size_in_meters(bounds)
    assert width == pytest.approx(120, rel=2e-3)
    assert height == pytest.approx(80, rel=2e-3)


def test_corner_accepts_labels():
    bounds = compute_bounds_from_corner(SUN_CITY, " SouthEast ", 100)
    assert bounds.south == SUN_CITY.lat
    assert bounds.east == SUN_CITY.lng


@pytest.mark.parametrize("label", ["unknown", "middle", None, ""])
def test_unknown_corner_anchors_northwest(label):
    bounds = compute_bounds_from_corner(SUN_CITY, label, 100)
    assert bounds.north == SUN_CITY.lat
    assert bounds.west == SUN_CITY.lng


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 100), (math.nan, 100), (0, 100), (-20, 100), (5, 10), (200, 200), (5000, 500)],
)
def test_clamp_size(raw, expected):
    assert clamp_size_meters(raw) == expected


def test_validate_bounds_rejects_inverted_edges():
    with pytest.raises(BoundsInvariantViolation):
        validate_bounds(north=33.0, south=33.1, east=-112.0, west=-112.1)
    with pytest.raises(BoundsInvariantViolation):
        validate_bounds(north=33.1, south=33.0, east=-112.1, west=-112.1)
    with pytest.raises(BoundsInvariantViolation):
        validate_bounds(north=math.nan, south=33.0, east=-112.0, west=-112.1)


def test_zero_size_is_rejected():
    with pytest.raises(BoundsInvariantViolation):
        compute_bounds_from_center(SUN_CITY, 0)
