"""Tests for turning model answers into models."""

from __future__ import annotations

import pytest

from plan_overlay.errors import ExtractionError, InvalidAdjustment
from plan_overlay.llm.parsing import (
    extract_bounds_from_text,
    parse_adjustment,
    parse_deep_refinement,
    parse_extraction,
    parse_json_response,
)
from plan_overlay.models.plan import CornerPosition, Direction

EXTRACTION_ANSWER = """Here is what I found:
```json
{
  "projectName": "Bell Road Medical Office",
  "address": "13000 W Bell Rd",
  "city": "Sun City",
  "state": "AZ",
  "roads": [
    {"name": "W Bell Rd", "direction": "south", "isPrimary": true},
    {"name": "N 107th Ave", "direction": "sideways"}
  ],
  "intersections": [{"road1": "W Bell Rd", "road2": "N 107th Ave", "corner": "SouthWest"}],
  "estimatedSizeMeters": 180,
  "siteShape": "blob"
}
```"""


def test_parse_json_response_variants():
    assert parse_json_response('{"a": 1}') == {"a": 1}
    assert parse_json_response('```\n{"a": 2}\n```') == {"a": 2}
    assert parse_json_response('Sure! {"a": {"b": 3}} hope that helps') == {"a": {"b": 3}}
    assert parse_json_response("[1, 2]") is None
    assert parse_json_response("no json here") is None


def test_parse_extraction():
    data = parse_extraction(EXTRACTION_ANSWER)
    assert data.city == "Sun City"
    assert data.roads[0].is_primary
    assert data.roads[1].direction == Direction.UNKNOWN
    assert data.intersections[0].corner_position == CornerPosition.SOUTHWEST
    assert data.site_shape.value == "unknown"
    assert data.site_boundary.south_road == "W Bell Rd"
    assert data.confidence == 0.8


def test_parse_extraction_defaults_confidence_for_few_roads():
    data = parse_extraction('{"address": "1 Main St", "roads": null}')
    assert data.roads == []
    assert data.confidence == 0.5


def test_parse_extraction_without_json():
    with pytest.raises(ExtractionError):
        parse_extraction("I could not read this document.")


def test_parse_adjustment_top_level_and_nested():
    flat = parse_adjustment('{"shiftMeters": {"north": 5, "east": -3}, "confidence": 0.7, "reasoning": "road offset"}')
    assert flat.shift_meters.north == 5
    assert flat.shift_meters.east == -3
    assert flat.scale_factor == 1.0

    nested = parse_adjustment('{"adjustment": {"scaleFactor": 1.1}, "note": "slightly small"}')
    assert nested.scale_factor == pytest.approx(1.1)


@pytest.mark.parametrize(
    "text",
    [
        "Looks fine to me.",
        '{"confidence": 0.9}',
        '{"shiftMeters": {"north": 1}, "scaleFactor": -2}',
        '{"shiftMeters": {"north": "a lot"}}',
    ],
)
def test_parse_adjustment_rejects(text):
    with pytest.raises(InvalidAdjustment):
        parse_adjustment(text)


def test_parse_deep_refinement_decides_continuation():
    unsure = parse_deep_refinement(
        '{"shiftMeters": {"north": 12, "east": 0}, "confidence": 0.6, "featuresMatched": ["canal", "Bell Rd"]}'
    )
    assert unsure.should_continue
    assert unsure.features_matched == ["canal", "Bell Rd"]
    assert unsure.raw_text.startswith("{")

    sure = parse_deep_refinement('{"shiftMeters": {"north": 12}, "confidence": 0.95}')
    assert not sure.should_continue


def test_extract_bounds_from_text():
    text = "Better bounds: north: 33.6240, south: 33.6220, east=-112.2820, west = -112.2840."
    bounds = extract_bounds_from_text(text)
    assert bounds.north == pytest.approx(33.624)
    assert bounds.west == pytest.approx(-112.284)

    assert extract_bounds_from_text("north: 33.6 south: 33.7 east: 1 west: 0") is None
    assert extract_bounds_from_text("north: 33.6 only") is None
