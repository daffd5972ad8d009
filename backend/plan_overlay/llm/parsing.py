"""Turning model text into validated models.

Models are asked for bare JSON but often wrap it in a fenced code block or
add prose around it. Parse failures surface as domain errors:
:class:`ExtractionError` for extraction, :class:`InvalidAdjustment` for
refinement answers.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from plan_overlay.engine.adjustment import should_continue
from plan_overlay.errors import ExtractionError, InvalidAdjustment
from plan_overlay.llm.stream import first_json_object
from plan_overlay.models.geo import Bounds
from plan_overlay.models.plan import ExtractedPlanData
from plan_overlay.models.refinement import DeepRefinementResponse, RefinementAdjustment

logger = logging.getLogger(__name__)

CODE_BLOCK_REGEX = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

_NUMBER = r"(-?\d+(?:\.\d+)?)"
_EDGE_REGEXES = {
    edge: re.compile(rf"\b{edge}\b[\"'\s]*[:=]\s*{_NUMBER}", re.IGNORECASE)
    for edge in ("north", "south", "east", "west")
}


def parse_json_response(text: str) -> dict[str, Any] | None:
    """The JSON object in ``text``, or None.

    Tries the first fenced code block, then the whole text, then the first
    balanced ``{...}`` anywhere.
    """
    match = CODE_BLOCK_REGEX.search(text)
    candidate = match.group(1).strip() if match else text.strip()
    try:
        decoded = json.loads(candidate)
    except json.JSONDecodeError:
        return first_json_object(candidate) or first_json_object(text)
    return decoded if isinstance(decoded, dict) else None


def parse_extraction(text: str) -> ExtractedPlanData:
    data = parse_json_response(text)
    if data is None:
        raise ExtractionError("Model returned no JSON location data")
    try:
        return ExtractedPlanData.model_validate(data)
    except ValidationError as e:
        raise ExtractionError(f"Invalid location data: {e.error_count()} validation errors") from e


def _adjustment_payload(data: dict[str, Any]) -> dict[str, Any]:
    # some answers nest the adjustment, others put it at the top level
    nested = data.get("adjustment")
    return nested if isinstance(nested, dict) else data


def parse_adjustment(text: str) -> RefinementAdjustment:
    data = parse_json_response(text)
    if data is None:
        raise InvalidAdjustment("No JSON adjustment in model response")
    payload = _adjustment_payload(data)
    if "shiftMeters" not in payload and "shift_meters" not in payload and "scaleFactor" not in payload:
        raise InvalidAdjustment("Model response has no shift or scale")
    try:
        return RefinementAdjustment.model_validate(payload)
    except ValidationError as e:
        raise InvalidAdjustment(f"Invalid adjustment: {e.error_count()} validation errors") from e


def parse_deep_refinement(
    text: str,
    confidence_threshold: float = 0.9,
    min_shift: float = 2.0,
) -> DeepRefinementResponse:
    """Parse a deep-refinement answer and decide whether another iteration is worth it."""
    adjustment = parse_adjustment(text)
    return DeepRefinementResponse(
        adjustment=adjustment,
        features_matched=adjustment.features_matched,
        should_continue=should_continue(adjustment, confidence_threshold, min_shift),
        raw_text=text,
    )


def extract_bounds_from_text(text: str) -> Bounds | None:
    """Degraded fallback: find ``north: <deg>`` style edges in free text."""
    values: dict[str, float] = {}
    for edge, regex in _EDGE_REGEXES.items():
        match = regex.search(text)
        if match is None:
            return None
        values[edge] = float(match.group(1))
    try:
        return Bounds(**values)
    except ValidationError:
        logger.debug("Free-text bounds violate north>south / east>west: %s", values)
        return None
