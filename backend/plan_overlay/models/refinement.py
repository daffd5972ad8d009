"""AI refinement adjustments and the results the refinement loops report."""

from __future__ import annotations

import enum

from pydantic import Field

from plan_overlay.models.base import CamelModel
from plan_overlay.models.geo import Bounds


class ShiftMeters(CamelModel):
    north: float = 0.0  # positive moves the overlay north
    east: float = 0.0  # positive moves the overlay east


class RefinementAdjustment(CamelModel):
    """Relative correction to the current bounds."""

    shift_meters: ShiftMeters = Field(default_factory=ShiftMeters)
    scale_factor: float = Field(default=1.0, gt=0.0)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reasoning: str = ""
    features_matched: list[str] = Field(default_factory=list)


class DeepRefinementResponse(CamelModel):
    adjustment: RefinementAdjustment | None = None
    features_matched: list[str] = Field(default_factory=list)
    should_continue: bool = False
    raw_text: str = ""


class RefinementOutcome(CamelModel):
    """Result of one single-pass visual refinement."""

    adjustment: RefinementAdjustment | None = None
    bounds: Bounds | None = None
    no_change: bool = False
    skipped: bool = False  # no screenshot could be captured
    message: str = ""


class StopReason(str, enum.Enum):
    CONVERGED = "converged"
    NO_ADJUSTMENT = "no_adjustment"
    MAX_ITERATIONS = "max_iterations"
    CANCELLED = "cancelled"
    ERROR = "error"


class DeepRefineIteration(CamelModel):
    """One deep-refinement step. ``stop_reason`` is set on the last item only."""

    iteration: int
    adjustment: RefinementAdjustment | None = None
    applied_adjustment: RefinementAdjustment | None = None
    features_matched: list[str] = Field(default_factory=list)
    bounds: Bounds | None = None
    bounds_clamped: bool = False
    should_continue: bool = False
    stop_reason: StopReason | None = None
    error: str = ""
