"""PipelineSession: the mutable state for one plan being positioned.

Everything the orchestrator learns about a document lives here: the
extracted data, the geocode anchor, the current and original bounds, and
the AI conversation history. One session per uploaded plan; sessions are
owned by a :class:`~plan_overlay.engine.sessions.SessionStore`.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from plan_overlay.errors import RefinementInProgress
from plan_overlay.models.events import Stage
from plan_overlay.models.geo import Bounds, GeocodeResult, RoadGeometry
from plan_overlay.models.plan import CornerPosition, ExtractedPlanData, PlanDocument


@dataclass(frozen=True)
class ConversationTurn:
    role: str  # "user" or "assistant"
    content: str


@dataclass
class DeepRefineRun:
    """Cancel token for one deep refinement loop."""

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class PipelineSession:
    """Shared state flowing through the positioning pipeline."""

    document: PlanDocument
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    # Results of each stage
    extracted: ExtractedPlanData | None = None
    geocode: GeocodeResult | None = None
    use_corner_based: bool = False
    corner_position: CornerPosition | None = None
    road_geometries: list[RoadGeometry] = field(default_factory=list)
    aspect_ratio: float = 1.0

    current_bounds: Bounds | None = None
    _original_bounds: Bounds | None = field(default=None, repr=False)

    # Refinement bookkeeping
    iteration_count: int = 0
    refinement_count: int = 0
    _history: list[ConversationTurn] = field(default_factory=list, repr=False)

    stage: Stage = Stage.IDLE
    failure_reason: str = ""
    opacity: float = 0.6

    # At most one refinement (manual or deep) moves current_bounds at a time
    manual_refining: bool = False
    _deep_run: DeepRefineRun | None = field(default=None, repr=False)

    @property
    def original_bounds(self) -> Bounds | None:
        return self._original_bounds

    def anchor(self, bounds: Bounds) -> None:
        """Set the initial placement. The original snapshot can only be taken once."""
        if self._original_bounds is not None:
            raise RuntimeError(f"Session {self.session_id} is already anchored")
        self._original_bounds = bounds
        self.current_bounds = bounds

    @property
    def history(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._history)

    def record_turn(self, role: str, content: str) -> None:
        self._history.append(ConversationTurn(role=role, content=content))

    def fail(self, reason: str) -> None:
        self.stage = Stage.FAILED
        self.failure_reason = reason

    @property
    def deep_refining(self) -> bool:
        """True while an uncancelled deep refinement owns ``current_bounds``."""
        return self._deep_run is not None and not self._deep_run.cancelled

    def begin_deep_refine(self) -> DeepRefineRun:
        """Register a new deep refinement loop. At most one may be live at a time."""
        if self.deep_refining:
            raise RefinementInProgress(f"Session {self.session_id} is already deep refining")
        if self.manual_refining:
            raise RefinementInProgress(f"Session {self.session_id} has a manual refinement running")
        run = DeepRefineRun()
        self._deep_run = run
        return run

    def end_deep_refine(self, run: DeepRefineRun) -> None:
        if self._deep_run is run:
            self._deep_run = None

    def request_stop(self) -> bool:
        """Cancel the live deep refinement. Returns False when none was running."""
        if not self.deep_refining:
            return False
        self._deep_run.cancel()
        return True

    def snapshot(self) -> dict[str, Any]:
        """Wire-ready view for the API."""
        return {
            "sessionId": self.session_id,
            "filename": self.document.filename,
            "stage": self.stage.value,
            "failureReason": self.failure_reason or None,
            "extracted": self.extracted.to_wire() if self.extracted else None,
            "geocode": self.geocode.to_wire() if self.geocode else None,
            "useCornerBased": self.use_corner_based,
            "cornerPosition": self.corner_position.value if self.corner_position else None,
            "aspectRatio": self.aspect_ratio,
            "currentBounds": self.current_bounds.to_wire() if self.current_bounds else None,
            "originalBounds": self._original_bounds.to_wire() if self._original_bounds else None,
            "roadGeometries": [r.to_wire() for r in self.road_geometries],
            "iterationCount": self.iteration_count,
            "refinementCount": self.refinement_count,
            "deepRefining": self.deep_refining,
            "historyLength": len(self._history),
            "opacity": self.opacity,
        }
