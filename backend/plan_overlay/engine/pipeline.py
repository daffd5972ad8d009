"""Pipeline orchestrator: read -> extract -> geocode -> position -> refine.

``PositioningPipeline.run`` is an async generator of :class:`PipelineEvent`
and always ends with a ``settled`` or ``failed`` event. Refinement errors
are absorbed because the bounds already come from a successful geocode;
every earlier stage is fatal on failure.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from typing import Any

from plan_overlay.engine.bounds import (
    clamp_size_meters,
    compute_bounds_from_center,
    compute_bounds_from_corner,
    validate_bounds,
)
from plan_overlay.engine.collaborators import Collaborators
from plan_overlay.engine.config import PipelineConfig
from plan_overlay.engine.context import PipelineSession
from plan_overlay.engine.locate import call_with_timeout, fetch_road_geometries, locate_site
from plan_overlay.engine.refinement import deep_refine_iterations, refine_once, require_bounds
from plan_overlay.errors import (
    BoundsInvariantViolation,
    DocumentReadError,
    GeocodeNotFound,
    PlanOverlayError,
    RefinementInProgress,
)
from plan_overlay.models.events import EventStatus, PipelineEvent, Stage
from plan_overlay.models.geo import Bounds
from plan_overlay.models.refinement import DeepRefineIteration, RefinementOutcome
from plan_overlay.utils.data_urls import image_aspect_ratio, parse_data_url

logger = logging.getLogger(__name__)


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


class PositioningPipeline:
    """Drives one session through the positioning stages."""

    def __init__(
        self,
        collaborators: Collaborators,
        config: PipelineConfig | None = None,
    ) -> None:
        self.collaborators = collaborators
        self.config = config or PipelineConfig()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @staticmethod
    def _event(
        session: PipelineSession,
        stage: Stage,
        status: EventStatus,
        message: str = "",
        bounds: Bounds | None = None,
        data: dict[str, Any] | None = None,
    ) -> PipelineEvent:
        if status == EventStatus.STARTED:
            session.stage = stage
        return PipelineEvent(
            session_id=session.session_id,
            stage=stage,
            status=status,
            message=message,
            bounds=bounds,
            data=data or {},
        )

    @staticmethod
    def _fail(session: PipelineSession, reason: str) -> PipelineEvent:
        failed_stage = session.stage
        session.fail(reason)
        logger.warning("Session %s failed during %s: %s", session.session_id, failed_stage.value, reason)
        return PipelineEvent(
            session_id=session.session_id,
            stage=Stage.FAILED,
            status=EventStatus.FAILED,
            message=reason,
            bounds=session.current_bounds,
            data={"failedStage": failed_stage.value},
        )

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def run(self, session: PipelineSession) -> AsyncIterator[PipelineEvent]:
        """Run every stage on ``session``, yielding progress as it goes."""
        if session.stage != Stage.IDLE:
            raise RuntimeError(f"Session {session.session_id} already ran ({session.stage.value})")

        start = time.perf_counter()
        try:
            async for event in self._run_stages(session):
                yield event
        except Exception as e:
            logger.exception("Session %s: unexpected pipeline error", session.session_id)
            yield self._fail(session, f"Unexpected error: {e}")
            return

        logger.info(
            "Session %s finished as %s in %.0fms",
            session.session_id,
            session.stage.value,
            (time.perf_counter() - start) * 1000,
        )

    async def _run_stages(self, session: PipelineSession) -> AsyncIterator[PipelineEvent]:
        cfg = self.config
        timeout = cfg.collaborator_timeout_seconds
        emit = self._event

        # Reading
        yield emit(session, Stage.READING, EventStatus.STARTED, "Reading document")
        try:
            session.aspect_ratio = self._read_document(session)
        except DocumentReadError as e:
            yield self._fail(session, f"Could not read document: {e}")
            return
        yield emit(
            session, Stage.READING, EventStatus.COMPLETED, "Document read",
            data={"aspectRatio": session.aspect_ratio},
        )

        # Extracting
        yield emit(session, Stage.EXTRACTING, EventStatus.STARTED, "Analyzing document")
        try:
            extracted = await call_with_timeout(
                self.collaborators.extract_location_data(session.document), timeout
            )
        except (PlanOverlayError, TimeoutError) as e:
            yield self._fail(session, f"Could not extract location data: {_describe(e)}")
            return
        if not extracted.has_location_data:
            yield self._fail(session, "No location data found in document")
            return
        session.extracted = extracted
        summary = ", ".join(p for p in (extracted.address, extracted.city, extracted.state) if p)
        yield emit(
            session, Stage.EXTRACTING, EventStatus.COMPLETED,
            f"Found: {summary or 'location data'}",
            data={"extracted": extracted.to_wire()},
        )

        # Geocoding
        yield emit(session, Stage.GEOCODING, EventStatus.STARTED, "Geocoding site")
        try:
            location = await locate_site(extracted, self.collaborators.geocode, timeout)
        except GeocodeNotFound as e:
            yield self._fail(session, str(e))
            return
        session.geocode = location.geocode
        session.use_corner_based = location.use_corner_based
        session.corner_position = location.corner_position
        yield emit(
            session, Stage.GEOCODING, EventStatus.COMPLETED,
            f"Geocoded {location.strategy}: {location.geocode.formatted_address or location.query}",
            data={
                "geocode": location.geocode.to_wire(),
                "strategy": location.strategy,
                "query": location.query,
                "cornerPosition": location.corner_position.value if location.corner_position else None,
            },
        )

        if location.use_corner_based and extracted.road_names:
            session.road_geometries = await fetch_road_geometries(
                self.collaborators.fetch_road_geometry,
                extracted.road_names,
                location.geocode.point,
                cfg.road_search_radius_meters,
                timeout,
            )
            if session.road_geometries:
                names = ", ".join(r.road_name for r in session.road_geometries)
                yield emit(
                    session, Stage.GEOCODING, EventStatus.INFO, f"Road highlighting: {names}",
                    data={"roads": [r.to_wire() for r in session.road_geometries]},
                )

        # Positioning
        yield emit(session, Stage.POSITIONING, EventStatus.STARTED, "Computing initial placement")
        size = clamp_size_meters(
            extracted.estimated_size_meters,
            default=cfg.default_size_meters,
            minimum=cfg.min_size_meters,
            maximum=cfg.max_size_meters,
        )
        anchor = location.geocode.point
        try:
            if session.use_corner_based:
                bounds = compute_bounds_from_corner(anchor, session.corner_position, size, session.aspect_ratio)
                method = f"{session.corner_position.value} corner at intersection"
            else:
                bounds = compute_bounds_from_center(anchor, size, session.aspect_ratio)
                method = "centered on address"
        except BoundsInvariantViolation as e:
            yield self._fail(session, f"Could not position overlay: {e}")
            return
        session.anchor(bounds)
        yield emit(
            session, Stage.POSITIONING, EventStatus.COMPLETED,
            f"Positioned overlay: {size:g}m, {method}",
            bounds=bounds,
            data={"sizeMeters": size, "method": method},
        )

        # Refining
        yield emit(session, Stage.REFINING, EventStatus.STARTED, "Comparing with satellite imagery")
        async for event in self._refine_stage(session):
            yield event

        session.stage = Stage.SETTLED
        yield emit(
            session, Stage.SETTLED, EventStatus.COMPLETED, "Processing complete",
            bounds=session.current_bounds,
            data={"session": session.snapshot()},
        )

    async def _refine_stage(self, session: PipelineSession) -> AsyncIterator[PipelineEvent]:
        try:
            outcome = await refine_once(session, self.collaborators, self.config)
        except Exception as e:
            logger.warning("Session %s: refinement failed, keeping placement: %r", session.session_id, e)
            yield self._event(
                session, Stage.REFINING, EventStatus.FAILED,
                f"Refinement failed, keeping initial placement: {_describe(e)}",
                bounds=session.current_bounds,
            )
            return

        if outcome.skipped:
            yield self._event(session, Stage.REFINING, EventStatus.SKIPPED, "Skipped")
        else:
            yield self._event(
                session, Stage.REFINING, EventStatus.COMPLETED, outcome.message,
                bounds=session.current_bounds,
                data={"outcome": outcome.to_wire()},
            )

    def _read_document(self, session: PipelineSession) -> float:
        """Validate the data URLs and return the overlay aspect ratio."""
        document = session.document
        media_type, _ = parse_data_url(document.data_url)
        if document.aspect_ratio:
            return document.aspect_ratio
        overlay = document.overlay_source
        if overlay is None:
            raise DocumentReadError(
                f"{media_type} documents need an overlay image or an aspect ratio"
            )
        _, raw = parse_data_url(overlay)
        return image_aspect_ratio(raw)

    # ------------------------------------------------------------------
    # On-demand operations
    # ------------------------------------------------------------------

    async def request_manual_refinement(self, session: PipelineSession) -> RefinementOutcome:
        if session.deep_refining:
            raise RefinementInProgress(
                f"Session {session.session_id} is deep refining; cancel it before a manual refinement"
            )
        if session.manual_refining:
            raise RefinementInProgress(f"Session {session.session_id} already has a refinement running")
        session.manual_refining = True
        try:
            return await refine_once(session, self.collaborators, self.config)
        finally:
            session.manual_refining = False

    def deep_refine(
        self,
        session: PipelineSession,
        max_iterations: int | None = None,
        max_shift_meters: float | None = None,
    ) -> AsyncIterator[DeepRefineIteration]:
        """Start iterative terrain matching. Preconditions are checked before iterating."""
        if max_iterations is None:
            max_iterations = self.config.deep_refine_max_iterations
        if max_shift_meters is None:
            max_shift_meters = self.config.deep_refine_max_shift_meters
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if max_shift_meters <= 0:
            raise ValueError("max_shift_meters must be positive")

        require_bounds(session)
        overlay = session.document.overlay_source
        if overlay is None:
            raise DocumentReadError("Deep refinement needs a rendered overlay image")
        _, drawing = parse_data_url(overlay)

        run = session.begin_deep_refine()
        logger.info("Session %s: deep refinement %s started", session.session_id, run.run_id)
        return deep_refine_iterations(
            session, run, self.collaborators, self.config, drawing, max_iterations, max_shift_meters
        )

    def set_bounds(self, session: PipelineSession, bounds: Bounds) -> Bounds:
        """Manual drag: replace the current bounds directly.

        A running deep refinement is cancelled so it cannot move the overlay
        away from where the user put it.
        """
        checked = validate_bounds(bounds.north, bounds.south, bounds.east, bounds.west)
        if session.request_stop():
            logger.info("Session %s: manual bounds cancel the running deep refinement", session.session_id)
        if session.original_bounds is None:
            session.anchor(checked)
        else:
            session.current_bounds = checked
        logger.info("Session %s: bounds set manually", session.session_id)
        return checked


def create_pipeline(
    collaborators: Collaborators,
    config: PipelineConfig | None = None,
) -> PositioningPipeline:
    """Factory function for creating a pipeline instance."""
    return PositioningPipeline(collaborators, config=config)
