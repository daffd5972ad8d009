"""Visual refinement: one composite-screenshot pass, and the iterative deep loop."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from plan_overlay.engine.adjustment import (
    apply_adjustment,
    clamp_adjustment,
    shift_distance_meters,
    should_continue,
)
from plan_overlay.engine.collaborators import Collaborators
from plan_overlay.engine.config import PipelineConfig
from plan_overlay.engine.context import DeepRefineRun, PipelineSession
from plan_overlay.engine.locate import call_with_timeout
from plan_overlay.errors import (
    BoundsInvariantViolation,
    CollaboratorUnavailable,
    InvalidAdjustment,
    PlanOverlayError,
    SessionNotPositioned,
)
from plan_overlay.models.geo import Bounds
from plan_overlay.models.refinement import (
    DeepRefineIteration,
    DeepRefinementResponse,
    RefinementOutcome,
    StopReason,
)

logger = logging.getLogger(__name__)

NO_CHANGE_MESSAGE = "No change needed, alignment looks good"


def require_bounds(session: PipelineSession) -> Bounds:
    if session.current_bounds is None:
        raise SessionNotPositioned(f"Session {session.session_id} has not been positioned")
    return session.current_bounds


async def refine_once(
    session: PipelineSession,
    collaborators: Collaborators,
    config: PipelineConfig,
) -> RefinementOutcome:
    """Compare the overlay with satellite imagery once and apply the suggested correction.

    Collaborator failures propagate; an unusable AI answer is reported as no change.
    """
    bounds = require_bounds(session)
    timeout = config.collaborator_timeout_seconds

    screenshot = await call_with_timeout(
        collaborators.capture_composite_screenshot(session.document, bounds, session.opacity),
        timeout,
    )
    if screenshot is None:
        logger.info("Session %s: no composite screenshot, refinement skipped", session.session_id)
        return RefinementOutcome(skipped=True, message="Screenshot unavailable")

    session.refinement_count += 1
    try:
        adjustment = await call_with_timeout(
            collaborators.request_visual_refinement(screenshot, session.document, bounds, session),
            timeout,
        )
        if adjustment is None:
            return RefinementOutcome(no_change=True, message=NO_CHANGE_MESSAGE)
        new_bounds = apply_adjustment(bounds, adjustment)
    except InvalidAdjustment as e:
        logger.warning("Session %s: unusable refinement: %s", session.session_id, e)
        return RefinementOutcome(no_change=True, message=NO_CHANGE_MESSAGE)

    if session.current_bounds != bounds:
        logger.info("Session %s: bounds moved during refinement, adjustment dropped", session.session_id)
        return RefinementOutcome(skipped=True, message="Overlay was moved during refinement")

    session.current_bounds = new_bounds
    logger.info(
        "Session %s: refined by (%.1f N, %.1f E)m x%.3f, confidence %.2f",
        session.session_id,
        adjustment.shift_meters.north,
        adjustment.shift_meters.east,
        adjustment.scale_factor,
        adjustment.confidence,
    )
    return RefinementOutcome(
        adjustment=adjustment,
        bounds=new_bounds,
        message=adjustment.reasoning or "Alignment adjusted",
    )


async def deep_refine_iterations(
    session: PipelineSession,
    run: DeepRefineRun,
    collaborators: Collaborators,
    config: PipelineConfig,
    drawing: bytes,
    max_iterations: int,
    max_shift_meters: float,
) -> AsyncIterator[DeepRefineIteration]:
    """Yield one item per iteration; the last item carries the stop reason.

    ``run`` is checked before each iteration and again between the AI answer
    and applying it, so nothing is applied once it is cancelled. The run is
    released when the loop ends, however it ends.
    """
    original = session.original_bounds or require_bounds(session)
    timeout = config.collaborator_timeout_seconds

    def _stopped(iteration: int, reason: StopReason, **extra) -> DeepRefineIteration:
        logger.info(
            "Session %s: deep refinement %s stopped at iteration %d (%s)",
            session.session_id, run.run_id, iteration, reason.value,
        )
        return DeepRefineIteration(
            iteration=iteration, bounds=session.current_bounds, stop_reason=reason, **extra
        )

    try:
        for iteration in range(1, max_iterations + 1):
            if run.cancelled:
                yield _stopped(iteration, StopReason.CANCELLED)
                return

            current = require_bounds(session)
            try:
                terrain = await call_with_timeout(collaborators.capture_terrain_screenshot(current), timeout)
                if terrain is None:
                    raise CollaboratorUnavailable("Terrain screenshot unavailable")
                response = await call_with_timeout(
                    collaborators.request_deep_refinement(
                        drawing, terrain, current, original, iteration, max_shift_meters
                    ),
                    timeout,
                )
            except InvalidAdjustment as e:
                logger.warning("Session %s: unusable deep refinement answer: %s", session.session_id, e)
                response = DeepRefinementResponse()
            except (PlanOverlayError, TimeoutError) as e:
                yield _stopped(iteration, StopReason.ERROR, error=str(e) or type(e).__name__)
                return

            if run.cancelled:
                yield _stopped(iteration, StopReason.CANCELLED)
                return

            session.iteration_count += 1
            features = response.features_matched or (
                response.adjustment.features_matched if response.adjustment else []
            )
            if response.adjustment is None:
                yield _stopped(iteration, StopReason.NO_ADJUSTMENT, features_matched=features)
                return

            applied, clamped = clamp_adjustment(current, original, response.adjustment, max_shift_meters)
            try:
                new_bounds = apply_adjustment(current, applied)
            except (InvalidAdjustment, BoundsInvariantViolation) as e:
                yield _stopped(iteration, StopReason.ERROR, adjustment=response.adjustment, error=str(e))
                return

            session.current_bounds = new_bounds

            keep_going = response.should_continue and should_continue(
                applied, config.confidence_threshold, config.min_shift_meters
            )
            stop_reason = None
            if not keep_going:
                stop_reason = StopReason.CONVERGED
            elif iteration == max_iterations:
                stop_reason = StopReason.MAX_ITERATIONS

            logger.info(
                "Session %s: deep iteration %d moved %.1fm (%.1f N, %.1f E)%s",
                session.session_id,
                iteration,
                shift_distance_meters(applied),
                applied.shift_meters.north,
                applied.shift_meters.east,
                " [clamped]" if clamped else "",
            )
            yield DeepRefineIteration(
                iteration=iteration,
                adjustment=response.adjustment,
                applied_adjustment=applied,
                features_matched=features,
                bounds=new_bounds,
                bounds_clamped=clamped,
                should_continue=keep_going,
                stop_reason=stop_reason,
            )
            if stop_reason is not None:
                return
    finally:
        session.end_deep_refine(run)
