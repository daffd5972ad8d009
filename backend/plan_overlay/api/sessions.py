"""Per-session operations after the initial pipeline run."""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from plan_overlay.api.pipeline import SSE_HEADERS
from plan_overlay.dependencies import get_pipeline, get_session, get_session_store
from plan_overlay.engine import PipelineSession, PositioningPipeline, SessionStore
from plan_overlay.llm.stream import sse_done, sse_event
from plan_overlay.models.refinement import DeepRefineIteration, RefinementOutcome
from plan_overlay.models.requests import DeepRefineRequest, SetBoundsRequest
from plan_overlay.models.responses import BoundsResponse, CancelResponse

router = APIRouter(prefix="/sessions")


@router.get("/{session_id}")
async def get_session_state(session: PipelineSession = Depends(get_session)) -> dict[str, Any]:
    return session.snapshot()


@router.delete("/{session_id}")
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)) -> dict[str, Any]:
    if not store.discard(session_id):
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return {"sessionId": session_id, "deleted": True}


@router.put("/{session_id}/bounds", response_model=BoundsResponse)
async def set_bounds(
    req: SetBoundsRequest,
    session: PipelineSession = Depends(get_session),
    pipeline: PositioningPipeline = Depends(get_pipeline),
) -> BoundsResponse:
    return BoundsResponse(bounds=pipeline.set_bounds(session, req.bounds))


@router.post("/{session_id}/refine", response_model=RefinementOutcome)
async def refine(
    session: PipelineSession = Depends(get_session),
    pipeline: PositioningPipeline = Depends(get_pipeline),
) -> RefinementOutcome:
    return await pipeline.request_manual_refinement(session)


async def _stream_iterations(iterations: AsyncIterator[DeepRefineIteration]) -> AsyncGenerator[str, None]:
    async for item in iterations:
        yield sse_event("iteration", item.to_wire())
    yield sse_done()


@router.post("/{session_id}/deep-refine/stream")
async def deep_refine_stream(
    req: DeepRefineRequest,
    session: PipelineSession = Depends(get_session),
    pipeline: PositioningPipeline = Depends(get_pipeline),
) -> StreamingResponse:
    # Preconditions raise here, before the stream opens
    iterations = pipeline.deep_refine(session, req.max_iterations, req.max_shift_meters)
    return StreamingResponse(
        _stream_iterations(iterations),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/{session_id}/deep-refine/cancel", response_model=CancelResponse)
async def cancel_deep_refine(session: PipelineSession = Depends(get_session)) -> CancelResponse:
    return CancelResponse(session_id=session.session_id, stop_requested=session.request_stop())
