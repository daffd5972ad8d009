"""POST /api/pipeline/stream: position a plan, streaming stage events."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from plan_overlay.dependencies import get_pipeline, get_session_store
from plan_overlay.engine import PipelineSession, PositioningPipeline, SessionStore
from plan_overlay.llm.stream import sse_done, sse_event
from plan_overlay.models.requests import PipelineRequest

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _stream_pipeline(
    pipeline: PositioningPipeline, session: PipelineSession
) -> AsyncGenerator[str, None]:
    yield sse_event("session", {"sessionId": session.session_id, "filename": session.document.filename})
    async for event in pipeline.run(session):
        yield sse_event("stage", event.to_wire())
    yield sse_done()


@router.post("/pipeline/stream")
async def pipeline_stream(
    req: PipelineRequest,
    pipeline: PositioningPipeline = Depends(get_pipeline),
    store: SessionStore = Depends(get_session_store),
) -> StreamingResponse:
    session = store.create(req.document, opacity=req.opacity)
    return StreamingResponse(
        _stream_pipeline(pipeline, session),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
