"""POST /api/ai/extract: run location extraction on its own."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from plan_overlay.dependencies import get_collaborators, get_pipeline_config
from plan_overlay.engine import Collaborators, PipelineConfig
from plan_overlay.engine.locate import call_with_timeout
from plan_overlay.models.plan import ExtractedPlanData
from plan_overlay.models.requests import ExtractRequest

router = APIRouter()


@router.post("/ai/extract", response_model=ExtractedPlanData)
async def extract(
    req: ExtractRequest,
    collaborators: Collaborators = Depends(get_collaborators),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> ExtractedPlanData:
    return await call_with_timeout(
        collaborators.extract_location_data(req.document), config.collaborator_timeout_seconds
    )
