"""POST /api/geocode and /api/geocode/intersection."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from plan_overlay.dependencies import get_collaborators, get_pipeline_config
from plan_overlay.engine import Collaborators, PipelineConfig
from plan_overlay.engine.locate import call_with_timeout, geocode_intersection
from plan_overlay.errors import GeocodeNotFound
from plan_overlay.models.geo import GeocodeResult
from plan_overlay.models.requests import GeocodeRequest, IntersectionGeocodeRequest

router = APIRouter()


@router.post("/geocode", response_model=GeocodeResult)
async def geocode(
    req: GeocodeRequest,
    collaborators: Collaborators = Depends(get_collaborators),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> GeocodeResult:
    result = await call_with_timeout(collaborators.geocode(req.address), config.collaborator_timeout_seconds)
    if result is None:
        raise GeocodeNotFound(f"Geocoding failed for: {req.address}")
    return result


@router.post("/geocode/intersection", response_model=GeocodeResult)
async def intersection(
    req: IntersectionGeocodeRequest,
    collaborators: Collaborators = Depends(get_collaborators),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> GeocodeResult:
    result, _ = await geocode_intersection(
        collaborators.geocode,
        req.road1,
        req.road2,
        req.city,
        req.state,
        config.collaborator_timeout_seconds,
    )
    if result is None:
        raise GeocodeNotFound(f"Could not geocode intersection: {req.road1} & {req.road2}")
    return result
