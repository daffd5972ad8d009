"""POST /api/roads/geometry: road polyline for map highlighting."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from plan_overlay.dependencies import get_collaborators, get_pipeline_config
from plan_overlay.engine import Collaborators, PipelineConfig
from plan_overlay.engine.locate import call_with_timeout
from plan_overlay.errors import GeocodeNotFound, RoadGeometryUnavailable
from plan_overlay.models.requests import RoadGeometryRequest
from plan_overlay.models.responses import RoadGeometryResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/roads/geometry", response_model=RoadGeometryResponse)
async def road_geometry(
    req: RoadGeometryRequest,
    collaborators: Collaborators = Depends(get_collaborators),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> RoadGeometryResponse:
    timeout = config.collaborator_timeout_seconds
    near = req.near_point
    if near is None:
        query = ", ".join(p for p in (req.road_name, req.city, req.state) if p)
        logger.info("Geocoding road %r", query)
        located = await call_with_timeout(collaborators.geocode(query), timeout)
        if located is None:
            raise GeocodeNotFound(f"Could not locate road: {req.road_name}")
        near = located.point

    points = await call_with_timeout(
        collaborators.fetch_road_geometry(req.road_name, near, req.radius_meters), timeout
    )
    if not points:
        raise RoadGeometryUnavailable(f"Could not get geometry for road: {req.road_name}")
    return RoadGeometryResponse(road_name=req.road_name, points=points, point_count=len(points))
