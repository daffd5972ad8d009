"""POST /api/bounds/*: the deterministic placement math."""

from __future__ import annotations

from fastapi import APIRouter

from plan_overlay.engine.adjustment import apply_adjustment
from plan_overlay.engine.bounds import compute_bounds_from_center, compute_bounds_from_corner
from plan_overlay.models.requests import AdjustBoundsRequest, CalculateBoundsRequest, CornerBoundsRequest
from plan_overlay.models.responses import BoundsResponse

router = APIRouter()


@router.post("/bounds/calculate", response_model=BoundsResponse)
async def calculate(req: CalculateBoundsRequest) -> BoundsResponse:
    return BoundsResponse(bounds=compute_bounds_from_center(req.center, req.size_meters, req.aspect_ratio))


@router.post("/bounds/from-corner", response_model=BoundsResponse)
async def from_corner(req: CornerBoundsRequest) -> BoundsResponse:
    bounds = compute_bounds_from_corner(req.corner, req.corner_position, req.size_meters, req.aspect_ratio)
    return BoundsResponse(bounds=bounds)


@router.post("/bounds/adjust", response_model=BoundsResponse)
async def adjust(req: AdjustBoundsRequest) -> BoundsResponse:
    return BoundsResponse(bounds=apply_adjustment(req.bounds, req.adjustment))
