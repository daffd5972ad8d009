"""API response models."""

from __future__ import annotations

from pydantic import Field

from plan_overlay.models.base import CamelModel
from plan_overlay.models.geo import Bounds, GeoPoint


class HealthResponse(CamelModel):
    status: str = "ok"
    version: str = "0.1.0"


class ConfigResponse(CamelModel):
    maps_api_key: str = ""
    maps_configured: bool = False
    llm_configured: bool = False
    frontier_model: str = ""
    mid_model: str = ""
    cheap_model: str = ""


class BoundsResponse(CamelModel):
    bounds: Bounds


class RoadGeometryResponse(CamelModel):
    road_name: str
    points: list[GeoPoint] = Field(default_factory=list)
    point_count: int = 0


class CancelResponse(CamelModel):
    session_id: str
    stop_requested: bool = False
