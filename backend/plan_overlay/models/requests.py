"""API request models."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from plan_overlay.models.base import CamelModel
from plan_overlay.models.geo import Bounds, GeoPoint
from plan_overlay.models.plan import PlanDocument
from plan_overlay.models.refinement import RefinementAdjustment


class GeocodeRequest(CamelModel):
    address: str = Field(..., min_length=1, description="Free-form address to geocode")


class IntersectionGeocodeRequest(CamelModel):
    road1: str = Field(..., min_length=1)
    road2: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = ""


class RoadGeometryRequest(CamelModel):
    road_name: str = Field(..., min_length=1)
    near_point: GeoPoint | None = Field(
        default=None,
        validation_alias=AliasChoices("nearPoint", "near_point", "intersectionPoint"),
        description="Search around this point; the road is geocoded when omitted",
    )
    city: str = ""
    state: str = ""
    radius_meters: float = Field(default=1000.0, gt=0)


class CalculateBoundsRequest(CamelModel):
    center: GeoPoint
    size_meters: float = Field(..., gt=0)
    aspect_ratio: float = Field(default=1.0, gt=0)


class CornerBoundsRequest(CamelModel):
    corner: GeoPoint
    corner_position: str = Field(..., description="northwest, northeast, southwest or southeast")
    size_meters: float = Field(..., gt=0)
    aspect_ratio: float = Field(default=1.0, gt=0)


class AdjustBoundsRequest(CamelModel):
    bounds: Bounds
    adjustment: RefinementAdjustment


class ParcelLookupRequest(CamelModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)
    include_assessor_details: bool = False


class ParcelSearchRequest(CamelModel):
    query: str = Field(..., min_length=1)


class ExtractRequest(CamelModel):
    document: PlanDocument


class PipelineRequest(CamelModel):
    document: PlanDocument
    opacity: float = Field(default=0.6, ge=0.0, le=1.0)


class SetBoundsRequest(CamelModel):
    bounds: Bounds


class DeepRefineRequest(CamelModel):
    max_iterations: int = Field(default=5, ge=1, le=20)
    max_shift_meters: float = Field(default=200.0, gt=0)
