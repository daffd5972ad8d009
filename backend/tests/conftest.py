"""Shared test fixtures."""

from __future__ import annotations

import io
from typing import Any

import pytest
from PIL import Image

from plan_overlay.config import Settings
from plan_overlay.engine import Collaborators, PipelineConfig, PipelineSession
from plan_overlay.models.geo import Bounds, GeocodeResult, GeoPoint
from plan_overlay.models.plan import (
    Direction,
    ExtractedIntersection,
    ExtractedPlanData,
    ExtractedRoad,
    PlanDocument,
)
from plan_overlay.models.refinement import DeepRefinementResponse, RefinementAdjustment
from plan_overlay.utils.data_urls import to_data_url

# Sun City, AZ: the site used throughout the tests
SUN_CITY = GeoPoint(lat=33.623, lng=-112.283)

ADDRESS_QUERY = "13000 W Bell Rd, Sun City, AZ"
INTERSECTION_QUERY = "W Bell Rd & N 107th Ave, Sun City, AZ"
INTERSECTION_AND_QUERY = "W Bell Rd and N 107th Ave, Sun City, AZ"
ROAD_QUERY = "W Bell Rd, Sun City, AZ"


def png_bytes(width: int = 200, height: int = 100, color: tuple[int, int, int] = (255, 255, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def png_document(width: int = 200, height: int = 100, **kwargs: Any) -> PlanDocument:
    return PlanDocument(filename="site-plan.png", data_url=to_data_url(png_bytes(width, height)), **kwargs)


def make_extracted(**overrides: Any) -> ExtractedPlanData:
    """Address-only plan: no cornered intersection, so placement is centered."""
    data: dict[str, Any] = {
        "project_name": "Bell Road Medical Office",
        "address": "13000 W Bell Rd",
        "city": "Sun City",
        "state": "AZ",
        "roads": [
            ExtractedRoad(name="W Bell Rd", direction=Direction.SOUTH, is_primary=True),
            ExtractedRoad(name="N 107th Ave", direction=Direction.WEST),
        ],
        "estimated_size_meters": 200.0,
    }
    data.update(overrides)
    return ExtractedPlanData(**data)


def make_cornered_extracted(corner: str = "southwest", **overrides: Any) -> ExtractedPlanData:
    intersection = ExtractedIntersection(road1="W Bell Rd", road2="N 107th Ave", corner_position=corner)
    return make_extracted(intersections=[intersection], **overrides)


def sun_city_geocode(query: str = ADDRESS_QUERY) -> GeocodeResult:
    return GeocodeResult(lat=SUN_CITY.lat, lng=SUN_CITY.lng, formatted_address=f"{query}, USA")


def square_bounds(center: GeoPoint = SUN_CITY, half_span: float = 0.001) -> Bounds:
    return Bounds(
        north=center.lat + half_span,
        south=center.lat - half_span,
        east=center.lng + half_span,
        west=center.lng - half_span,
    )


def adjustment(north: float = 0.0, east: float = 0.0, scale: float = 1.0, confidence: float = 0.5) -> RefinementAdjustment:
    return RefinementAdjustment.model_validate({
        "shiftMeters": {"north": north, "east": east},
        "scaleFactor": scale,
        "confidence": confidence,
    })


def _resolve(value: Any) -> Any:
    if isinstance(value, BaseException):
        raise value
    return value


class FakeServices:
    """Scripted collaborators. Exceptions in the script are raised when reached."""

    def __init__(
        self,
        extracted: ExtractedPlanData | Exception | None = None,
        geocodes: dict[str, GeocodeResult | Exception | None] | None = None,
        roads: dict[str, list[GeoPoint] | Exception | None] | None = None,
        refinements: list[RefinementAdjustment | Exception | None] | None = None,
        deep_responses: list[DeepRefinementResponse | Exception] | None = None,
        composite: bytes | None = b"composite",
        terrain: bytes | None = b"terrain",
    ) -> None:
        self.extracted = extracted if extracted is not None else make_extracted()
        self.geocodes = geocodes if geocodes is not None else {ADDRESS_QUERY: sun_city_geocode()}
        self.roads = roads or {}
        self.refinements = list(refinements or [])
        self.deep_responses = list(deep_responses or [])
        self.composite = composite
        self.terrain = terrain
        self.geocode_queries: list[str] = []
        self.deep_calls: list[dict[str, Any]] = []
        self.on_deep_refinement = None

    async def extract_location_data(self, document: PlanDocument) -> ExtractedPlanData:
        return _resolve(self.extracted)

    async def geocode(self, query: str) -> GeocodeResult | None:
        self.geocode_queries.append(query)
        return _resolve(self.geocodes.get(query))

    async def fetch_road_geometry(self, road_name: str, near: GeoPoint, radius: float) -> list[GeoPoint] | None:
        return _resolve(self.roads.get(road_name))

    async def request_visual_refinement(self, screenshot, document, bounds, session) -> RefinementAdjustment | None:
        session.record_turn("user", "compare")
        value = self.refinements.pop(0) if self.refinements else None
        session.record_turn("assistant", repr(value))
        return _resolve(value)

    async def request_deep_refinement(self, drawing, terrain, current, original, iteration, max_shift) -> DeepRefinementResponse:
        self.deep_calls.append({"current": current, "original": original, "iteration": iteration, "max_shift": max_shift})
        if self.on_deep_refinement is not None:
            self.on_deep_refinement(iteration)
        value = self.deep_responses.pop(0) if self.deep_responses else DeepRefinementResponse()
        return _resolve(value)

    async def capture_composite_screenshot(self, document, bounds, opacity) -> bytes | None:
        return _resolve(self.composite)

    async def capture_terrain_screenshot(self, bounds) -> bytes | None:
        return _resolve(self.terrain)

    def bundle(self) -> Collaborators:
        return Collaborators(
            extract_location_data=self.extract_location_data,
            geocode=self.geocode,
            fetch_road_geometry=self.fetch_road_geometry,
            request_visual_refinement=self.request_visual_refinement,
            request_deep_refinement=self.request_deep_refinement,
            capture_composite_screenshot=self.capture_composite_screenshot,
            capture_terrain_screenshot=self.capture_terrain_screenshot,
        )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        anthropic_api_key="test-anthropic-key",
        google_maps_api_key="test-maps-key",
        maricopa_assessor_token="",
        max_retries=1,
        retry_base_delay_seconds=0.0,
    )


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig(collaborator_timeout_seconds=5.0)


@pytest.fixture
def document() -> PlanDocument:
    return png_document()


@pytest.fixture
def fake_services() -> FakeServices:
    return FakeServices()


@pytest.fixture
def positioned_session(document: PlanDocument) -> PipelineSession:
    session = PipelineSession(document=document)
    session.anchor(square_bounds())
    return session
