"""The external services the pipeline awaits, bundled as plain async callables.

The engine only ever sees a :class:`Collaborators`; production wiring lives
in :func:`build_default_collaborators`, and tests pass fakes.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from plan_overlay.models.geo import Bounds, GeocodeResult, GeoPoint
from plan_overlay.models.plan import ExtractedPlanData, PlanDocument
from plan_overlay.models.refinement import DeepRefinementResponse, RefinementAdjustment

if TYPE_CHECKING:
    import httpx

    from plan_overlay.config import Settings
    from plan_overlay.engine.context import PipelineSession

ExtractFn = Callable[[PlanDocument], Awaitable[ExtractedPlanData]]
GeocodeFn = Callable[[str], Awaitable[GeocodeResult | None]]
RoadGeometryFn = Callable[[str, GeoPoint, float], Awaitable[list[GeoPoint] | None]]
VisualRefineFn = Callable[
    [bytes, PlanDocument, Bounds, "PipelineSession"], Awaitable[RefinementAdjustment | None]
]
DeepRefineFn = Callable[
    [bytes, bytes, Bounds, Bounds, int, float], Awaitable[DeepRefinementResponse]
]
CompositeScreenshotFn = Callable[[PlanDocument, Bounds, float], Awaitable[bytes | None]]
TerrainScreenshotFn = Callable[[Bounds], Awaitable[bytes | None]]


@dataclass
class Collaborators:
    extract_location_data: ExtractFn
    geocode: GeocodeFn
    fetch_road_geometry: RoadGeometryFn
    request_visual_refinement: VisualRefineFn
    request_deep_refinement: DeepRefineFn
    capture_composite_screenshot: CompositeScreenshotFn
    capture_terrain_screenshot: TerrainScreenshotFn


def build_default_collaborators(settings: Settings, client: httpx.AsyncClient) -> Collaborators:
    """Anthropic models for the AI steps, Google Maps web services for the rest."""
    from plan_overlay.llm.client import PlanVisionClient
    from plan_overlay.services.geocoding import GoogleGeocoder
    from plan_overlay.services.roads import DirectionsRoadGeometry
    from plan_overlay.services.static_maps import StaticMapScreenshots

    vision = PlanVisionClient(settings)
    geocoder = GoogleGeocoder(client, settings)
    roads = DirectionsRoadGeometry(client, settings)
    screenshots = StaticMapScreenshots(client, settings)

    return Collaborators(
        extract_location_data=vision.extract_location_data,
        geocode=geocoder.geocode,
        fetch_road_geometry=roads.fetch_road_geometry,
        request_visual_refinement=vision.request_visual_refinement,
        request_deep_refinement=vision.request_deep_refinement,
        capture_composite_screenshot=screenshots.capture_composite,
        capture_terrain_screenshot=screenshots.capture_terrain,
    )
