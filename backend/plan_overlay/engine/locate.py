"""Geocoding policy: intersection first, then address, then a single road,
then coordinates printed on the plan.

A strategy fails when the geocoder returns nothing, raises a
:class:`PlanOverlayError` or times out; the next strategy is then tried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TypeVar

from plan_overlay.engine.collaborators import GeocodeFn, RoadGeometryFn
from plan_overlay.errors import GeocodeNotFound, PlanOverlayError, RoadGeometryUnavailable
from plan_overlay.models.geo import GeocodeResult, GeoPoint, RoadGeometry
from plan_overlay.models.plan import CornerPosition, ExtractedIntersection, ExtractedPlanData

logger = logging.getLogger(__name__)

T = TypeVar("T")

INTERSECTION = "intersection"
ADDRESS = "address"
ROAD = "road"
COORDINATES = "coordinates"


@dataclass
class SiteLocation:
    geocode: GeocodeResult
    strategy: str
    query: str
    corner_position: CornerPosition | None = None
    intersection: ExtractedIntersection | None = None

    @property
    def use_corner_based(self) -> bool:
        return self.corner_position is not None


async def call_with_timeout(awaitable: Awaitable[T], timeout: float) -> T:
    return await asyncio.wait_for(awaitable, timeout=timeout)


def _join(*parts: str | None) -> str:
    return ", ".join(p.strip() for p in parts if p and p.strip())


async def _try_geocode(geocode: GeocodeFn, query: str, timeout: float) -> GeocodeResult | None:
    if not query:
        return None
    try:
        result = await call_with_timeout(geocode(query), timeout)
    except (PlanOverlayError, TimeoutError) as e:
        logger.warning("Geocode %r failed: %r", query, e)
        return None
    if result is None:
        logger.info("Geocode %r: no match", query)
    return result


async def geocode_intersection(
    geocode: GeocodeFn,
    road1: str,
    road2: str,
    city: str | None,
    state: str | None,
    timeout: float,
) -> tuple[GeocodeResult | None, str]:
    """Try ``"A & B, city, state"`` then ``"A and B, city, state"``."""
    query = ""
    for joiner in ("&", "and"):
        query = _join(f"{road1} {joiner} {road2}", city, state)
        logger.info("Geocoding intersection %r", query)
        result = await _try_geocode(geocode, query, timeout)
        if result is not None:
            return result, query
    return None, query


def first_cornered_intersection(extracted: ExtractedPlanData) -> ExtractedIntersection | None:
    for intersection in extracted.intersections:
        if intersection.corner_position is not None:
            return intersection
    return None


async def locate_site(
    extracted: ExtractedPlanData,
    geocode: GeocodeFn,
    timeout: float,
) -> SiteLocation:
    """Resolve the site anchor or raise :class:`GeocodeNotFound`."""
    intersection = first_cornered_intersection(extracted)
    if intersection is not None and extracted.city:
        result, query = await geocode_intersection(
            geocode, intersection.road1, intersection.road2, extracted.city, extracted.state, timeout
        )
        if result is not None:
            return SiteLocation(
                geocode=result,
                strategy=INTERSECTION,
                query=query,
                corner_position=intersection.corner_position,
                intersection=intersection,
            )
        logger.info("Intersection geocoding failed, falling back to address")

    if extracted.address:
        query = _join(extracted.address, extracted.city, extracted.state)
        result = await _try_geocode(geocode, query, timeout)
        if result is not None:
            return SiteLocation(geocode=result, strategy=ADDRESS, query=query)

    road = extracted.primary_road
    if road is not None and extracted.city:
        query = _join(road.name, extracted.city, extracted.state)
        logger.info("Trying road-based geocode %r", query)
        result = await _try_geocode(geocode, query, timeout)
        if result is not None:
            return SiteLocation(geocode=result, strategy=ROAD, query=query)

    point = extracted.coordinates
    if point is not None:
        query = f"{point.lat:.6f},{point.lng:.6f}"
        logger.info("Using coordinates read from the plan: %s", query)
        return SiteLocation(
            geocode=GeocodeResult(lat=point.lat, lng=point.lng, formatted_address=query),
            strategy=COORDINATES,
            query=query,
        )

    raise GeocodeNotFound("No address or roads to geocode")


async def _fetch_one_road(
    fetch: RoadGeometryFn,
    road_name: str,
    near: GeoPoint,
    radius_meters: float,
    timeout: float,
) -> RoadGeometry:
    points = await call_with_timeout(fetch(road_name, near, radius_meters), timeout)
    if not points:
        raise RoadGeometryUnavailable(f"No geometry for {road_name!r}")
    return RoadGeometry(road_name=road_name, points=points)


async def fetch_road_geometries(
    fetch: RoadGeometryFn,
    road_names: list[str],
    near: GeoPoint,
    radius_meters: float,
    timeout: float,
) -> list[RoadGeometry]:
    """Fetch every road concurrently. Failed roads are logged and left out."""
    results = await asyncio.gather(
        *(_fetch_one_road(fetch, name, near, radius_meters, timeout) for name in road_names),
        return_exceptions=True,
    )

    geometries: list[RoadGeometry] = []
    for name, result in zip(road_names, results):
        if isinstance(result, RoadGeometry):
            geometries.append(result)
        elif isinstance(result, Exception):
            logger.warning("Road geometry for %r unavailable: %r", name, result)
        else:
            raise result
    return geometries
