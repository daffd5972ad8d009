"""Road polylines from the Google Directions API.

There is no "geometry of road X" endpoint, so we ask for driving directions
between two points either side of the anchor along the road's likely axis
and take the route's overview polyline.
"""

from __future__ import annotations

import logging
import re

import httpx

from plan_overlay.config import Settings
from plan_overlay.errors import CollaboratorUnavailable
from plan_overlay.llm.retry import with_backoff
from plan_overlay.models.geo import GeoPoint
from plan_overlay.services.http import get_json
from plan_overlay.utils.geodesy import meters_to_lat_degrees, meters_to_lng_degrees
from plan_overlay.utils.polyline import decode_polyline

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

# Local arterials known to run north-south
_NORTH_SOUTH_NAMES = ("kyrene", "mill", "rural")
_NORTH_SOUTH_PREFIXES = ("n", "n.", "s", "s.", "north", "south")
_STREET_SUFFIXES = ("st", "st.", "street")
_WORD = re.compile(r"[a-z.]+")


def is_north_south(road_name: str) -> bool:
    """Guess a road's axis from its name. Defaults to east-west.

    Phoenix-area convention: numbered and named "Streets" and roads with an
    N/S directional prefix run north-south.
    """
    words = _WORD.findall(road_name.lower())
    if not words:
        return False
    if any(name in words for name in _NORTH_SOUTH_NAMES):
        return True
    return words[0] in _NORTH_SOUTH_PREFIXES or words[-1] in _STREET_SUFFIXES


def search_endpoints(road_name: str, near: GeoPoint, radius_meters: float) -> tuple[str, str]:
    """Directions origin/destination ``"lat,lng"`` strings around ``near``."""
    if is_north_south(road_name):
        lat_offset = meters_to_lat_degrees(radius_meters)
        return f"{near.lat + lat_offset},{near.lng}", f"{near.lat - lat_offset},{near.lng}"
    lng_offset = meters_to_lng_degrees(radius_meters, near.lat)
    return f"{near.lat},{near.lng - lng_offset}", f"{near.lat},{near.lng + lng_offset}"


class DirectionsRoadGeometry:
    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self.client = client
        self.settings = settings

    async def fetch_road_geometry(
        self,
        road_name: str,
        near_point: GeoPoint,
        search_radius_meters: float = 1000.0,
    ) -> list[GeoPoint] | None:
        if not self.settings.google_maps_api_key:
            raise CollaboratorUnavailable("GOOGLE_MAPS_API_KEY not set for directions")

        origin, destination = search_endpoints(road_name, near_point, search_radius_meters)
        logger.info(
            "Getting geometry for %r (%s) from %s to %s",
            road_name, "N-S" if is_north_south(road_name) else "E-W", origin, destination,
        )
        params = {
            "origin": origin,
            "destination": destination,
            "mode": "driving",
            "key": self.settings.google_maps_api_key,
        }
        data = await with_backoff(
            lambda: get_json(self.client, DIRECTIONS_URL, params=params, label="Directions API"),
            attempts=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay_seconds,
            label=f"directions for {road_name!r}",
        )

        routes = data.get("routes") or []
        encoded = routes[0].get("overview_polyline", {}).get("points") if routes else None
        if data.get("status") == "OK" and encoded:
            points = decode_polyline(encoded)
            logger.info("Got %d points for %r", len(points), road_name)
            return points

        logger.error("Directions API failed: %s %s", data.get("status"), data.get("error_message", ""))
        return None
