"""Google Maps Geocoding API."""

from __future__ import annotations

import logging

import httpx

from plan_overlay.config import Settings
from plan_overlay.errors import CollaboratorUnavailable, RateLimited, TransientNetworkError
from plan_overlay.llm.retry import with_backoff
from plan_overlay.models.geo import GeocodeResult
from plan_overlay.services.http import get_json

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GoogleGeocoder:
    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self.client = client
        self.settings = settings

    async def geocode(self, query: str) -> GeocodeResult | None:
        """First match for ``query``, or None when Google finds nothing."""
        if not self.settings.google_maps_api_key:
            raise CollaboratorUnavailable("GOOGLE_MAPS_API_KEY not set for geocoding")
        return await with_backoff(
            lambda: self._geocode_once(query),
            attempts=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay_seconds,
            label=f"geocode {query!r}",
        )

    async def _geocode_once(self, query: str) -> GeocodeResult | None:
        data = await get_json(
            self.client,
            GEOCODE_URL,
            params={"address": query, "key": self.settings.google_maps_api_key},
            label="Geocoding API",
        )
        status = data.get("status")
        results = data.get("results") or []

        if status == "OK" and results:
            first = results[0]
            location = first["geometry"]["location"]
            result = GeocodeResult(
                lat=location["lat"],
                lng=location["lng"],
                formatted_address=first.get("formatted_address", ""),
            )
            logger.info("Geocoded %r -> %.6f, %.6f (%s)", query, result.lat, result.lng, result.formatted_address)
            return result
        if status == "OVER_QUERY_LIMIT":
            raise RateLimited("Geocoding API over query limit")
        if status == "UNKNOWN_ERROR":
            raise TransientNetworkError("Geocoding API unknown error")
        if status != "ZERO_RESULTS":
            logger.error("Geocoding failed: %s %s", status, data.get("error_message", ""))
        return None
