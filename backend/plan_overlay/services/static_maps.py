"""Map screenshots for refinement, built from the Google Static Maps API with Pillow.

The composite is a hybrid satellite tile with the plan overlay drawn at
its current bounds and opacity; the terrain view is a plain terrain map
around the overlay center.
"""

from __future__ import annotations

import io
import logging
import math

import httpx
from PIL import Image

from plan_overlay.config import Settings
from plan_overlay.llm.retry import with_backoff
from plan_overlay.models.geo import Bounds, GeoPoint
from plan_overlay.models.plan import PlanDocument
from plan_overlay.services.http import get_bytes
from plan_overlay.utils.data_urls import open_image, parse_data_url

logger = logging.getLogger(__name__)

STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"

TILE_SIZE = 256
COMPOSITE_SIZE = (640, 640)
TERRAIN_SIZE = (800, 600)
TERRAIN_ZOOM = 17
MIN_ZOOM = 10
MAX_ZOOM = 20


def zoom_for_bounds(bounds: Bounds) -> int:
    """Zoom that fits the overlay's latitude span in a 640px tile."""
    span_km = bounds.lat_span * 111
    return min(MAX_ZOOM, max(MIN_ZOOM, math.floor(14 - math.log2(span_km))))


def world_pixel(point: GeoPoint, zoom: int) -> tuple[float, float]:
    """Web Mercator pixel coordinates of ``point`` at ``zoom``."""
    scale = TILE_SIZE * 2**zoom
    sin_lat = math.sin(math.radians(point.lat))
    sin_lat = min(max(sin_lat, -0.9999), 0.9999)
    x = (point.lng + 180.0) / 360.0 * scale
    y = (0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)) * scale
    return x, y


def overlay_box(bounds: Bounds, zoom: int, size: tuple[int, int]) -> tuple[int, int, int, int]:
    """(left, top, right, bottom) image pixels of ``bounds`` on a map centered on it."""
    cx, cy = world_pixel(bounds.center, zoom)
    left, top = world_pixel(GeoPoint(lat=bounds.north, lng=bounds.west), zoom)
    right, bottom = world_pixel(GeoPoint(lat=bounds.south, lng=bounds.east), zoom)
    half_w, half_h = size[0] / 2, size[1] / 2
    return (
        round(left - cx + half_w),
        round(top - cy + half_h),
        round(right - cx + half_w),
        round(bottom - cy + half_h),
    )


def composite_overlay(
    base: Image.Image,
    overlay: Image.Image,
    box: tuple[int, int, int, int],
    opacity: float,
) -> Image.Image:
    """Paste ``overlay`` resized into ``box`` over ``base`` at ``opacity``."""
    left, top, right, bottom = box
    width, height = max(1, right - left), max(1, bottom - top)

    canvas = base.convert("RGBA")
    layer = overlay.convert("RGBA").resize((width, height))
    alpha = layer.getchannel("A").point(lambda a: round(a * opacity))
    layer.putalpha(alpha)

    sheet = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    sheet.paste(layer, (left, top))
    return Image.alpha_composite(canvas, sheet)


def to_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class StaticMapScreenshots:
    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self.client = client
        self.settings = settings

    async def _fetch_map(self, center: GeoPoint, zoom: int, size: tuple[int, int], maptype: str) -> bytes:
        params = {
            "center": f"{center.lat},{center.lng}",
            "zoom": zoom,
            "size": f"{size[0]}x{size[1]}",
            "maptype": maptype,
            "key": self.settings.google_maps_api_key,
        }
        return await with_backoff(
            lambda: get_bytes(self.client, STATIC_MAP_URL, params=params, label="Static Maps API"),
            attempts=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay_seconds,
            label=f"{maptype} static map",
        )

    async def capture_composite(self, document: PlanDocument, bounds: Bounds, opacity: float) -> bytes | None:
        """Satellite view with the overlay on top, or None when unavailable."""
        if not self.settings.google_maps_api_key:
            logger.info("No maps key, composite screenshot unavailable")
            return None
        source = document.overlay_source
        if source is None:
            logger.info("No overlay image for %s, composite screenshot unavailable", document.filename)
            return None

        zoom = zoom_for_bounds(bounds)
        raw_map = await self._fetch_map(bounds.center, zoom, COMPOSITE_SIZE, "hybrid")
        base = open_image(raw_map)
        if base.size != COMPOSITE_SIZE:
            base = base.resize(COMPOSITE_SIZE)
        _, raw_overlay = parse_data_url(source)
        overlay = open_image(raw_overlay)

        box = overlay_box(bounds, zoom, COMPOSITE_SIZE)
        logger.debug("Composite at zoom %d, overlay box %s", zoom, box)
        return to_png(composite_overlay(base, overlay, box, opacity))

    async def capture_terrain(self, bounds: Bounds) -> bytes | None:
        if not self.settings.google_maps_api_key:
            logger.info("No maps key, terrain screenshot unavailable")
            return None
        return await self._fetch_map(bounds.center, TERRAIN_ZOOM, TERRAIN_SIZE, "terrain")
