"""Maricopa County parcel lookup (public ArcGIS MapServer + optional Assessor API)."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import httpx
from shapely.geometry import Polygon

from plan_overlay.config import Settings
from plan_overlay.errors import CollaboratorUnavailable, PlanOverlayError
from plan_overlay.llm.retry import with_backoff
from plan_overlay.models.geo import GeoPoint, ParcelData
from plan_overlay.services.http import get_json

logger = logging.getLogger(__name__)

ARCGIS_PARCEL_URL = "https://gis.mcassessor.maricopa.gov/arcgis/rest/services/Parcels/MapServer/0/query"
ASSESSOR_BASE_URL = "https://mcassessor.maricopa.gov"

_APN_SEPARATORS = re.compile(r"[-\s.]")


def _first_attr(attrs: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = attrs.get(key)
        if value not in (None, ""):
            return value
    return None


def ring_centroid(ring: list[GeoPoint]) -> GeoPoint | None:
    """Area centroid of a parcel ring; vertex mean for degenerate rings."""
    if not ring:
        return None
    if len(ring) >= 3:
        polygon = Polygon([(p.lng, p.lat) for p in ring])
        if polygon.is_valid and polygon.area > 0:
            c = polygon.centroid
            return GeoPoint(lat=c.y, lng=c.x)
    return GeoPoint(
        lat=sum(p.lat for p in ring) / len(ring),
        lng=sum(p.lng for p in ring) / len(ring),
    )


def parse_parcel_feature(feature: dict[str, Any]) -> ParcelData:
    attrs = feature.get("attributes") or {}
    rings = (feature.get("geometry") or {}).get("rings") or [[]]
    polygon = [GeoPoint(lat=y, lng=x) for x, y, *_ in rings[0]]

    apn = _first_attr(attrs, "APN", "PARCEL_ID", "PARCELNUMB") or ""
    address = _first_attr(attrs, "SITUS", "SITUS_ADDR", "ADDRESS")
    owner = _first_attr(attrs, "OWNER", "OWNER_NAME")
    acres = _first_attr(attrs, "ACRES", "GIS_ACRES")

    return ParcelData(
        apn=str(apn),
        address=str(address) if address is not None else None,
        owner=str(owner) if owner is not None else None,
        acres=float(acres) if acres is not None else None,
        polygon=polygon,
        centroid=ring_centroid(polygon),
        raw_attributes=attrs,
    )


class MaricopaParcels:
    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self.client = client
        self.settings = settings

    async def lookup(self, point: GeoPoint) -> ParcelData | None:
        """Parcel containing ``point``, or None."""
        params = {
            "geometry": json.dumps({"x": point.lng, "y": point.lat}),
            "geometryType": "esriGeometryPoint",
            "inSR": "4326",
            "outSR": "4326",
            "spatialRel": "esriSpatialRelIntersects",
            "outFields": "*",
            "returnGeometry": "true",
            "f": "json",
        }
        logger.info("Querying parcel at %.6f, %.6f", point.lat, point.lng)
        data = await with_backoff(
            lambda: get_json(self.client, ARCGIS_PARCEL_URL, params=params, label="Parcel MapServer"),
            attempts=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay_seconds,
            label="parcel query",
        )
        if data.get("error"):
            logger.error("ArcGIS error: %s", data["error"])
            return None
        features = data.get("features") or []
        if not features:
            logger.info("No parcel found")
            return None

        parcel = parse_parcel_feature(features[0])
        logger.info("Found parcel APN=%s", parcel.apn)
        return parcel

    def _assessor_headers(self) -> dict[str, str]:
        return {"AUTHORIZATION": self.settings.maricopa_assessor_token}

    async def assessor_details(self, apn: str) -> dict[str, Any] | None:
        """Extra parcel details; None without a token or on any upstream failure."""
        if not self.settings.maricopa_assessor_token or not apn:
            return None
        clean = _APN_SEPARATORS.sub("", apn)
        try:
            return await get_json(
                self.client,
                f"{ASSESSOR_BASE_URL}/parcel/{clean}",
                headers=self._assessor_headers(),
                label="Assessor API",
            )
        except PlanOverlayError as e:
            logger.info("Assessor details unavailable for %s: %s", apn, e)
            return None

    async def search(self, query: str) -> dict[str, Any]:
        if not self.settings.maricopa_assessor_token:
            raise CollaboratorUnavailable("MARICOPA_ASSESSOR_TOKEN not configured")
        return await get_json(
            self.client,
            f"{ASSESSOR_BASE_URL}/search/property/",
            params={"q": query},
            headers=self._assessor_headers(),
            label="Assessor API",
        )
