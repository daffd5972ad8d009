"""Geographic value types: points, bounds, geocoder and road results."""

from __future__ import annotations

from pydantic import ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from plan_overlay.models.base import CamelModel


class GeoPoint(CamelModel):
    """WGS84 point in degrees."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class Bounds(CamelModel):
    """Axis-aligned lat/lng rectangle. ``north > south`` and ``east > west`` always hold."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    north: float
    south: float
    east: float
    west: float

    @model_validator(mode="after")
    def _check_edges(self) -> Bounds:
        # Comparisons are written so NaN edges fail too.
        if not self.north > self.south:
            raise ValueError(f"north ({self.north}) must be greater than south ({self.south})")
        if not self.east > self.west:
            raise ValueError(f"east ({self.east}) must be greater than west ({self.west})")
        return self

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(lat=(self.north + self.south) / 2, lng=(self.east + self.west) / 2)

    @property
    def lat_span(self) -> float:
        return self.north - self.south

    @property
    def lng_span(self) -> float:
        return self.east - self.west


class GeocodeResult(CamelModel):
    lat: float
    lng: float
    formatted_address: str = ""

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


class RoadGeometry(CamelModel):
    """Polyline of an extracted road, used only for map highlighting."""

    road_name: str
    points: list[GeoPoint] = Field(default_factory=list)


class ParcelData(CamelModel):
    """County parcel record at a point."""

    apn: str
    address: str | None = None
    owner: str | None = None
    acres: float | None = None
    polygon: list[GeoPoint] = Field(default_factory=list)
    centroid: GeoPoint | None = None
    raw_attributes: dict = Field(default_factory=dict)
    assessor_details: dict | None = None
