"""Location data extracted from a construction plan, and the uploaded document itself."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from plan_overlay.models.base import CamelModel
from plan_overlay.models.geo import GeoPoint


class Direction(str, enum.Enum):
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    UNKNOWN = "unknown"


class CornerPosition(str, enum.Enum):
    """Which corner of a rectangular site an intersection sits on."""

    NORTHWEST = "northwest"
    NORTHEAST = "northeast"
    SOUTHWEST = "southwest"
    SOUTHEAST = "southeast"

    @classmethod
    def parse(cls, value: Any) -> CornerPosition | None:
        """Known corner, or None for anything else (including ``"unknown"``)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None


class SiteShape(str, enum.Enum):
    RECTANGULAR = "rectangular"
    IRREGULAR = "irregular"
    L_SHAPED = "L-shaped"
    TRIANGULAR = "triangular"
    UNKNOWN = "unknown"


class ExtractedRoad(CamelModel):
    name: str
    direction: Direction = Direction.UNKNOWN
    is_primary: bool = False

    @field_validator("direction", mode="before")
    @classmethod
    def _unknown_direction(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value not in {d.value for d in Direction}:
                return Direction.UNKNOWN
        return value if value is not None else Direction.UNKNOWN


class ExtractedIntersection(CamelModel):
    road1: str
    road2: str
    # None means the model could not tell which corner this is.
    corner_position: CornerPosition | None = Field(
        default=None,
        validation_alias=AliasChoices("cornerPosition", "corner_position", "corner"),
    )

    @field_validator("corner_position", mode="before")
    @classmethod
    def _parse_corner(cls, value: Any) -> CornerPosition | None:
        return CornerPosition.parse(value)


class SiteBoundary(CamelModel):
    north_road: str | None = None
    south_road: str | None = None
    east_road: str | None = None
    west_road: str | None = None


class ExtractedPlanData(CamelModel):
    """Structured location data recovered from one plan document."""

    project_name: str | None = None
    parcel_number: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    county: str | None = None
    roads: list[ExtractedRoad] = Field(default_factory=list)
    intersections: list[ExtractedIntersection] = Field(default_factory=list)
    scale_info: str | None = None
    estimated_size_meters: float | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    site_shape: SiteShape = SiteShape.UNKNOWN
    site_boundary: SiteBoundary | None = None
    coordinates: GeoPoint | None = None

    @field_validator("roads", "intersections", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("site_shape", mode="before")
    @classmethod
    def _unknown_shape(cls, value: Any) -> Any:
        if value not in {s.value for s in SiteShape} and not isinstance(value, SiteShape):
            return SiteShape.UNKNOWN
        return value

    @model_validator(mode="after")
    def _derive_defaults(self) -> ExtractedPlanData:
        if self.confidence is None:
            # Placeholder heuristic carried over from the first prototype.
            self.confidence = 0.8 if len(self.roads) >= 2 else 0.5
        if self.site_boundary is None:
            self.site_boundary = SiteBoundary(
                north_road=self.road_on(Direction.NORTH),
                south_road=self.road_on(Direction.SOUTH),
                east_road=self.road_on(Direction.EAST),
                west_road=self.road_on(Direction.WEST),
            )
        return self

    def road_on(self, direction: Direction) -> str | None:
        for road in self.roads:
            if road.direction == direction:
                return road.name
        return None

    @property
    def primary_road(self) -> ExtractedRoad | None:
        for road in self.roads:
            if road.is_primary:
                return road
        return self.roads[0] if self.roads else None

    @property
    def road_names(self) -> list[str]:
        """Distinct road names in first-seen order."""
        return list(dict.fromkeys(r.name for r in self.roads if r.name))

    @property
    def has_location_data(self) -> bool:
        return bool(
            self.address
            or self.city
            or self.roads
            or self.intersections
            or self.coordinates is not None
        )


class PlanDocument(CamelModel):
    """One uploaded plan.

    ``data_url`` is what the AI reads (image or PDF). ``overlay_image_url`` is
    the rendered image laid over the map; it defaults to ``data_url`` when that
    is already an image.
    """

    filename: str = "plan"
    data_url: str
    overlay_image_url: str | None = None
    aspect_ratio: float | None = Field(default=None, gt=0.0)

    @property
    def overlay_source(self) -> str | None:
        if self.overlay_image_url:
            return self.overlay_image_url
        if self.data_url.startswith("data:image/"):
            return self.data_url
        return None
