"""
Type definitions and models for TMS capabilities and resolved provider configuration.
"""

import math
from enum import Enum
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .typing import Proxy, TileDiscardPolicy, TilingScheme

TWO_PI = 2.0 * math.pi


class Ellipsoid(BaseModel):
    """Quadratic surface defined by its radii along the x, y and z axes, in metres."""

    model_config = ConfigDict(frozen=True)

    radii_x: float = Field(..., gt=0)
    radii_y: float = Field(..., gt=0)
    radii_z: float = Field(..., gt=0)

    @classmethod
    def wgs84(cls) -> "Ellipsoid":
        return cls(radii_x=6378137.0, radii_y=6378137.0, radii_z=6356752.3142451793)

    @property
    def maximum_radius(self) -> float:
        return max(self.radii_x, self.radii_y, self.radii_z)


class Cartographic(BaseModel):
    """Geodetic position; longitude and latitude in radians."""

    model_config = ConfigDict(frozen=True)

    longitude: float
    latitude: float
    height: float = 0.0

    @classmethod
    def from_degrees(cls, longitude: float, latitude: float, height: float = 0.0) -> "Cartographic":
        return cls(longitude=math.radians(longitude), latitude=math.radians(latitude), height=height)


class TileXY(BaseModel):
    """Column/row index of a tile within a tiling scheme level."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int


class Rectangle(BaseModel):
    """Geographic rectangle; all edges in radians."""

    model_config = ConfigDict(frozen=True)

    west: float
    south: float
    east: float
    north: float

    @classmethod
    def from_degrees(cls, west: float, south: float, east: float, north: float) -> "Rectangle":
        return cls(
            west=math.radians(west),
            south=math.radians(south),
            east=math.radians(east),
            north=math.radians(north),
        )

    @classmethod
    def max_value(cls) -> "Rectangle":
        """The largest possible rectangle: the whole globe."""
        return cls(west=-math.pi, south=-math.pi / 2, east=math.pi, north=math.pi / 2)

    @property
    def width(self) -> float:
        east = self.east
        if east < self.west:
            east += TWO_PI
        return east - self.west

    @property
    def height(self) -> float:
        return self.north - self.south

    def southwest(self) -> Cartographic:
        return Cartographic(longitude=self.west, latitude=self.south)

    def northeast(self) -> Cartographic:
        return Cartographic(longitude=self.east, latitude=self.north)

    def contains(self, position: Cartographic) -> bool:
        """Whether `position` lies inside the rectangle, edges included."""
        longitude = position.longitude
        latitude = position.latitude

        west = self.west
        east = self.east
        if east < west:
            east += TWO_PI
            if longitude < 0.0:
                longitude += TWO_PI

        return west <= longitude <= east and self.south <= latitude <= self.north

    def clamp_to(self, bounds: "Rectangle") -> "Rectangle":
        """
        Pull each edge inside `bounds`.

        Edges are clamped independently; an edge already inside `bounds`
        is left as is, so the rectangle never grows.
        """
        return Rectangle(
            west=max(self.west, bounds.west),
            south=max(self.south, bounds.south),
            east=min(self.east, bounds.east),
            north=min(self.north, bounds.north),
        )

    def to_degrees(self) -> Tuple[float, float, float, float]:
        return (
            math.degrees(self.west),
            math.degrees(self.south),
            math.degrees(self.east),
            math.degrees(self.north),
        )


class Credit(BaseModel):
    """Attribution displayed for a data source."""

    model_config = ConfigDict(frozen=True)

    text: str
    link: Optional[str] = None

    @classmethod
    def coerce(cls, credit: Union["Credit", str, None]) -> Optional["Credit"]:
        if credit is None or isinstance(credit, Credit):
            return credit
        return cls(text=credit)


class Profile(str, Enum):
    """Tiling profiles a TMS capabilities document may declare."""
    GEODETIC = "geodetic"
    GLOBAL_GEODETIC = "global-geodetic"
    MERCATOR = "mercator"
    GLOBAL_MERCATOR = "global-mercator"

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional["Profile"]:
        """Look up a profile by its attribute value, None if unknown."""
        if name is None:
            return None
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def is_geographic(self) -> bool:
        return self in (Profile.GEODETIC, Profile.GLOBAL_GEODETIC)

    @property
    def is_legacy(self) -> bool:
        """
        gdal2tiles.py writes `geodetic`/`mercator` and always stores the
        bounding box in degrees; TMS-compliant tools use the `global-` names.
        """
        return self in (Profile.GEODETIC, Profile.MERCATOR)


class TileFormat(BaseModel):
    """The `TileFormat` section of a capabilities document."""
    extension: Optional[str] = None
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)
    mime_type: Optional[str] = None


class TileSetEntry(BaseModel):
    """A single `TileSet` entry; `order` is its level of detail."""
    order: int = Field(..., ge=0)
    href: Optional[str] = None
    units_per_pixel: Optional[float] = None


class BoundingBoxNode(BaseModel):
    """Raw extrema of the `BoundingBox` section, in document units."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float


class CapabilitiesDocument(BaseModel):
    """Parsed `tilemapresource.xml`. Every section is optional."""
    format: Optional[TileFormat] = None
    profile: Optional[str] = None
    tile_sets: List[TileSetEntry] = Field(default_factory=list)
    bounding_box: Optional[BoundingBoxNode] = None
    srs: Optional[str] = None


class ResolvedConfiguration(BaseModel):
    """Configuration handed to a URL-templated tile provider."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    url: str = Field(..., description="Template with {level}, {column} and {invertedRow} placeholders")
    tiling_scheme: TilingScheme
    rectangle: Rectangle
    tile_width: int = Field(..., gt=0)
    tile_height: int = Field(..., gt=0)
    minimum_level: int = Field(..., ge=0)
    maximum_level: Optional[int] = Field(None, ge=0, description="None means unbounded")
    proxy: Optional[Proxy] = None
    tile_discard_policy: Optional[TileDiscardPolicy] = None
    credit: Optional[Credit] = None

    @field_validator("credit", mode="before")
    @classmethod
    def coerce_credit(cls, credit: Union[Credit, str, None]) -> Optional[Credit]:
        return Credit.coerce(credit)
