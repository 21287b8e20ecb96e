"""Caller-supplied options for resolving a TMS provider configuration."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import MissingRequiredOptionError
from .types import Credit, Ellipsoid, Rectangle
from .typing import Proxy, TileDiscardPolicy, TilingScheme


class ResolutionOptions(BaseModel):
    """Overrides for values otherwise read from the capabilities document."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    url: Optional[str] = Field(None, description="Base URL of the tile pyramid (required)")
    file_extension: Optional[str] = Field(None, description="Image file extension on the server")
    tile_width: Optional[int] = Field(None, gt=0, description="Tile width in pixels")
    tile_height: Optional[int] = Field(None, gt=0, description="Tile height in pixels")
    minimum_level: Optional[int] = Field(
        None,
        ge=0,
        description="Minimum level of detail; keep the tile count at this level small",
    )
    maximum_level: Optional[int] = Field(None, ge=0, description="Maximum level of detail")
    rectangle: Optional[Rectangle] = Field(None, description="Coverage in radians")
    tiling_scheme: Optional[TilingScheme] = Field(
        None, description="Tiling scheme; skips profile detection when given"
    )
    ellipsoid: Optional[Ellipsoid] = Field(
        None, description="Ellipsoid for a detected tiling scheme; ignored with tiling_scheme"
    )
    proxy: Optional[Proxy] = None
    flip_xy: bool = Field(
        default=False,
        description="Swap X and Y of the bounding box, for tilesets from older gdal2tiles.py",
    )
    credit: Optional[Credit] = None
    tile_discard_policy: Optional[TileDiscardPolicy] = None

    @field_validator("credit", mode="before")
    @classmethod
    def coerce_credit(cls, credit: Union[Credit, str, None]) -> Optional[Credit]:
        return Credit.coerce(credit)

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "ResolutionOptions":
        """Convenience constructor mirroring high-level usage patterns."""

        return cls(url=url, **kwargs)

    def merged(self, **overrides: Any) -> "ResolutionOptions":
        """Copy with `overrides` applied on top, validated like a fresh model."""

        if not overrides:
            return self
        return type(self)(**{**self.overrides(), **overrides})

    def overrides(self) -> Dict[str, Any]:
        """Fields explicitly supplied by the caller."""

        return {name: getattr(self, name) for name in self.model_fields_set}

    def require_url(self) -> str:
        if not self.url:
            raise MissingRequiredOptionError("options.url is required.")
        return self.url
