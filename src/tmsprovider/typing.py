"""Protocols for the collaborators tmsprovider consumes."""

from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, Tuple, TypeAlias, runtime_checkable

ProjectedXY: TypeAlias = Tuple[float, float]  # (x, y) in metres


@runtime_checkable
class Projection(Protocol):
    """Maps between geodetic positions (radians) and projected coordinates (metres)."""

    def project(self, cartographic: "Cartographic") -> ProjectedXY:
        ...

    def unproject(self, xy: ProjectedXY) -> "Cartographic":
        ...


@runtime_checkable
class TilingScheme(Protocol):
    """Protocol for tiling schemes: a valid rectangle plus tile-index arithmetic."""

    ellipsoid: "Ellipsoid"
    rectangle: "Rectangle"
    projection: Projection

    def get_number_of_x_tiles_at_level(self, level: int) -> int:
        ...

    def get_number_of_y_tiles_at_level(self, level: int) -> int:
        ...

    def position_to_tile_xy(self, position: "Cartographic", level: int) -> Optional["TileXY"]:
        """Tile containing `position` at `level`, or None when it lies outside the scheme."""
        ...


@runtime_checkable
class Proxy(Protocol):
    """Rewrites a resource URL so that it is requested through a proxy."""

    def get_url(self, resource: str) -> str:
        ...


@runtime_checkable
class TileDiscardPolicy(Protocol):
    """Decides whether a downloaded tile image should be discarded."""

    def is_ready(self) -> bool:
        ...

    def should_discard_image(self, image: Any) -> bool:
        ...


@runtime_checkable
class XMLFetcher(Protocol):
    """Source of the capabilities document for one endpoint."""

    resource_url: str

    async def fetch(self) -> "CapabilitiesDocument":
        ...


if TYPE_CHECKING:
    from .reporting import TileProviderErrorEvent
    from .types import CapabilitiesDocument, Cartographic, Ellipsoid, Rectangle, TileXY

ErrorReporter: TypeAlias = Callable[["TileProviderErrorEvent"], Optional[bool]]
