"""tmsprovider - resolve Tile Map Service endpoints into tile provider configurations."""

from ._version import __version__

from .capabilities import CapabilitiesFetcher, CapabilitiesParser, DefaultProxy, join_urls
from .config import ResolutionOptions
from .deferred import DeferredChannel
from .errors import (
    ConfigurationError,
    DeferredAlreadyCompletedError,
    DeferredError,
    DeferredPendingError,
    MissingRequiredOptionError,
    NetworkError,
    ParseError,
    ProviderNotReadyError,
    TMSProviderError,
    UnsupportedProfileError,
)
from .provider import UrlTemplateImageryProvider, create_tile_map_service_provider
from .reporting import TileProviderErrorEvent, handle_error
from .resolver import (
    TileMapServiceResolver,
    resolve_tile_map_service,
    resolve_tile_map_service_sync,
)
from .tiling import GeographicTilingScheme, WebMercatorTilingScheme
from .types import (
    CapabilitiesDocument,
    Cartographic,
    Credit,
    Ellipsoid,
    Profile,
    Rectangle,
    ResolvedConfiguration,
    TileXY,
)

__all__ = [
    "__version__",
    "CapabilitiesFetcher",
    "CapabilitiesParser",
    "DefaultProxy",
    "join_urls",
    "ResolutionOptions",
    "DeferredChannel",
    "ConfigurationError",
    "DeferredAlreadyCompletedError",
    "DeferredError",
    "DeferredPendingError",
    "MissingRequiredOptionError",
    "NetworkError",
    "ParseError",
    "ProviderNotReadyError",
    "TMSProviderError",
    "UnsupportedProfileError",
    "UrlTemplateImageryProvider",
    "create_tile_map_service_provider",
    "TileProviderErrorEvent",
    "handle_error",
    "TileMapServiceResolver",
    "resolve_tile_map_service",
    "resolve_tile_map_service_sync",
    "GeographicTilingScheme",
    "WebMercatorTilingScheme",
    "CapabilitiesDocument",
    "Cartographic",
    "Credit",
    "Ellipsoid",
    "Profile",
    "Rectangle",
    "ResolvedConfiguration",
    "TileXY",
]
