"""
Resolution of a TMS endpoint into a tile provider configuration.

The capabilities document is fetched once, then a ``ResolutionContext`` is
passed through a chain of pure steps:

    resolve_profile -> derive_rectangle -> resolve_level_range -> assemble_configuration

If the document cannot be fetched or parsed, ``fallback_configuration``
builds a conservative configuration from the options and defaults instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Dict, Mapping, Optional, TypeVar, Union

import requests
from pydantic import BaseModel, ConfigDict

from .capabilities import CapabilitiesFetcher, join_urls
from .config import ResolutionOptions
from .deferred import DeferredChannel
from .errors import NetworkError, ParseError, UnsupportedProfileError
from .reporting import TileProviderErrorEvent, handle_error
from .tiling import GeographicTilingScheme, WebMercatorTilingScheme, tiling_scheme_for_profile
from .types import (
    BoundingBoxNode,
    Cartographic,
    CapabilitiesDocument,
    Profile,
    Rectangle,
    ResolvedConfiguration,
)
from .typing import ErrorReporter, ProjectedXY, TilingScheme, XMLFetcher

logger = logging.getLogger(__name__)

DEFAULT_FILE_EXTENSION = "png"
DEFAULT_TILE_SIZE = 256
# More tiles than this at the minimum level means too many initial downloads.
MAXIMUM_TILES_AT_MINIMUM_LEVEL = 4

T = TypeVar("T")


def _default(value: Optional[T], fallback: T) -> T:
    return fallback if value is None else value


class ResolutionContext(BaseModel):
    """Values derived so far for one resolution attempt."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    options: ResolutionOptions
    base_url: str
    resource_url: str
    document: CapabilitiesDocument
    profile: Optional[Profile] = None
    tiling_scheme: Optional[TilingScheme] = None
    file_extension: str = DEFAULT_FILE_EXTENSION
    tile_width: int = DEFAULT_TILE_SIZE
    tile_height: int = DEFAULT_TILE_SIZE
    rectangle: Optional[Rectangle] = None
    minimum_level: int = 0
    maximum_level: Optional[int] = None


def tile_url_template(base_url: str, file_extension: str) -> str:
    return join_urls(base_url, "{level}/{column}/{invertedRow}." + file_extension)


# ----------------------------------------------------------------------
# Resolution steps
# ----------------------------------------------------------------------
def resolve_profile(context: ResolutionContext) -> ResolutionContext:
    """
    Pick tile format values and the tiling scheme.

    Raises:
        UnsupportedProfileError: the document's profile is unknown and no
            tiling scheme override was given
    """
    options = context.options
    document = context.document
    tile_format = document.format

    file_extension = options.file_extension
    tile_width = options.tile_width
    tile_height = options.tile_height
    if tile_format is not None:
        file_extension = _default(file_extension, tile_format.extension)
        tile_width = _default(tile_width, tile_format.width)
        tile_height = _default(tile_height, tile_format.height)

    profile = Profile.from_name(document.profile)
    tiling_scheme = options.tiling_scheme
    if tiling_scheme is None:
        if profile is None:
            raise UnsupportedProfileError(
                f"{context.resource_url} specifies an unsupported profile attribute, {document.profile}.",
                profile=document.profile,
            )
        tiling_scheme = tiling_scheme_for_profile(profile, options.ellipsoid)

    logger.debug("Using %r for profile %s", tiling_scheme, document.profile)
    return context.model_copy(
        update={
            "profile": profile,
            "tiling_scheme": tiling_scheme,
            "file_extension": _default(file_extension, DEFAULT_FILE_EXTENSION),
            "tile_width": _default(tile_width, DEFAULT_TILE_SIZE),
            "tile_height": _default(tile_height, DEFAULT_TILE_SIZE),
        }
    )


def rectangle_from_bounding_box(
    bbox: BoundingBoxNode,
    tiling_scheme: TilingScheme,
    profile: Optional[Profile] = None,
    flip_xy: bool = False,
) -> Rectangle:
    """
    Rectangle from the raw bounding box extrema.

    Legacy gdal2tiles profiles and geographic schemes store degrees; other
    documents store projected metres which are unprojected by the scheme.
    """
    if flip_xy:
        southwest_xy: ProjectedXY = (bbox.min_y, bbox.min_x)
        northeast_xy: ProjectedXY = (bbox.max_y, bbox.max_x)
    else:
        southwest_xy = (bbox.min_x, bbox.min_y)
        northeast_xy = (bbox.max_x, bbox.max_y)

    is_legacy = profile is not None and profile.is_legacy
    if isinstance(tiling_scheme, GeographicTilingScheme) or is_legacy:
        southwest = Cartographic.from_degrees(*southwest_xy)
        northeast = Cartographic.from_degrees(*northeast_xy)
    else:
        southwest = tiling_scheme.projection.unproject(southwest_xy)
        northeast = tiling_scheme.projection.unproject(northeast_xy)

    return Rectangle(
        west=southwest.longitude,
        south=southwest.latitude,
        east=northeast.longitude,
        north=northeast.latitude,
    )


def clamp_rectangle(rectangle: Rectangle, tiling_scheme: TilingScheme) -> Rectangle:
    """Keep `rectangle` within the bounds allowed by the tiling scheme."""

    return rectangle.clamp_to(tiling_scheme.rectangle)


def derive_rectangle(context: ResolutionContext) -> ResolutionContext:
    tiling_scheme = context.tiling_scheme
    if tiling_scheme is None:
        raise ValueError("derive_rectangle requires a resolved tiling scheme")

    rectangle = context.options.rectangle
    if rectangle is None:
        bbox = context.document.bounding_box
        if bbox is None:
            logger.debug("No BoundingBox in %s, using the tiling scheme rectangle", context.resource_url)
            rectangle = tiling_scheme.rectangle
        else:
            rectangle = rectangle_from_bounding_box(
                bbox, tiling_scheme, context.profile, flip_xy=context.options.flip_xy
            )

    return context.model_copy(update={"rectangle": clamp_rectangle(rectangle, tiling_scheme)})


def count_tiles(tiling_scheme: TilingScheme, rectangle: Rectangle, level: int) -> Optional[int]:
    """Tiles spanned by `rectangle` at `level`, None if a corner is outside the scheme."""

    southwest = tiling_scheme.position_to_tile_xy(rectangle.southwest(), level)
    northeast = tiling_scheme.position_to_tile_xy(rectangle.northeast(), level)
    if southwest is None or northeast is None:
        return None
    return (abs(northeast.x - southwest.x) + 1) * (abs(northeast.y - southwest.y) + 1)


def resolve_level_range(context: ResolutionContext) -> ResolutionContext:
    tiling_scheme = context.tiling_scheme
    rectangle = context.rectangle
    if tiling_scheme is None or rectangle is None:
        raise ValueError("resolve_level_range requires a tiling scheme and rectangle")

    options = context.options
    tile_sets = context.document.tile_sets

    minimum_level = options.minimum_level
    if minimum_level is None:
        minimum_level = tile_sets[0].order if tile_sets else 0
    maximum_level = options.maximum_level
    if maximum_level is None and tile_sets:
        maximum_level = tile_sets[-1].order

    tile_count = count_tiles(tiling_scheme, rectangle, minimum_level)
    if tile_count is None:
        logger.debug("Rectangle corners fall outside the tiling scheme; keeping minimum level %d", minimum_level)
    elif tile_count > MAXIMUM_TILES_AT_MINIMUM_LEVEL:
        logger.debug("%d tiles at level %d, lowering minimum level to 0", tile_count, minimum_level)
        minimum_level = 0

    return context.model_copy(update={"minimum_level": minimum_level, "maximum_level": maximum_level})


def assemble_configuration(context: ResolutionContext) -> ResolvedConfiguration:
    options = context.options
    return ResolvedConfiguration(
        url=tile_url_template(context.base_url, context.file_extension),
        tiling_scheme=context.tiling_scheme,
        rectangle=context.rectangle,
        tile_width=context.tile_width,
        tile_height=context.tile_height,
        minimum_level=context.minimum_level,
        maximum_level=context.maximum_level,
        proxy=options.proxy,
        tile_discard_policy=options.tile_discard_policy,
        credit=options.credit,
    )


def resolve_from_document(context: ResolutionContext) -> ResolvedConfiguration:
    return assemble_configuration(resolve_level_range(derive_rectangle(resolve_profile(context))))


def fallback_configuration(options: ResolutionOptions, base_url: str) -> ResolvedConfiguration:
    """Configuration used when the capabilities document is unavailable."""

    tiling_scheme = options.tiling_scheme
    if tiling_scheme is None:
        tiling_scheme = WebMercatorTilingScheme(ellipsoid=options.ellipsoid)

    return ResolvedConfiguration(
        url=tile_url_template(base_url, _default(options.file_extension, DEFAULT_FILE_EXTENSION)),
        tiling_scheme=tiling_scheme,
        rectangle=_default(options.rectangle, tiling_scheme.rectangle),
        tile_width=_default(options.tile_width, DEFAULT_TILE_SIZE),
        tile_height=_default(options.tile_height, DEFAULT_TILE_SIZE),
        minimum_level=_default(options.minimum_level, 0),
        maximum_level=options.maximum_level,
        proxy=options.proxy,
        tile_discard_policy=options.tile_discard_policy,
        credit=options.credit,
    )


# ----------------------------------------------------------------------
# Orchestration
# ----------------------------------------------------------------------
class TileMapServiceResolver:
    """Fetches the capabilities document of one endpoint and resolves its configuration."""

    def __init__(
        self,
        options: ResolutionOptions,
        *,
        fetcher: Optional[XMLFetcher] = None,
        session: Optional[requests.Session] = None,
        error_reporter: Optional[ErrorReporter] = None,
    ) -> None:
        self.options = options
        self.base_url = options.require_url()
        self.fetcher: XMLFetcher = fetcher or CapabilitiesFetcher(
            self.base_url, proxy=options.proxy, session=session
        )
        self.error_reporter = error_reporter

    async def resolve(self) -> ResolvedConfiguration:
        """
        Resolve the configuration.

        Fetch and parse failures resolve to the fallback configuration. An
        unsupported profile is reported to the error reporter, which may ask
        for the whole fetch to be retried.

        Raises:
            UnsupportedProfileError: unsupported profile and no retry granted
        """
        previous_error: Optional[TileProviderErrorEvent] = None
        while True:
            try:
                document = await self.fetcher.fetch()
            except (NetworkError, ParseError) as exc:
                logger.warning(
                    "Could not load %s, continuing with defaults: %s", self.fetcher.resource_url, exc
                )
                return fallback_configuration(self.options, self.base_url)

            context = ResolutionContext(
                options=self.options,
                base_url=self.base_url,
                resource_url=self.fetcher.resource_url,
                document=document,
            )
            try:
                return resolve_from_document(context)
            except UnsupportedProfileError as exc:
                previous_error = handle_error(previous_error, self.error_reporter, str(exc), exc)
                if not previous_error.retry:
                    raise
                logger.info(
                    "Retrying %s (attempt %d)", self.fetcher.resource_url, previous_error.times_retried + 2
                )

    async def resolve_into(self, channel: DeferredChannel[ResolvedConfiguration]) -> None:
        """Run the resolution and complete `channel` exactly once with its outcome."""

        try:
            configuration = await self.resolve()
        except Exception as exc:
            logger.debug("Resolution of %s rejected: %s", self.base_url, exc)
            channel.reject(exc)
            return
        channel.resolve(configuration)


OptionsInput = Union[ResolutionOptions, Mapping[str, Any], None]


def coerce_options(options: OptionsInput = None, **overrides: Any) -> ResolutionOptions:
    """Build ResolutionOptions from a model, a mapping, or keyword arguments."""

    if options is None:
        return ResolutionOptions(**overrides)
    if isinstance(options, ResolutionOptions):
        return options.merged(**overrides)
    merged: Dict[str, Any] = {**options, **overrides}
    return ResolutionOptions(**merged)


def resolve_tile_map_service(
    options: OptionsInput = None,
    *,
    fetcher: Optional[XMLFetcher] = None,
    session: Optional[requests.Session] = None,
    error_reporter: Optional[ErrorReporter] = None,
    **overrides: Any,
) -> Coroutine[Any, Any, ResolvedConfiguration]:
    """
    Awaitable resolving to the configuration for a TMS endpoint.

    A missing url raises MissingRequiredOptionError here, before anything is
    awaited.
    """
    resolver = TileMapServiceResolver(
        coerce_options(options, **overrides),
        fetcher=fetcher,
        session=session,
        error_reporter=error_reporter,
    )
    return resolver.resolve()


def resolve_tile_map_service_sync(options: OptionsInput = None, **kwargs: Any) -> ResolvedConfiguration:
    """Blocking variant of :func:`resolve_tile_map_service` for callers without an event loop."""

    return asyncio.run(resolve_tile_map_service(options, **kwargs))
