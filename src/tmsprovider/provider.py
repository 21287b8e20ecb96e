"""URL-templated tile provider and the TMS provider factory."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, Optional, Union

import requests

from .deferred import DeferredChannel
from .errors import ProviderNotReadyError
from .resolver import OptionsInput, TileMapServiceResolver, coerce_options
from .types import Credit, Rectangle, ResolvedConfiguration
from .typing import ErrorReporter, TilingScheme, XMLFetcher

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class UrlTemplateImageryProvider:
    """
    Tile provider addressing tiles through a URL template.

    The configuration may arrive later through a DeferredChannel; accessing
    it before then raises ProviderNotReadyError.

    Template placeholders:
        {level} / {z}            level of detail
        {column} / {x}           tile column, from the west
        {row} / {y}              tile row, from the north
        {invertedRow} / {reverseY}  tile row, from the south
        {reverseX}               tile column, from the east
    """

    def __init__(
        self,
        configuration: Union[ResolvedConfiguration, DeferredChannel[ResolvedConfiguration]],
        *,
        error_reporter: Optional[ErrorReporter] = None,
    ) -> None:
        self.error_reporter = error_reporter
        self.resolution_task: Optional[asyncio.Task[None]] = None
        if isinstance(configuration, ResolvedConfiguration):
            self._configuration: Optional[ResolvedConfiguration] = configuration
            self._channel: Optional[DeferredChannel[ResolvedConfiguration]] = None
        else:
            self._configuration = None
            self._channel = configuration

    @property
    def ready(self) -> bool:
        if self._configuration is None and self._channel is not None:
            if self._channel.done and not self._channel.rejected:
                self._configuration = self._channel.result()
        return self._configuration is not None

    async def wait_ready(self) -> ResolvedConfiguration:
        """Wait for the configuration; raises the resolution error if it was rejected."""

        if self._configuration is None and self._channel is not None:
            self._configuration = await self._channel
        return self.configuration

    @property
    def configuration(self) -> ResolvedConfiguration:
        if not self.ready:
            raise ProviderNotReadyError("The imagery provider is not ready; await wait_ready() first.")
        return self._configuration  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Configuration accessors
    # ------------------------------------------------------------------
    @property
    def url(self) -> str:
        return self.configuration.url

    @property
    def tiling_scheme(self) -> TilingScheme:
        return self.configuration.tiling_scheme

    @property
    def rectangle(self) -> Rectangle:
        return self.configuration.rectangle

    @property
    def tile_width(self) -> int:
        return self.configuration.tile_width

    @property
    def tile_height(self) -> int:
        return self.configuration.tile_height

    @property
    def minimum_level(self) -> int:
        return self.configuration.minimum_level

    @property
    def maximum_level(self) -> Optional[int]:
        return self.configuration.maximum_level

    @property
    def credit(self) -> Optional[Credit]:
        return self.configuration.credit

    # ------------------------------------------------------------------
    # Tile addressing
    # ------------------------------------------------------------------
    def build_tile_url(self, x: int, y: int, level: int) -> str:
        """
        URL of the tile at column `x`, row `y` (counted from the north) and `level`.

        The proxy, if any, is applied to the expanded URL.
        """
        configuration = self.configuration
        tiling_scheme = configuration.tiling_scheme

        inverted_row = tiling_scheme.get_number_of_y_tiles_at_level(level) - y - 1
        reverse_column = tiling_scheme.get_number_of_x_tiles_at_level(level) - x - 1
        values: Dict[str, int] = {
            "level": level,
            "z": level,
            "column": x,
            "x": x,
            "row": y,
            "y": y,
            "invertedRow": inverted_row,
            "reverseY": inverted_row,
            "reverseX": reverse_column,
        }

        def substitute(match: "re.Match[str]") -> str:
            name = match.group(1)
            return str(values[name]) if name in values else match.group(0)

        url = _PLACEHOLDER.sub(substitute, configuration.url)
        if configuration.proxy is not None:
            url = configuration.proxy.get_url(url)
        return url

    def __repr__(self) -> str:
        state = "ready" if self.ready else "pending"
        return f"<UrlTemplateImageryProvider {state}>"


def create_tile_map_service_provider(
    options: OptionsInput = None,
    *,
    fetcher: Optional[XMLFetcher] = None,
    session: Optional[requests.Session] = None,
    error_reporter: Optional[ErrorReporter] = None,
    **overrides: Any,
) -> UrlTemplateImageryProvider:
    """
    Create a provider for tiled imagery as generated by gdal2tiles.py, MapTiler
    and other TMS tools.

    The provider is returned immediately; its configuration is resolved in a
    task on the running event loop, so this must be called from a coroutine.

    Args:
        options: ResolutionOptions or a mapping of its fields
        fetcher: Capabilities fetcher to use instead of the default
        session: requests session for the default fetcher
        error_reporter: Receives unsupported-profile errors; return True to retry
        **overrides: Option fields applied on top of `options`

    Raises:
        MissingRequiredOptionError: no url was given
        RuntimeError: no event loop is running

    Example:
        >>> provider = create_tile_map_service_provider(
        ...     url="https://example.com/tiles",
        ...     maximum_level=4,
        ...     rectangle=Rectangle.from_degrees(-120.0, 20.0, -60.0, 40.0),
        ... )
        >>> configuration = await provider.wait_ready()
    """
    resolver = TileMapServiceResolver(
        coerce_options(options, **overrides),
        fetcher=fetcher,
        session=session,
        error_reporter=error_reporter,
    )

    channel: DeferredChannel[ResolvedConfiguration] = DeferredChannel()
    provider = UrlTemplateImageryProvider(channel, error_reporter=error_reporter)
    provider.resolution_task = asyncio.get_running_loop().create_task(resolver.resolve_into(channel))
    logger.debug("Resolving TMS provider for %s", resolver.base_url)
    return provider
