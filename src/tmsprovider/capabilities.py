"""TMS capabilities document (`tilemapresource.xml`) fetching and parsing."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Callable, Dict, Optional, Union
from urllib.parse import quote, urlsplit, urlunsplit

import requests
import xml.etree.ElementTree as ET
from pydantic import ValidationError

from .errors import NetworkError, ParseError
from .types import BoundingBoxNode, CapabilitiesDocument, TileFormat, TileSetEntry
from .typing import Proxy

logger = logging.getLogger(__name__)

CAPABILITIES_RESOURCE = "tilemapresource.xml"
# marks left unescaped when the target URL is embedded in the proxy query
_URI_COMPONENT_SAFE = "!~*'()"


def join_urls(first: str, second: str) -> str:
    """
    Append `second` to the path of `first` with exactly one slash between them.

    The query string and fragment of `first` are kept. `second` is not
    percent-encoded so template placeholders survive.
    """
    parts = urlsplit(first)
    path = parts.path
    if path.endswith("/") and second.startswith("/"):
        second = second[1:]
    elif not path.endswith("/") and not second.startswith("/"):
        second = "/" + second
    return urlunsplit(parts._replace(path=path + second))


class DefaultProxy:
    """Proxy that passes the target URL as the query string of the proxy URL."""

    def __init__(self, proxy: str) -> None:
        self.proxy = proxy

    def get_url(self, resource: str) -> str:
        return f"{self.proxy}?{quote(resource, safe=_URI_COMPONENT_SAFE)}"

    def __repr__(self) -> str:
        return f"DefaultProxy({self.proxy!r})"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].lower()


class CapabilitiesParser:
    """Parser for TMS `TileMap` resource documents."""

    def __init__(self) -> None:
        self._sections: Dict[str, Callable[[ET.Element, Dict[str, object]], None]] = {
            "tileformat": self._parse_format,
            "tilesets": self._parse_tile_sets,
            "boundingbox": self._parse_bounding_box,
            "srs": self._parse_srs,
        }

    def parse(self, xml_content: Union[str, bytes]) -> CapabilitiesDocument:
        try:
            root = ET.fromstring(xml_content)
        except ET.ParseError as exc:
            raise ParseError(f"Invalid XML content: {exc}", cause=exc) from exc
        return self.parse_element(root)

    def parse_element(self, root: ET.Element) -> CapabilitiesDocument:
        """Build a document from the root element in a single pass over its children."""

        if not isinstance(root.tag, str) or _local_name(root.tag) != "tilemap":
            raise ParseError(f"Expected a <TileMap> document, got <{root.tag}>")

        fields: Dict[str, object] = {}
        try:
            for child in root:
                if not isinstance(child.tag, str):  # comments and processing instructions
                    continue
                section = self._sections.get(_local_name(child.tag))
                if section is not None:
                    section(child, fields)
            return CapabilitiesDocument(**fields)
        except ValidationError as exc:
            raise ParseError(f"Invalid capabilities document: {exc}", cause=exc) from exc

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------
    def _parse_format(self, element: ET.Element, fields: Dict[str, object]) -> None:
        fields["format"] = TileFormat(
            extension=element.get("extension"),
            width=self._get_int(element, "width"),
            height=self._get_int(element, "height"),
            mime_type=element.get("mime-type"),
        )

    def _parse_tile_sets(self, element: ET.Element, fields: Dict[str, object]) -> None:
        fields["profile"] = element.get("profile")

        tile_sets = []
        for child in element:
            if not isinstance(child.tag, str) or _local_name(child.tag) != "tileset":
                continue
            order = self._get_int(child, "order")
            if order is None:
                raise ParseError("TileSet entry is missing its order attribute")
            tile_sets.append(
                TileSetEntry(
                    order=order,
                    href=child.get("href"),
                    units_per_pixel=self._get_float(child, "units-per-pixel"),
                )
            )
        fields["tile_sets"] = tile_sets

    def _parse_bounding_box(self, element: ET.Element, fields: Dict[str, object]) -> None:
        values = {name: self._get_float(element, name) for name in ("minx", "miny", "maxx", "maxy")}
        missing = [name for name, value in values.items() if value is None]
        if missing:
            logger.debug("Ignoring BoundingBox without %s", ", ".join(missing))
            return

        fields["bounding_box"] = BoundingBoxNode(
            min_x=values["minx"],
            min_y=values["miny"],
            max_x=values["maxx"],
            max_y=values["maxy"],
        )

    def _parse_srs(self, element: ET.Element, fields: Dict[str, object]) -> None:
        fields["srs"] = (element.text or "").strip() or None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _get_int(self, element: ET.Element, name: str) -> Optional[int]:
        value = element.get(name)
        if value is None:
            return None
        try:
            return int(value.strip())
        except ValueError as exc:
            raise ParseError(f"Attribute {name}={value!r} of <{element.tag}> is not an integer", cause=exc) from exc

    def _get_float(self, element: ET.Element, name: str) -> Optional[float]:
        value = element.get(name)
        if value is None:
            return None
        try:
            number = float(value)
        except ValueError as exc:
            raise ParseError(f"Attribute {name}={value!r} of <{element.tag}> is not a number", cause=exc) from exc
        if not math.isfinite(number):
            raise ParseError(f"Attribute {name}={value!r} of <{element.tag}> is not finite")
        return number


class CapabilitiesFetcher:
    """Requests and parses the capabilities document of a TMS endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        proxy: Optional[Proxy] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        parser: Optional[CapabilitiesParser] = None,
    ) -> None:
        self.base_url = base_url
        self.proxy = proxy
        self.session = session or requests.Session()
        self.timeout = timeout
        self.parser = parser or CapabilitiesParser()

    @property
    def resource_url(self) -> str:
        return join_urls(self.base_url, CAPABILITIES_RESOURCE)

    def request_url(self) -> str:
        """Resource URL, rewritten through the proxy when one is configured."""

        url = self.resource_url
        if self.proxy is not None:
            url = self.proxy.get_url(url)
        return url

    async def fetch(self) -> CapabilitiesDocument:
        """
        Issue one GET for the capabilities document and parse it.

        Raises:
            NetworkError: transport failure or non-success status
            ParseError: the body is not a readable capabilities document
        """
        url = self.request_url()
        logger.debug("Requesting capabilities document %s", url)

        try:
            response = await asyncio.to_thread(self.session.get, url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NetworkError(f"Failed to fetch {url}: {exc}", cause=exc) from exc

        return self.parser.parse(response.content)
