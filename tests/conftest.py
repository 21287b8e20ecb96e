"""
Shared test configuration, fixtures, and markers for tmsprovider tests.
"""

from typing import Any, Callable, Iterable, Optional, Tuple
from unittest.mock import MagicMock

import pytest
import requests
from pytest_httpserver import HTTPServer

from tmsprovider.capabilities import CapabilitiesFetcher


def pytest_configure(config):
    """Configure test markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (>1s)")
    config.addinivalue_line("markers", "property: marks property-based tests")
    config.addinivalue_line("markers", "unit: marks unit tests (fast, pure logic)")
    config.addinivalue_line("markers", "integration: marks tests against a local HTTP server")


@pytest.fixture
def fake_server():
    """Programmable server for testing redirects/errors."""
    with HTTPServer(host="127.0.0.1", port=0) as server:
        yield server


@pytest.fixture
def tilemap_xml() -> Callable[..., str]:
    """Builder for `tilemapresource.xml` documents in the gdal2tiles layout."""

    def build(
        profile: Optional[str] = "global-mercator",
        orders: Iterable[int] = (2, 9),
        bbox: Optional[Tuple[float, float, float, float]] = (-1000000.0, 1000000.0, 1000000.0, 2000000.0),
        extension: Optional[str] = "png",
        width: int = 256,
        height: int = 256,
        srs: Optional[str] = "EPSG:3857",
    ) -> str:
        parts = ['<?xml version="1.0" encoding="utf-8"?>', '<TileMap version="1.0.0" tilemapservice="http://tms.osgeo.org/1.0.0">']
        parts.append("  <Title>test.tif</Title>")
        if srs is not None:
            parts.append(f"  <SRS>{srs}</SRS>")
        if bbox is not None:
            parts.append('  <BoundingBox minx="{}" miny="{}" maxx="{}" maxy="{}"/>'.format(*bbox))
        parts.append('  <Origin x="-20037508.34" y="-20037508.34"/>')
        if extension is not None:
            parts.append(
                f'  <TileFormat width="{width}" height="{height}" mime-type="image/{extension}" extension="{extension}"/>'
            )
        profile_attr = f' profile="{profile}"' if profile is not None else ""
        parts.append(f"  <TileSets{profile_attr}>")
        for order in orders:
            parts.append(f'    <TileSet href="{order}" units-per-pixel="{156543.0339 / 2 ** order}" order="{order}"/>')
        parts.append("  </TileSets>")
        parts.append("</TileMap>")
        return "\n".join(parts)

    return build


@pytest.fixture
def mock_session() -> Callable[..., MagicMock]:
    """Factory for requests sessions returning a canned body or raising."""

    def build(
        body: Optional[str] = None,
        *,
        status_code: int = 200,
        error: Optional[Exception] = None,
    ) -> MagicMock:
        session = MagicMock(spec=requests.Session)
        if error is not None:
            session.get.side_effect = error
            return session

        response = MagicMock()
        response.status_code = status_code
        response.content = (body or "").encode("utf-8")
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
        else:
            response.raise_for_status.return_value = None
        session.get.return_value = response
        return session

    return build


@pytest.fixture
def make_fetcher(mock_session) -> Callable[..., CapabilitiesFetcher]:
    """CapabilitiesFetcher for http://example.com/tiles backed by a mock session."""

    def build(body: Optional[str] = None, **kwargs: Any) -> CapabilitiesFetcher:
        return CapabilitiesFetcher("http://example.com/tiles", session=mock_session(body, **kwargs))

    return build
