"""Tests for capabilities document parsing and fetching."""

import asyncio
from unittest.mock import MagicMock

import pytest
import requests

from tmsprovider.capabilities import (
    CapabilitiesFetcher,
    CapabilitiesParser,
    DefaultProxy,
    join_urls,
)
from tmsprovider.errors import NetworkError, ParseError
from tmsprovider.types import BoundingBoxNode, TileFormat
from tmsprovider.typing import XMLFetcher


class TestJoinUrls:
    """Test URL joining."""

    @pytest.mark.parametrize(
        "first, second, expected",
        [
            ("http://example.com/tiles", "tilemapresource.xml", "http://example.com/tiles/tilemapresource.xml"),
            ("http://example.com/tiles/", "tilemapresource.xml", "http://example.com/tiles/tilemapresource.xml"),
            ("http://example.com/tiles/", "/tilemapresource.xml", "http://example.com/tiles/tilemapresource.xml"),
            ("http://example.com", "tilemapresource.xml", "http://example.com/tilemapresource.xml"),
            ("../images/tiles", "tilemapresource.xml", "../images/tiles/tilemapresource.xml"),
        ],
    )
    def test_join(self, first, second, expected):
        assert join_urls(first, second) == expected

    def test_keeps_query_string(self):
        joined = join_urls("http://example.com/tiles?token=abc", "tilemapresource.xml")
        assert joined == "http://example.com/tiles/tilemapresource.xml?token=abc"

    def test_keeps_template_placeholders(self):
        joined = join_urls("http://example.com/tiles", "{level}/{column}/{invertedRow}.png")
        assert joined == "http://example.com/tiles/{level}/{column}/{invertedRow}.png"


class TestDefaultProxy:

    def test_get_url_encodes_resource(self):
        proxy = DefaultProxy("/proxy/")
        url = proxy.get_url("http://example.com/tiles/tilemapresource.xml?a=1&b=2")

        assert url == "/proxy/?http%3A%2F%2Fexample.com%2Ftiles%2Ftilemapresource.xml%3Fa%3D1%26b%3D2"


class TestCapabilitiesParser:
    """Test TMS TileMap parsing."""

    def setup_method(self):
        self.parser = CapabilitiesParser()

    def test_parse_full_document(self, tilemap_xml):
        document = self.parser.parse(tilemap_xml(profile="global-mercator", orders=(2, 5, 9)))

        assert document.profile == "global-mercator"
        assert [tile_set.order for tile_set in document.tile_sets] == [2, 5, 9]
        assert document.tile_sets[0].href == "2"
        assert document.format == TileFormat(extension="png", width=256, height=256, mime_type="image/png")
        assert document.bounding_box == BoundingBoxNode(
            min_x=-1000000.0, min_y=1000000.0, max_x=1000000.0, max_y=2000000.0
        )
        assert document.srs == "EPSG:3857"

        print(f"✅ Parsed capabilities document: {document}")

    def test_tile_sets_keep_document_order(self, tilemap_xml):
        document = self.parser.parse(tilemap_xml(orders=(9, 2)))
        assert [tile_set.order for tile_set in document.tile_sets] == [9, 2]

    def test_missing_sections_degrade_to_none(self):
        document = self.parser.parse("<TileMap><Title>empty</Title></TileMap>")

        assert document.format is None
        assert document.profile is None
        assert document.tile_sets == []
        assert document.bounding_box is None
        assert document.srs is None

    def test_tag_names_are_case_insensitive_and_namespaced(self):
        xml_content = """
        <tms:TileMap xmlns:tms="http://tms.osgeo.org/1.0.0">
            <tms:tileformat extension="jpg" width="512" height="512"/>
            <tms:TILESETS profile="geodetic">
                <tms:tileset order="0"/>
                <!-- comment between entries -->
                <tms:tileset order="1"/>
            </tms:TILESETS>
        </tms:TileMap>
        """
        document = self.parser.parse(xml_content)

        assert document.format.extension == "jpg"
        assert document.format.width == 512
        assert document.profile == "geodetic"
        assert [tile_set.order for tile_set in document.tile_sets] == [0, 1]

    def test_bounding_box_missing_attribute_is_ignored(self):
        document = self.parser.parse('<TileMap><BoundingBox minx="1" miny="2" maxx="3"/></TileMap>')
        assert document.bounding_box is None

    def test_invalid_xml_raises_parse_error(self):
        with pytest.raises(ParseError, match="Invalid XML content"):
            self.parser.parse("<TileMap><TileSets></TileMap>")

    def test_non_numeric_attribute_raises_parse_error(self):
        with pytest.raises(ParseError, match="width"):
            self.parser.parse('<TileMap><TileFormat extension="png" width="wide" height="256"/></TileMap>')

    def test_tile_set_without_order_raises_parse_error(self):
        with pytest.raises(ParseError, match="order"):
            self.parser.parse('<TileMap><TileSets profile="mercator"><TileSet href="0"/></TileSets></TileMap>')

    def test_out_of_range_value_raises_parse_error(self):
        with pytest.raises(ParseError):
            self.parser.parse('<TileMap><TileFormat extension="png" width="0" height="256"/></TileMap>')

    @pytest.mark.parametrize("value", ["NaN", "inf", "-Infinity"])
    def test_non_finite_bounding_box_raises_parse_error(self, value):
        with pytest.raises(ParseError, match="not finite"):
            self.parser.parse(f'<TileMap><BoundingBox minx="{value}" miny="20" maxx="-60" maxy="40"/></TileMap>')

    @pytest.mark.parametrize("root", ["<html><body><h1>Welcome</h1></body></html>", "<TileMapService/>"])
    def test_other_root_element_raises_parse_error(self, root):
        with pytest.raises(ParseError, match="Expected a <TileMap> document"):
            self.parser.parse(root)


class TestCapabilitiesFetcher:
    """Test the single capabilities request."""

    def test_resource_url(self):
        fetcher = CapabilitiesFetcher("http://example.com/tiles/", session=MagicMock())
        assert fetcher.resource_url == "http://example.com/tiles/tilemapresource.xml"
        assert fetcher.request_url() == fetcher.resource_url

    def test_request_url_is_proxied(self):
        fetcher = CapabilitiesFetcher(
            "http://example.com/tiles", proxy=DefaultProxy("/proxy/"), session=MagicMock()
        )
        assert fetcher.request_url() == "/proxy/?http%3A%2F%2Fexample.com%2Ftiles%2Ftilemapresource.xml"

    def test_fetch_parses_response(self, mock_session, tilemap_xml):
        session = mock_session(tilemap_xml(profile="mercator"))
        fetcher = CapabilitiesFetcher("http://example.com/tiles", session=session, timeout=5)

        document = asyncio.run(fetcher.fetch())

        assert document.profile == "mercator"
        session.get.assert_called_once_with("http://example.com/tiles/tilemapresource.xml", timeout=5)

    def test_fetch_http_error_raises_network_error(self, make_fetcher):
        fetcher = make_fetcher("Not found", status_code=404)

        with pytest.raises(NetworkError, match="404"):
            asyncio.run(fetcher.fetch())

    def test_fetch_transport_error_raises_network_error(self, make_fetcher):
        fetcher = make_fetcher(error=requests.ConnectionError("connection refused"))

        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(fetcher.fetch())

        assert isinstance(exc_info.value.cause, requests.ConnectionError)

    def test_fetch_malformed_body_raises_parse_error(self, make_fetcher):
        fetcher = make_fetcher("<html><body>Service unavailable")

        with pytest.raises(ParseError):
            asyncio.run(fetcher.fetch())

    def test_satisfies_fetcher_protocol(self):
        assert isinstance(CapabilitiesFetcher("http://example.com/tiles", session=MagicMock()), XMLFetcher)
