"""Command-line entry point: resolve a TMS endpoint and print its configuration as JSON."""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .capabilities import CapabilitiesFetcher, DefaultProxy
from .config import ResolutionOptions
from .errors import TMSProviderError
from .resolver import resolve_tile_map_service_sync
from .types import Rectangle, ResolvedConfiguration

logger = logging.getLogger("tmsprovider")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tmsprovider",
        description="Resolve the tile provider configuration of a Tile Map Service endpoint.",
    )
    parser.add_argument("url", help="Base URL of the tile pyramid")
    parser.add_argument("--file-extension", help="Image file extension on the server")
    parser.add_argument("--tile-width", type=int, help="Tile width in pixels")
    parser.add_argument("--tile-height", type=int, help="Tile height in pixels")
    parser.add_argument("--minimum-level", type=int, help="Minimum level of detail")
    parser.add_argument("--maximum-level", type=int, help="Maximum level of detail")
    parser.add_argument(
        "--rectangle",
        type=float,
        nargs=4,
        metavar=("WEST", "SOUTH", "EAST", "NORTH"),
        help="Coverage rectangle in degrees",
    )
    parser.add_argument("--credit", help="Attribution text for the data source")
    parser.add_argument("--proxy", help="Proxy URL; the target URL is passed as its query string")
    parser.add_argument(
        "--flip-xy",
        action="store_true",
        help="Swap X and Y of the bounding box (tilesets from older gdal2tiles.py)",
    )
    parser.add_argument("--timeout", type=float, default=30, help="Request timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def configuration_to_dict(configuration: ResolvedConfiguration) -> Dict[str, Any]:
    rectangle = configuration.rectangle
    return {
        "url": configuration.url,
        "tiling_scheme": getattr(configuration.tiling_scheme, "name", type(configuration.tiling_scheme).__name__),
        "rectangle": rectangle.model_dump(),
        "rectangle_degrees": dict(zip(("west", "south", "east", "north"), rectangle.to_degrees())),
        "tile_width": configuration.tile_width,
        "tile_height": configuration.tile_height,
        "minimum_level": configuration.minimum_level,
        "maximum_level": configuration.maximum_level,
        "credit": configuration.credit.text if configuration.credit else None,
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    overrides: Dict[str, Any] = {
        "file_extension": args.file_extension,
        "tile_width": args.tile_width,
        "tile_height": args.tile_height,
        "minimum_level": args.minimum_level,
        "maximum_level": args.maximum_level,
        "credit": args.credit,
    }
    if args.rectangle:
        overrides["rectangle"] = Rectangle.from_degrees(*args.rectangle)
    if args.flip_xy:
        overrides["flip_xy"] = True
    if args.proxy:
        overrides["proxy"] = DefaultProxy(args.proxy)

    try:
        options = ResolutionOptions(url=args.url, **{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as exc:
        logger.error("Invalid options: %s", exc)
        return 2

    fetcher = CapabilitiesFetcher(args.url, proxy=options.proxy, timeout=args.timeout)

    try:
        configuration = resolve_tile_map_service_sync(options, fetcher=fetcher)
    except TMSProviderError as exc:
        logger.error("%s", exc)
        return 1

    json.dump(configuration_to_dict(configuration), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
