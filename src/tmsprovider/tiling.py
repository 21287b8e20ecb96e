"""
Tiling schemes and map projections.

Projections are spherical, using the ellipsoid's maximum radius, and are
evaluated through pyproj.
"""

import logging
import math
from typing import Optional

from pyproj import CRS as ProjCRS
from pyproj.transformer import Transformer

from .types import Cartographic, Ellipsoid, Profile, Rectangle, TileXY
from .typing import ProjectedXY, TilingScheme

logger = logging.getLogger(__name__)

# Latitude at which the mercator square ends, the projection of +/- pi * radius.
MAXIMUM_MERCATOR_LATITUDE = math.pi / 2 - 2.0 * math.atan(math.exp(-math.pi))


class _SphericalProjection:
    """Projection evaluated on a sphere with the ellipsoid's maximum radius."""

    proj_template: str = ""

    def __init__(self, ellipsoid: Optional[Ellipsoid] = None) -> None:
        self.ellipsoid = ellipsoid or Ellipsoid.wgs84()
        self.semimajor_axis = self.ellipsoid.maximum_radius

        # +over disables longitude wrapping so out-of-range extents survive unprojection
        geodetic = ProjCRS.from_proj4(f"+proj=longlat +R={self.semimajor_axis} +over +no_defs")
        projected = ProjCRS.from_proj4(self.proj_template.format(radius=self.semimajor_axis))
        self._forward = Transformer.from_crs(geodetic, projected, always_xy=True)
        self._inverse = Transformer.from_crs(projected, geodetic, always_xy=True)

    def project(self, cartographic: Cartographic) -> ProjectedXY:
        x, y = self._forward.transform(
            math.degrees(cartographic.longitude),
            math.degrees(self._clamp_latitude(cartographic.latitude)),
        )
        return float(x), float(y)

    def unproject(self, xy: ProjectedXY) -> Cartographic:
        longitude, latitude = self._inverse.transform(xy[0], xy[1])
        return Cartographic.from_degrees(float(longitude), float(latitude))

    def _clamp_latitude(self, latitude: float) -> float:
        return latitude


class GeographicProjection(_SphericalProjection):
    """Equirectangular: x = longitude * radius, y = latitude * radius."""

    proj_template = "+proj=eqc +R={radius} +lat_ts=0 +lon_0=0 +x_0=0 +y_0=0 +units=m +over +no_defs"


class WebMercatorProjection(_SphericalProjection):
    """Spherical (web) mercator, EPSG:3857 for the WGS84 ellipsoid."""

    proj_template = "+proj=merc +R={radius} +lat_ts=0 +lon_0=0 +x_0=0 +y_0=0 +k=1 +units=m +over +no_defs"

    def _clamp_latitude(self, latitude: float) -> float:
        return max(-MAXIMUM_MERCATOR_LATITUDE, min(MAXIMUM_MERCATOR_LATITUDE, latitude))


class GeographicTilingScheme:
    """
    Tiling scheme for geometry referenced to a simple geographic projection,
    where longitude and latitude map directly to X and Y.

    Level 0 has two tiles in X and one in Y by default.
    """

    name = "geographic"

    def __init__(
        self,
        ellipsoid: Optional[Ellipsoid] = None,
        rectangle: Optional[Rectangle] = None,
        number_of_level_zero_tiles_x: int = 2,
        number_of_level_zero_tiles_y: int = 1,
    ) -> None:
        self.ellipsoid = ellipsoid or Ellipsoid.wgs84()
        self.rectangle = rectangle or Rectangle.max_value()
        self.projection = GeographicProjection(self.ellipsoid)
        self.number_of_level_zero_tiles_x = number_of_level_zero_tiles_x
        self.number_of_level_zero_tiles_y = number_of_level_zero_tiles_y

    def get_number_of_x_tiles_at_level(self, level: int) -> int:
        return self.number_of_level_zero_tiles_x << level

    def get_number_of_y_tiles_at_level(self, level: int) -> int:
        return self.number_of_level_zero_tiles_y << level

    def position_to_tile_xy(self, position: Cartographic, level: int) -> Optional[TileXY]:
        rectangle = self.rectangle
        if not rectangle.contains(position):
            return None

        x_tiles = self.get_number_of_x_tiles_at_level(level)
        y_tiles = self.get_number_of_y_tiles_at_level(level)

        x_tile_width = rectangle.width / x_tiles
        y_tile_height = rectangle.height / y_tiles

        longitude = position.longitude
        if rectangle.east < rectangle.west:
            longitude += 2.0 * math.pi

        x = int((longitude - rectangle.west) / x_tile_width)
        y = int((rectangle.north - position.latitude) / y_tile_height)
        return TileXY(x=min(x, x_tiles - 1), y=min(y, y_tiles - 1))

    def __repr__(self) -> str:
        return f"GeographicTilingScheme(rectangle={self.rectangle!r})"


class WebMercatorTilingScheme:
    """
    Tiling scheme for geometry referenced to the web mercator projection.

    Level 0 is a single tile covering the mercator square.
    """

    name = "web-mercator"

    def __init__(
        self,
        ellipsoid: Optional[Ellipsoid] = None,
        number_of_level_zero_tiles_x: int = 1,
        number_of_level_zero_tiles_y: int = 1,
    ) -> None:
        self.ellipsoid = ellipsoid or Ellipsoid.wgs84()
        self.projection = WebMercatorProjection(self.ellipsoid)
        self.number_of_level_zero_tiles_x = number_of_level_zero_tiles_x
        self.number_of_level_zero_tiles_y = number_of_level_zero_tiles_y

        semimajor_axis_times_pi = self.ellipsoid.maximum_radius * math.pi
        self.rectangle_southwest_in_meters: ProjectedXY = (-semimajor_axis_times_pi, -semimajor_axis_times_pi)
        self.rectangle_northeast_in_meters: ProjectedXY = (semimajor_axis_times_pi, semimajor_axis_times_pi)

        southwest = self.projection.unproject(self.rectangle_southwest_in_meters)
        northeast = self.projection.unproject(self.rectangle_northeast_in_meters)
        self.rectangle = Rectangle(
            west=southwest.longitude,
            south=southwest.latitude,
            east=northeast.longitude,
            north=northeast.latitude,
        )

    def get_number_of_x_tiles_at_level(self, level: int) -> int:
        return self.number_of_level_zero_tiles_x << level

    def get_number_of_y_tiles_at_level(self, level: int) -> int:
        return self.number_of_level_zero_tiles_y << level

    def position_to_tile_xy(self, position: Cartographic, level: int) -> Optional[TileXY]:
        if not self.rectangle.contains(position):
            return None

        x_tiles = self.get_number_of_x_tiles_at_level(level)
        y_tiles = self.get_number_of_y_tiles_at_level(level)

        west_m, south_m = self.rectangle_southwest_in_meters
        east_m, north_m = self.rectangle_northeast_in_meters
        x_tile_width = (east_m - west_m) / x_tiles
        y_tile_height = (north_m - south_m) / y_tiles

        x_m, y_m = self.projection.project(position)

        # int() truncates toward zero, absorbing rounding just past the edges
        x = int((x_m - west_m) / x_tile_width)
        y = int((north_m - y_m) / y_tile_height)
        return TileXY(x=min(x, x_tiles - 1), y=min(y, y_tiles - 1))

    def __repr__(self) -> str:
        return f"WebMercatorTilingScheme(rectangle={self.rectangle!r})"


def tiling_scheme_for_profile(profile: Profile, ellipsoid: Optional[Ellipsoid] = None) -> TilingScheme:
    """Tiling scheme matching a declared TMS profile."""

    scheme: TilingScheme
    if profile.is_geographic:
        scheme = GeographicTilingScheme(ellipsoid=ellipsoid)
    else:
        scheme = WebMercatorTilingScheme(ellipsoid=ellipsoid)
    logger.debug("Profile %s maps to %r", profile.value, scheme)
    return scheme
