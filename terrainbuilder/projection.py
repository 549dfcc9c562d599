"""Geographic (WGS84 lon/lat) to planar UTM conversion."""

import logging

import numpy as np
import shapely
from pyproj import Transformer
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

logger = logging.getLogger(__name__)


def utm_zone_for(lon: float) -> int:
    """UTM zone number (1-60) covering longitude ``lon``."""
    return min(int((lon + 180) / 6) + 1, 60)


def utm_epsg(zone: int, south: bool = False) -> int:
    """EPSG code of WGS84 / UTM ``zone`` in the given hemisphere."""
    return (32700 if south else 32600) + zone


class UtmProjector:
    """Converts lon/lat into one fixed UTM zone.

    The zone must match the zone the point cloud was captured in (or at
    least stay constant) or masks will land in the wrong place.
    """

    def __init__(self, zone: int, south: bool = False):
        if not 1 <= zone <= 60:
            raise ValueError(f"UTM zone must be in 1..60, got {zone}")
        self.zone = zone
        self.south = south
        self.epsg = utm_epsg(zone, south)
        self.transformer = Transformer.from_crs(
            "EPSG:4326",
            f"EPSG:{self.epsg}",
            always_xy=True
        )
        logger.debug(f"Using UTM zone {zone} (EPSG:{self.epsg}) "
                     f"for coordinate transform")

    @classmethod
    def for_lon_lat(cls, lon: float, lat: float) -> "UtmProjector":
        """Projector for the zone containing ``(lon, lat)``."""
        return cls(utm_zone_for(lon), south=lat < 0)

    def to_planar(self, lon: float, lat: float) -> tuple:
        """Return ``(easting, northing)`` for a lon/lat pair."""
        x, y = self.transformer.transform(lon, lat)
        return float(x), float(y)

    def transform_geometry(self, geom: BaseGeometry):
        """Project a shapely geometry into this zone.

        Returns None when the geometry is empty or projects to NaN.
        """
        if geom is None or geom.is_empty:
            return None
        try:
            projected = transform(self.transformer.transform, geom)
        except Exception as e:
            logger.error(f"Error transforming {geom.geom_type}: {e}")
            return None

        coords = shapely.get_coordinates(projected)
        if coords.size == 0 or np.isnan(coords).any():
            logger.warning(f"{geom.geom_type} projected to invalid "
                           f"coordinates, skipping")
            return None
        return projected
