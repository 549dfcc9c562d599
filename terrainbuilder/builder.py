"""TerrainBuilder: thin orchestrator that delegates to focused modules."""

import logging
from typing import Optional

from . import kml
from . import lidar
from .constants import DEFAULT_BASE_THICKNESS, DEFAULT_Z_SCALING, UTM_ZONE
from .errors import ConfigurationError, TerrainBuilderError
from .height_map import HeightMap
from .mask import Mask
from .projection import UtmProjector

logger = logging.getLogger(__name__)


class TerrainBuilder:
    def __init__(self, height_map: Optional[HeightMap] = None,
                 utm_zone: Optional[int] = UTM_ZONE, south: bool = False):
        """
        height_map: an already built or loaded grid, if any.
        utm_zone: zone the point cloud is in. When None it is taken from
            the first vector geometry that needs projecting.
        """
        self.height_map = height_map
        self.utm_zone = utm_zone
        self.south = south
        self._projector = None

    # ── height map ───────────────────────────────────────────────────────

    def load_point_clouds(self, glob_pattern: str, x_res: Optional[int] = None,
                          y_res: Optional[int] = None) -> HeightMap:
        """Aggregate LAS/LAZ files into the working height map."""
        self.height_map = lidar.glob_get_height_map(glob_pattern, x_res, y_res)
        return self.height_map

    def load(self, path) -> HeightMap:
        self.height_map = HeightMap.load(path)
        return self.height_map

    def save(self, path):
        self._require_height_map().save(path)

    def _require_height_map(self) -> HeightMap:
        if self.height_map is None:
            raise ConfigurationError("No height map loaded; ingest point clouds "
                                     "or load a saved height map first")
        return self.height_map

    # ── vector input ─────────────────────────────────────────────────────

    def projector_for(self, geometries) -> UtmProjector:
        if self._projector is None:
            if self.utm_zone is not None:
                self._projector = UtmProjector(self.utm_zone, self.south)
            else:
                point = geometries[0].representative_point()
                self._projector = UtmProjector.for_lon_lat(point.x, point.y)
            logger.info(f"Projecting vector input into UTM zone "
                        f"{self._projector.zone} (EPSG:{self._projector.epsg})")
        return self._projector

    def _project(self, geometries) -> list:
        if not geometries:
            return []
        projector = self.projector_for(geometries)
        projected = []
        for geom in geometries:
            planar = projector.transform_geometry(geom)
            if planar is not None:
                projected.append(planar)
        return projected

    def new_mask(self) -> Mask:
        return Mask.for_height_map(self._require_height_map())

    def region_mask(self, kml_paths) -> Mask:
        """Mask of every polygon in the given KML files."""
        mask = self.new_mask()
        regions = self._project(kml.get_regions(kml.load_kml_files(kml_paths)))
        for region in regions:
            try:
                mask.add_filled_polygon(region)
            except TerrainBuilderError as e:
                logger.warning(f"Skipping region: {e}")
        logger.info(f"Region mask: {len(regions)} polygons, {mask.count()} cells")
        return mask

    def trail_mask(self, kml_paths, radius: int) -> Mask:
        """Mask of every line string in the given KML files, ``radius`` cells wide."""
        mask = self.new_mask()
        trails = self._project(kml.get_trails(kml.load_kml_files(kml_paths)))
        mask.add_trails(trails, radius)
        logger.info(f"Trail mask: {len(trails)} trails, {mask.count()} cells")
        return mask

    def waypoint_mask(self, kml_paths, radius: int) -> Mask:
        """Mask with a disk of ``radius`` cells at every point in the KML files."""
        mask = self.new_mask()
        points = self._project(kml.get_waypoints(kml.load_kml_files(kml_paths)))
        mask.add_points(points, radius)
        logger.info(f"Waypoint mask: {len(points)} points, {mask.count()} cells")
        return mask

    # ── output ───────────────────────────────────────────────────────────

    def generate_stl(self, output_path, mask: Optional[Mask] = None,
                     z_scaling: float = DEFAULT_Z_SCALING,
                     base_thickness: float = DEFAULT_BASE_THICKNESS):
        """Write the printable solid. Returns the generated mesh."""
        hm = self._require_height_map()
        if mask is None:
            return hm.save_as_stl(output_path, z_scaling, base_thickness)
        return hm.save_as_stl_masked(output_path, mask, z_scaling, base_thickness)
