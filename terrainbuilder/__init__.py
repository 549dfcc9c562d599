"""terrainbuilder: LiDAR point clouds to 3D-printable terrain.

Point clouds are averaged onto a regular height grid, optionally edited
or cut with masks rasterised from KML regions, trails and waypoints, and
written out as a closed binary STL solid.
"""

from terrainbuilder.aggregator import GridAggregator
from terrainbuilder.builder import TerrainBuilder
from terrainbuilder.height_map import HeightMap
from terrainbuilder.lidar import glob_get_height_map
from terrainbuilder.mask import Mask
from terrainbuilder.mesh import TerrainMesh, generate_mesh
from terrainbuilder.models import Extent, GridGeometry
