"""Tests for the TerrainBuilder orchestration of KML masks and STL output."""

import pathlib
import tempfile
import unittest

import numpy as np

from terrainbuilder.builder import TerrainBuilder
from terrainbuilder.errors import ConfigurationError, NoValidGeometriesError
from terrainbuilder.height_map import HeightMap
from terrainbuilder.models import Extent


# 21x21 one-metre cells in UTM zone 10 around lon -123, lat 0, which
# projects to (500000, 0). That point falls in cell (9, 10).
BOUNDS = Extent(499990.5, 500010.5, -10.5, 9.5, 0.0, 5.0)

PLACEMARKS = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2"><Document>{}</Document></kml>
"""

WAYPOINT = "<Placemark><Point><coordinates>-123.0,0.0</coordinates></Point></Placemark>"

TRAIL = ("<Placemark><LineString><coordinates>"
         "-123.00005,0.0 -122.99995,0.0"
         "</coordinates></LineString></Placemark>")

REGION = ("<Placemark><Polygon><outerBoundaryIs><LinearRing><coordinates>"
          "-123.00005,-0.00005 -122.99995,-0.00005 -122.99995,0.00005 "
          "-123.00005,0.00005 -123.00005,-0.00005"
          "</coordinates></LinearRing></outerBoundaryIs></Polygon></Placemark>")


class TestTerrainBuilder(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = pathlib.Path(self.tmp.name)
        hm = HeightMap(np.full(21 * 21, 2.0), 21, 21, BOUNDS)
        self.builder = TerrainBuilder(hm, utm_zone=None)

    def tearDown(self):
        self.tmp.cleanup()

    def write_kml(self, name, *placemarks):
        path = self.root / name
        path.write_text(PLACEMARKS.format("".join(placemarks)))
        return path

    def test_requires_height_map(self):
        with self.assertRaises(ConfigurationError):
            TerrainBuilder().new_mask()

    def test_zone_from_geometry(self):
        self.builder.waypoint_mask([self.write_kml("wp.kml", WAYPOINT)], 0)
        self.assertEqual(self.builder.projector_for([]).zone, 10)
        self.assertFalse(self.builder.projector_for([]).south)

    def test_waypoint_mask(self):
        mask = self.builder.waypoint_mask([self.write_kml("wp.kml", WAYPOINT)], 1)
        self.assertEqual(mask.count(), 5)
        self.assertTrue(mask.get(9, 10))

    def test_trail_mask(self):
        # roughly 11 m of trail along the equator
        mask = self.builder.trail_mask([self.write_kml("trail.kml", TRAIL)], 0)
        self.assertGreaterEqual(mask.count(), 10)
        self.assertTrue(mask.get(9, 10))
        self.assertEqual(int(mask.data.any(axis=1).sum()), 1)
        self.assertTrue(mask.data[10].any())

    def test_region_mask_and_stl(self):
        mask = self.builder.region_mask([self.write_kml("park.kml", REGION)])
        self.assertGreater(mask.count(), 50)
        self.assertLess(mask.count(), 21 * 21)
        self.assertTrue(mask.get(9, 10))

        out = self.root / "park.stl"
        mesh = self.builder.generate_stl(out, mask=mask, base_thickness=1.0)
        self.assertTrue(out.exists())
        self.assertGreater(mesh.triangle_count, 0)
        self.assertTrue(mesh.is_closed())

    def test_fixed_zone(self):
        builder = TerrainBuilder(self.builder.height_map, utm_zone=10)
        mask = builder.waypoint_mask([self.write_kml("wp.kml", WAYPOINT)], 0)
        self.assertTrue(mask.get(9, 10))

    def test_no_geometry(self):
        empty = self.write_kml("empty.kml")
        with self.assertRaises(NoValidGeometriesError):
            self.builder.region_mask([empty])

    def test_save_and_load(self):
        path = self.root / "hm.json"
        self.builder.save(path)
        other = TerrainBuilder()
        hm = other.load(path)
        self.assertEqual(hm.bounds, BOUNDS)
        self.assertIs(other.height_map, hm)


if __name__ == '__main__':
    unittest.main()
