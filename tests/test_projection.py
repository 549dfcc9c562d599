"""Tests for lon/lat to UTM conversion."""

import unittest

from shapely.geometry import LineString, Point

from terrainbuilder.projection import UtmProjector, utm_epsg, utm_zone_for


class TestZones(unittest.TestCase):

    def test_zone_for_longitude(self):
        self.assertEqual(utm_zone_for(-123.0), 10)
        self.assertEqual(utm_zone_for(-180.0), 1)
        self.assertEqual(utm_zone_for(2.35), 31)
        self.assertEqual(utm_zone_for(180.0), 60)

    def test_epsg(self):
        self.assertEqual(utm_epsg(10), 32610)
        self.assertEqual(utm_epsg(55, south=True), 32755)

    def test_invalid_zone(self):
        with self.assertRaises(ValueError):
            UtmProjector(0)


class TestUtmProjector(unittest.TestCase):

    def setUp(self):
        self.projector = UtmProjector(10)

    def test_central_meridian_on_equator(self):
        x, y = self.projector.to_planar(-123.0, 0.0)
        self.assertAlmostEqual(x, 500000.0, places=3)
        self.assertAlmostEqual(y, 0.0, places=3)

    def test_for_lon_lat(self):
        projector = UtmProjector.for_lon_lat(151.2, -33.9)
        self.assertEqual(projector.zone, 56)
        self.assertTrue(projector.south)
        self.assertEqual(projector.epsg, 32756)

    def test_transform_geometry(self):
        point = self.projector.transform_geometry(Point(-123.0, 0.0))
        self.assertAlmostEqual(point.x, 500000.0, places=3)

        line = self.projector.transform_geometry(
            LineString([(-123.0, 45.0), (-123.0, 45.01)]))
        self.assertAlmostEqual(line.length, 1111.0, delta=5.0)

    def test_transform_empty(self):
        self.assertIsNone(self.projector.transform_geometry(Point()))
        self.assertIsNone(self.projector.transform_geometry(None))


if __name__ == '__main__':
    unittest.main()
