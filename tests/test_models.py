"""Tests for Extent and GridGeometry."""

import math
import unittest

from terrainbuilder.errors import ConfigurationError, GridIndexError
from terrainbuilder.models import Extent, GridGeometry


class TestExtent(unittest.TestCase):

    def setUp(self):
        self.a = Extent(0.0, 10.0, 0.0, 5.0, 1.0, 2.0)
        self.b = Extent(-5.0, 3.0, 2.0, 8.0, 0.0, 4.0)

    def test_union(self):
        u = self.a.union(self.b)
        self.assertEqual(u, Extent(-5.0, 10.0, 0.0, 8.0, 0.0, 4.0))
        self.assertEqual(u, self.b.union(self.a))

    def test_empty_is_union_identity(self):
        empty = Extent.empty()
        self.assertTrue(empty.is_empty())
        self.assertFalse(self.a.is_empty())
        self.assertEqual(empty.union(self.a), self.a)

    def test_include_point(self):
        grown = self.a.include_point(12.0, -1.0)
        self.assertEqual((grown.max_x, grown.min_y), (12.0, -1.0))
        self.assertEqual((grown.min_z, grown.max_z), (1.0, 2.0))

    def test_ranges(self):
        self.assertEqual(self.a.x_range, 10.0)
        self.assertEqual(self.a.y_range, 5.0)
        self.assertEqual(self.a.z_range, 1.0)

    def test_dict_round_trip(self):
        self.assertEqual(Extent.from_dict(self.a.to_dict()), self.a)


class TestGridGeometry(unittest.TestCase):

    def setUp(self):
        # 11x11 grid over 0..10 has one unit per cell
        self.geom = GridGeometry(11, 11, Extent(0, 10, 0, 10, 0, 5))

    def test_ticks_and_shape(self):
        self.assertEqual(self.geom.x_tick, 1.0)
        self.assertEqual(self.geom.y_tick, 1.0)
        self.assertEqual(self.geom.shape, (11, 11))

    def test_rejects_tiny_resolution(self):
        with self.assertRaises(ConfigurationError):
            GridGeometry(1, 5, Extent(0, 10, 0, 10, 0, 0))

    def test_rejects_degenerate_bounds(self):
        with self.assertRaises(ConfigurationError):
            GridGeometry(5, 5, Extent(0, 0, 0, 10, 0, 0))
        with self.assertRaises(ConfigurationError):
            GridGeometry(5, 5, Extent(0, math.inf, 0, 10, 0, 0))

    def test_index(self):
        self.assertEqual(self.geom.index(3, 2), 25)
        with self.assertRaises(GridIndexError) as ctx:
            self.geom.index(11, 0)
        self.assertEqual((ctx.exception.x, ctx.exception.x_res), (11, 11))
        with self.assertRaises(IndexError):
            self.geom.index(0, -1)

    def test_cell_of_puts_north_in_row_zero(self):
        self.assertEqual(self.geom.cell_of(0.2, 0.2), (0, 10))
        self.assertEqual(self.geom.cell_of(10.0, 10.0), (10, 0))
        self.assertEqual(self.geom.cell_of(-0.5, 3.5), (-1, 7))

    def test_cell_center(self):
        self.assertEqual(self.geom.cell_center(0, 10), (0.5, 0.5))
        self.assertEqual(self.geom.cell_center(3, 2), (3.5, 8.5))
        self.assertEqual(self.geom.cell_of(*self.geom.cell_center(4, 6)), (4, 6))

    def test_equality(self):
        same = GridGeometry(11, 11, Extent(0, 10, 0, 10, 0, 5))
        other = GridGeometry(11, 11, Extent(0, 10, 0, 11, 0, 5))
        self.assertEqual(self.geom, same)
        self.assertNotEqual(self.geom, other)


if __name__ == '__main__':
    unittest.main()
