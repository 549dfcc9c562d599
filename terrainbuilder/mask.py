"""Boolean masks over the same grid as a HeightMap.

A mask selects cells for masked height edits and for masked STL output.
Vector input is rasterised onto it: points and trails are stamped with
precomputed disks, polygons are filled cell by cell. All coordinates are
planar (UTM); project geographic input first (see ``projection``).
"""

import logging
import math

import numpy as np
import shapely
from shapely.errors import GEOSException
from shapely.geometry import LineString, Polygon

from .errors import (EmptyGeometryError, GeometryMismatchError,
                     PolygonOutOfBoundsError, StampOutOfBoundsError,
                     TrailInterpolationError)
from .models import Extent, GridGeometry
from .utils import get_point_deltas_within_radius

logger = logging.getLogger(__name__)

# Relative (dx, dy) of each value returned by ``Mask.get_neighbors``
NEIGHBOR_OFFSETS = (
    (-1, -1), (0, -1), (1, -1),
    (-1, 0), (0, 0), (1, 0),
    (-1, 1), (0, 1), (1, 1),
)


def _as_xy(coord) -> tuple:
    if hasattr(coord, 'x') and hasattr(coord, 'y'):
        return float(coord.x), float(coord.y)
    return float(coord[0]), float(coord[1])


class Mask:
    """A ``(y_res, x_res)`` grid of booleans; row 0 is the north edge."""

    def __init__(self, x_res: int, y_res: int, bounds: Extent, data=None):
        self.geometry = GridGeometry(x_res, y_res, bounds)
        if data is None:
            self.data = np.zeros(self.geometry.shape, dtype=bool)
        else:
            data = np.asarray(data, dtype=bool)
            if data.size != x_res * y_res:
                raise ValueError(f"data has {data.size} values, expected "
                                 f"{x_res}x{y_res}={x_res * y_res}")
            self.data = data.reshape(self.geometry.shape).copy()

    @classmethod
    def new_with_dims(cls, x_res: int, y_res: int, bounds: Extent) -> "Mask":
        """An all-false mask."""
        return cls(x_res, y_res, bounds)

    @classmethod
    def for_height_map(cls, height_map) -> "Mask":
        """An all-false mask that can be applied to ``height_map``."""
        return cls(height_map.x_res, height_map.y_res, height_map.bounds)

    @property
    def x_res(self) -> int:
        return self.geometry.x_res

    @property
    def y_res(self) -> int:
        return self.geometry.y_res

    @property
    def bounds(self) -> Extent:
        return self.geometry.bounds

    @property
    def x_tick(self) -> float:
        return self.geometry.x_tick

    @property
    def y_tick(self) -> float:
        return self.geometry.y_tick

    def copy(self) -> "Mask":
        return Mask(self.x_res, self.y_res, self.bounds, self.data)

    def count(self) -> int:
        """Number of true cells."""
        return int(self.data.sum())

    def __eq__(self, other):
        if not isinstance(other, Mask):
            return NotImplemented
        return self.geometry == other.geometry and np.array_equal(self.data, other.data)

    def __repr__(self):
        return f"Mask({self.x_res}x{self.y_res}, {self.count()} set)"

    # ── cell access ──────────────────────────────────────────────────────

    def get(self, x: int, y: int) -> bool:
        self.geometry.index(x, y)
        return bool(self.data[y, x])

    def set(self, x: int, y: int, state: bool):
        self.geometry.index(x, y)
        self.data[y, x] = state

    def coord_to_cell(self, x: float, y: float) -> tuple:
        """Planar coordinate to ``(col, row)``; may lie off the grid."""
        return self.geometry.cell_of(x, y)

    def get_neighbors(self, x: int, y: int) -> list:
        """The 3x3 window around ``(x, y)``, self included.

        Values follow ``NEIGHBOR_OFFSETS``: the row above (north) first,
        left to right. Cells off the grid read as False.
        """
        self.geometry.index(x, y)
        out = []
        for dx, dy in NEIGHBOR_OFFSETS:
            nx, ny = x + dx, y + dy
            if 0 <= nx < self.x_res and 0 <= ny < self.y_res:
                out.append(bool(self.data[ny, nx]))
            else:
                out.append(False)
        return out

    # ── stamping ─────────────────────────────────────────────────────────

    def set_with_deltas(self, x: int, y: int, state: bool, deltas) -> int:
        """Set every cell ``(x + dx, y + dy)`` to ``state``.

        Offsets landing off the grid are skipped. If all of them miss,
        raises ``StampOutOfBoundsError``. Returns the number of cells written.
        """
        deltas = np.asarray(deltas, dtype=np.int64).reshape(-1, 2)
        xs = x + deltas[:, 0]
        ys = y + deltas[:, 1]
        ok = (xs >= 0) & (xs < self.x_res) & (ys >= 0) & (ys < self.y_res)

        n_ok = int(ok.sum())
        if n_ok == 0:
            raise StampOutOfBoundsError(x, y, self.x_res, self.y_res)
        if n_ok < len(deltas):
            logger.debug(f"Stamp at ({x}, {y}): {len(deltas) - n_ok} of "
                         f"{len(deltas)} cells off the grid, skipped")

        self.data[ys[ok], xs[ok]] = state
        return n_ok

    def add_point(self, coord, radius: int):
        """Stamp a disk of ``radius`` cells around a planar coordinate."""
        col, row = self.coord_to_cell(*_as_xy(coord))
        self.set_with_deltas(col, row, True, get_point_deltas_within_radius(radius))

    def _stamp_many(self, coords, deltas, label: str) -> int:
        stamped = 0
        for coord in coords:
            col, row = self.coord_to_cell(*_as_xy(coord))
            try:
                self.set_with_deltas(col, row, True, deltas)
                stamped += 1
            except StampOutOfBoundsError as e:
                logger.warning(f"{label} point outside the grid, skipping: {e}")
        return stamped

    def add_points(self, coords, radius: int) -> int:
        """Stamp a disk at every coordinate (waypoints).

        Points whose disk misses the grid entirely are logged and skipped.
        Returns the number of points stamped.
        """
        deltas = get_point_deltas_within_radius(radius)
        return self._stamp_many(coords, deltas, "Waypoint")

    def trail_sample_count(self, length: float, radius: int) -> int:
        """Resampled points for a trail of ``length``: disks half a radius apart."""
        avg_cell_size = (self.x_tick + self.y_tick) / 2
        spacing = max(radius, 1) * avg_cell_size / 2
        return max(math.ceil(length / spacing), 1) + 1

    def add_trail(self, line, radius: int) -> int:
        """Rasterise a polyline as a band ``radius`` cells wide on each side.

        The line is resampled evenly by arc length, close enough that the
        stamped disks overlap, then each sample is stamped.
        """
        if not hasattr(line, 'geom_type'):
            try:
                line = LineString(line)
            except (ValueError, GEOSException) as e:
                raise TrailInterpolationError(f"Invalid trail coordinates: {e}") from e

        length = line.length
        if line.is_empty or not math.isfinite(length) or length <= 0:
            raise TrailInterpolationError(
                f"Cannot interpolate along a degenerate trail (length={length})")

        n_samples = self.trail_sample_count(length, radius)
        try:
            samples = shapely.line_interpolate_point(
                line, np.linspace(0.0, length, n_samples))
        except GEOSException as e:
            raise TrailInterpolationError(f"Error interpolating trail: {e}") from e

        deltas = get_point_deltas_within_radius(radius)
        stamped = self._stamp_many(shapely.get_coordinates(samples), deltas, "Trail")
        logger.debug(f"Trail of {length:.1f} stamped at {stamped}/{n_samples} points")
        return stamped

    def add_trails(self, lines, radius: int) -> int:
        """Rasterise many trails; degenerate ones are logged and skipped."""
        total = 0
        for line in lines:
            try:
                total += self.add_trail(line, radius)
            except TrailInterpolationError as e:
                logger.error(f"Skipping trail: {e}")
        return total

    def add_filled_polygon(self, polygon) -> int:
        """OR the inside of ``polygon`` (holes excluded) into the mask.

        Every cell of the polygon's bounding rectangle, clipped to the grid,
        is tested at its centre. Cells on the boundary count as inside.
        Returns the number of cells found inside.
        """
        if not hasattr(polygon, 'geom_type'):
            polygon = Polygon(polygon)
        if polygon.is_empty:
            raise EmptyGeometryError("Polygon has no bounding rectangle, probably empty")

        minx, miny, maxx, maxy = polygon.bounds
        col_lo, row_lo = self.coord_to_cell(minx, maxy)
        col_hi, row_hi = self.coord_to_cell(maxx, miny)
        if (col_hi < 0 or col_lo >= self.x_res or
                row_hi < 0 or row_lo >= self.y_res):
            raise PolygonOutOfBoundsError((col_lo, col_hi), (row_lo, row_hi),
                                          self.x_res, self.y_res)

        col_lo, col_hi = max(col_lo, 0), min(col_hi, self.x_res - 1)
        row_lo, row_hi = max(row_lo, 0), min(row_hi, self.y_res - 1)

        cols = np.arange(col_lo, col_hi + 1)
        rows = np.arange(row_lo, row_hi + 1)
        cc, rr = np.meshgrid(cols, rows)
        xs = self.bounds.min_x + (cc + 0.5) * self.x_tick
        ys = self.bounds.min_y + (self.y_res - 1 - rr + 0.5) * self.y_tick

        shapely.prepare(polygon)
        inside = shapely.intersects_xy(polygon, xs, ys)
        self.data[row_lo:row_hi + 1, col_lo:col_hi + 1] |= inside

        n_inside = int(inside.sum())
        logger.debug(f"Filled polygon: {n_inside} of {inside.size} cells "
                     f"in its bounding rectangle")
        return n_inside

    # ── set algebra ──────────────────────────────────────────────────────

    def _combine(self, other: "Mask", op, checked: bool) -> "Mask":
        if checked:
            if other.geometry != self.geometry:
                raise GeometryMismatchError(other, self)
        elif (other.x_res, other.y_res) != (self.x_res, self.y_res):
            raise GeometryMismatchError(other, self)
        self.data[...] = op(self.data, other.data)
        return self

    def union(self, other: "Mask") -> "Mask":
        """In place ``self |= other``; geometries must match exactly."""
        return self._combine(other, np.logical_or, True)

    def intersect(self, other: "Mask") -> "Mask":
        return self._combine(other, np.logical_and, True)

    def xor(self, other: "Mask") -> "Mask":
        return self._combine(other, np.logical_xor, True)

    def difference(self, other: "Mask") -> "Mask":
        """Clear every cell that is set in ``other``."""
        return self._combine(other, _and_not, True)

    # The *_unchecked variants only compare resolutions. Two masks with the
    # same resolution over different bounds combine silently and misalign.

    def union_unchecked(self, other: "Mask") -> "Mask":
        return self._combine(other, np.logical_or, False)

    def intersect_unchecked(self, other: "Mask") -> "Mask":
        return self._combine(other, np.logical_and, False)

    def xor_unchecked(self, other: "Mask") -> "Mask":
        return self._combine(other, np.logical_xor, False)

    def difference_unchecked(self, other: "Mask") -> "Mask":
        return self._combine(other, _and_not, False)

    def invert(self) -> "Mask":
        """Flip every cell in place."""
        np.logical_not(self.data, out=self.data)
        return self

    def __or__(self, other):
        return self.copy().union(other)

    def __and__(self, other):
        return self.copy().intersect(other)

    def __xor__(self, other):
        return self.copy().xor(other)

    def __sub__(self, other):
        return self.copy().difference(other)

    def __invert__(self):
        return self.copy().invert()


def _and_not(a, b):
    return np.logical_and(a, np.logical_not(b))
