"""Streaming aggregation of 3D samples into a fixed-resolution grid.

Samples are binned by planar position and averaged per cell. Cells that
never receive a sample fall back to the extent's minimum elevation once
the aggregator is finalised into a ``HeightMap``.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .errors import (ConfigurationError, GeometryMismatchError,
                     NoResolutionError)
from .height_map import HeightMap
from .models import Extent, GridGeometry

logger = logging.getLogger(__name__)

# Sentinel indices returned by ``GridAggregator.classify``
OUT_OF_RANGE = -1
MALFORMED = -2


def _check_range(axis: str, value: float, bounds: Extent):
    if not (math.isfinite(value) and value > 0):
        raise ConfigurationError(
            f"Cannot derive a resolution from a {axis} range of {value} "
            f"(bounds {bounds}); give both x_res and y_res or use wider data")


def resolve_resolution(bounds: Extent, x_res: Optional[int] = None,
                       y_res: Optional[int] = None) -> tuple:
    """Fill in a missing resolution from the extent's aspect ratio.

    ``other_res = given_res * (other_range / given_range)``, truncated.
    Raises ``NoResolutionError`` when both are None, and
    ``ConfigurationError`` when the given axis has no usable range.
    """
    if x_res is not None and y_res is not None:
        return int(x_res), int(y_res)
    if x_res is not None:
        _check_range("x", bounds.x_range, bounds)
        return int(x_res), int(x_res * (bounds.y_range / bounds.x_range))
    if y_res is not None:
        _check_range("y", bounds.y_range, bounds)
        return int(y_res * (bounds.x_range / bounds.y_range)), int(y_res)
    raise NoResolutionError()


@dataclass
class PointAggregate:
    """Running sum and count for one grid cell."""
    sum: float = 0.0
    count: int = 0

    def add_sample(self, height: float):
        self.sum += height
        self.count += 1

    def average_or_default(self, default: float) -> float:
        """Average of all samples, or ``default`` when there were none."""
        if self.count == 0:
            return default
        return self.sum / self.count


class GridAggregator:
    """Bins an unbounded stream of ``(x, y, z)`` samples into grid cells.

    Row 0 of the resulting grid is the north (max-Y) edge: a sample's row
    is ``y_res - cy - 1`` where ``cy`` counts cells up from ``min_y``.

    Work can be split: ``classify`` only reads the grid geometry and
    returns target cells, ``add_classified`` accumulates them, and
    ``merge`` folds another aggregator with the same geometry into this one.
    """

    def __init__(self, bounds: Extent, x_res: Optional[int] = None,
                 y_res: Optional[int] = None):
        x_res, y_res = resolve_resolution(bounds, x_res, y_res)
        self.geometry = GridGeometry(x_res, y_res, bounds)
        self.x_res = x_res
        self.y_res = y_res
        self.bounds = bounds
        self.x_tick = self.geometry.x_tick
        self.y_tick = self.geometry.y_tick

        n_cells = x_res * y_res
        self.sums = np.zeros(n_cells, dtype=np.float64)
        self.counts = np.zeros(n_cells, dtype=np.int64)

        self.dropped = 0     # samples outside the grid
        self.malformed = 0   # samples with a non-finite coordinate

        logger.debug(f"Aggregator grid {x_res}x{y_res}, "
                     f"tick=({self.x_tick:.3f}, {self.y_tick:.3f})")

    # ── single samples ───────────────────────────────────────────────────

    def add_sample(self, x: float, y: float, z: float) -> bool:
        """Accumulate one sample. Returns False if it was discarded."""
        if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
            self.malformed += 1
            return False

        cx = math.floor((x - self.bounds.min_x) / self.x_tick)
        cy = math.floor((y - self.bounds.min_y) / self.y_tick)
        if not (0 <= cx < self.x_res and 0 <= cy < self.y_res):
            self.dropped += 1
            return False

        index = (self.y_res - cy - 1) * self.x_res + cx
        self.sums[index] += z
        self.counts[index] += 1
        return True

    def cell(self, x: int, y: int) -> PointAggregate:
        """Snapshot of the aggregate at grid cell ``(x, y)``."""
        index = self.geometry.index(x, y)
        return PointAggregate(float(self.sums[index]), int(self.counts[index]))

    # ── vectorised samples ───────────────────────────────────────────────

    def classify(self, xs, ys) -> np.ndarray:
        """Return the flat target cell of every sample.

        Samples outside the grid get ``OUT_OF_RANGE``; samples with a
        non-finite x or y get ``MALFORMED``. Does not touch any state.
        """
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        finite = np.isfinite(xs) & np.isfinite(ys)

        with np.errstate(invalid='ignore'):
            cx = np.floor((xs - self.bounds.min_x) / self.x_tick)
            cy = np.floor((ys - self.bounds.min_y) / self.y_tick)
            in_range = (finite & (cx >= 0) & (cx < self.x_res) &
                        (cy >= 0) & (cy < self.y_res))

        cx = np.where(in_range, cx, 0).astype(np.int64)
        cy = np.where(in_range, cy, 0).astype(np.int64)
        indices = (self.y_res - cy - 1) * self.x_res + cx
        indices[~in_range] = OUT_OF_RANGE
        indices[~finite] = MALFORMED
        return indices

    def add_classified(self, indices, zs) -> int:
        """Accumulate heights ``zs`` into the cells from ``classify``.

        Returns the number of samples kept.
        """
        indices = np.asarray(indices, dtype=np.int64)
        zs = np.asarray(zs, dtype=np.float64)

        malformed = (indices == MALFORMED) | ~np.isfinite(zs)
        keep = (indices >= 0) & ~malformed
        self.malformed += int(malformed.sum())
        self.dropped += int(((indices == OUT_OF_RANGE) & ~malformed).sum())

        kept = indices[keep]
        n_cells = self.x_res * self.y_res
        self.sums += np.bincount(kept, weights=zs[keep], minlength=n_cells)
        self.counts += np.bincount(kept, minlength=n_cells)
        return len(kept)

    def add_samples(self, xs, ys, zs) -> int:
        """Classify and accumulate a batch of samples."""
        return self.add_classified(self.classify(xs, ys), zs)

    def merge(self, other: "GridAggregator"):
        """Fold a partial aggregator over the same grid into this one."""
        if other.geometry != self.geometry:
            raise GeometryMismatchError(other.geometry, self.geometry)
        self.sums += other.sums
        self.counts += other.counts
        self.dropped += other.dropped
        self.malformed += other.malformed

    # ── finalisation ─────────────────────────────────────────────────────

    def finalize(self) -> HeightMap:
        """Average every cell into a ``HeightMap``.

        Empty cells take ``bounds.min_z``. The aggregate data is not kept.
        """
        filled = self.counts > 0
        averages = np.full(self.sums.shape, self.bounds.min_z, dtype=np.float64)
        averages[filled] = self.sums[filled] / self.counts[filled]

        n_empty = int((~filled).sum())
        if n_empty:
            logger.info(f"{n_empty} of {len(filled)} cells received no samples "
                        f"and default to min_z={self.bounds.min_z:.2f}")
        if self.dropped or self.malformed:
            logger.info(f"Dropped {self.dropped} out-of-range and "
                        f"{self.malformed} malformed samples")

        return HeightMap(averages.reshape(self.geometry.shape),
                         self.x_res, self.y_res, self.bounds)
