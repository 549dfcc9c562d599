"""Small numeric and filesystem helpers used across the package."""

import glob
import logging
import pathlib
from functools import lru_cache

import numpy as np

from .errors import GridIndexError, NoValidFilesError

logger = logging.getLogger(__name__)


def x_y_to_index(x_res: int, y_res: int, x: int, y: int) -> int:
    """Flat index of ``(x, y)`` in a row-major grid of ``x_res`` columns.

    x and y must be strictly LESS than their resolutions; anything else
    raises ``GridIndexError`` instead of wrapping around.
    """
    if 0 <= x < x_res and 0 <= y < y_res:
        return y * x_res + x
    raise GridIndexError(x, y, x_res, y_res)


def index_to_x_y(x_res: int, index: int) -> tuple:
    """Inverse of ``x_y_to_index``."""
    return index % x_res, index // x_res


@lru_cache(maxsize=64)
def _deltas_tuple(radius: int) -> tuple:
    r2 = radius * radius
    return tuple((dx, dy)
                 for dx in range(-radius, radius + 1)
                 for dy in range(-radius, radius + 1)
                 if dx * dx + dy * dy <= r2)


def get_point_deltas_within_radius(radius: int) -> np.ndarray:
    """Integer offsets inside (and on) a circle of ``radius`` around (0, 0).

    Returns a read-only ``(n, 2)`` int array of ``(dx, dy)`` rows, x-major.
    Shapes are cached per radius so stamping many points reuses one array.
    """
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")
    deltas = np.array(_deltas_tuple(int(radius)), dtype=np.int64).reshape(-1, 2)
    deltas.flags.writeable = False
    return deltas


def scale_float_to_uint_range(values, min_float: float, max_float: float,
                              max_val: int = 255) -> np.ndarray:
    """Map ``values`` from ``[min_float, max_float]`` onto ``0..max_val``.

    Truncates toward zero and clips anything outside the range.
    """
    values = np.asarray(values, dtype=np.float64)
    span = max_float - min_float
    if not np.isfinite(span) or span <= 0:
        return np.zeros(values.shape, dtype=np.int64)
    scaled = (values - min_float) / span * max_val
    scaled = np.nan_to_num(scaled, nan=0.0, posinf=max_val, neginf=0.0)
    return np.clip(scaled, 0, max_val).astype(np.int64)


def normal_pos_or_default(values, default: float = 0.0) -> np.ndarray:
    """Replace non-finite and non-positive values with ``default``."""
    values = np.asarray(values, dtype=np.float64)
    return np.where(np.isfinite(values) & (values > 0), values, default)


def get_paths(glob_pattern: str) -> list:
    """Expand ``glob_pattern`` into a sorted list of existing files.

    Directories are skipped with a warning. Raises ``NoValidFilesError``
    when nothing usable matches.
    """
    paths = []
    for entry in sorted(glob.glob(glob_pattern)):
        path = pathlib.Path(entry)
        if path.is_file():
            paths.append(path)
        else:
            logger.warning(f"{path} is not a file, skipping it.")

    if not paths:
        raise NoValidFilesError(glob_pattern)
    return paths
