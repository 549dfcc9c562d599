"""HeightMap: a finalised grid of elevations over a planar extent."""

import csv
import json
import logging
import pathlib

import numpy as np
from PIL import Image

from .errors import GeometryMismatchError, ResourceError
from .mesh import generate_mesh
from .models import Extent, GridGeometry
from .utils import scale_float_to_uint_range

logger = logging.getLogger(__name__)


class HeightMap:
    """A grid of height values (metres) spanning ``bounds`` (UTM).

    ``data`` has shape ``(y_res, x_res)``; cell ``(x, y)`` lives at
    ``data[y, x]``, flat index ``y * x_res + x``. Row 0 is the north edge.
    """

    def __init__(self, data, x_res: int, y_res: int, bounds: Extent):
        data = np.asarray(data, dtype=np.float64)
        if data.size != x_res * y_res:
            raise ValueError(f"data has {data.size} values, expected "
                             f"{x_res}x{y_res}={x_res * y_res}")
        self.geometry = GridGeometry(x_res, y_res, bounds)
        self.data = data.reshape(self.geometry.shape).copy()

    @property
    def x_res(self) -> int:
        return self.geometry.x_res

    @property
    def y_res(self) -> int:
        return self.geometry.y_res

    @property
    def bounds(self) -> Extent:
        return self.geometry.bounds

    def __repr__(self):
        return f"HeightMap({self.x_res}x{self.y_res}, bounds={self.bounds})"

    # ── lookups ──────────────────────────────────────────────────────────

    def index(self, x: int, y: int) -> int:
        return self.geometry.index(x, y)

    def get(self, x: int, y: int) -> float:
        """Height at cell ``(x, y)``; raises ``GridIndexError`` off the grid."""
        self.geometry.index(x, y)
        return float(self.data[y, x])

    # ── masked edits ─────────────────────────────────────────────────────

    def _check_mask(self, mask):
        if mask.geometry != self.geometry:
            raise GeometryMismatchError(self, mask)

    def offset_by_mask(self, mask, offset: float):
        """Add ``offset`` to every height where ``mask`` is true.

        The mask must share this map's resolution and bounds; build it with
        ``Mask.for_height_map(hm)`` to guarantee that.
        """
        self._check_mask(mask)
        self.data[mask.data] += offset

    def set_by_mask(self, mask, value: float):
        """Overwrite every height where ``mask`` is true with ``value``."""
        self._check_mask(mask)
        self.data[mask.data] = value

    def convert_projection(self, new_bounds: Extent):
        """Relabel the grid with ``new_bounds`` without touching the data.

        Use when the point cloud came in another planar projection: pass the
        same bounds expressed in UTM. Nothing checks that they correspond.
        """
        logger.info(f"Relabelling bounds {self.bounds} -> {new_bounds}")
        self.geometry = GridGeometry(self.x_res, self.y_res, new_bounds)

    # ── persistence ──────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "data": self.data.ravel().tolist(),
            "x_res": self.x_res,
            "y_res": self.y_res,
            "bounds": self.bounds.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "HeightMap":
        return cls(payload["data"], int(payload["x_res"]), int(payload["y_res"]),
                   Extent.from_dict(payload["bounds"]))

    def save(self, path):
        """Save as JSON so the slow point-cloud pass need not be repeated.

        The layout is specific to this package and not a standard.
        """
        path = pathlib.Path(path)
        try:
            with open(path, 'w') as f:
                json.dump(self.to_dict(), f)
        except OSError as e:
            raise ResourceError(f"Failed to save height map to {path}: {e}") from e
        size_mb = path.stat().st_size / 1024 / 1024
        logger.info(f"Saved {self.x_res}x{self.y_res} height map to {path} "
                    f"({size_mb:.1f} MB)")

    @classmethod
    def load(cls, path) -> "HeightMap":
        """Load a height map written by ``save``."""
        try:
            with open(path, 'r') as f:
                payload = json.load(f)
            hm = cls.from_dict(payload)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise ResourceError(f"Failed to load height map from {path}: {e}") from e
        logger.info(f"Loaded {hm.x_res}x{hm.y_res} height map from {path}")
        return hm

    # ── exports ──────────────────────────────────────────────────────────

    def to_luminance(self) -> np.ndarray:
        """Heights scaled from ``[min_z, max_z]`` to ``uint8`` 0..255."""
        return scale_float_to_uint_range(
            self.data, self.bounds.min_z, self.bounds.max_z, 255).astype(np.uint8)

    def save_to_image(self, path):
        """Save as a greyscale PNG with brightness showing relative height.

        Handy for checking the data against a map before printing.
        """
        try:
            Image.fromarray(self.to_luminance()).save(str(path))
        except (OSError, ValueError) as e:
            raise ResourceError(f"Failed to save image to {path}: {e}") from e
        logger.info(f"Saved {self.x_res}x{self.y_res} preview image to {path}")

    def save_to_csv(self, path):
        """Dump raw heights, one headerless row per grid row."""
        try:
            with open(path, 'w', newline='') as f:
                writer = csv.writer(f)
                for row in self.data:
                    writer.writerow(row.tolist())
        except OSError as e:
            raise ResourceError(f"Failed to save CSV to {path}: {e}") from e
        logger.info(f"Saved height map CSV to {path}")

    def to_mesh(self, mask=None, z_scaling: float = 1.0,
                base_thickness: float = 0.0):
        """Build the closed printable solid, optionally limited to ``mask``."""
        if mask is not None:
            self._check_mask(mask)
        return generate_mesh(self, mask=mask, z_scaling=z_scaling,
                             base_thickness=base_thickness)

    def save_as_stl(self, path, z_scaling: float = 1.0,
                    base_thickness: float = 0.0):
        """Write the whole grid as a binary STL; refuses to overwrite."""
        mesh = self.to_mesh(z_scaling=z_scaling, base_thickness=base_thickness)
        mesh.save_stl(path)
        return mesh

    def save_as_stl_masked(self, path, mask, z_scaling: float = 1.0,
                           base_thickness: float = 0.0):
        """Write only the cells selected by ``mask`` as a binary STL."""
        mesh = self.to_mesh(mask=mask, z_scaling=z_scaling,
                            base_thickness=base_thickness)
        mesh.save_stl(path)
        return mesh
