"""Data classes shared by height maps, masks and the aggregator."""

import math
from dataclasses import dataclass, replace

from .errors import ConfigurationError, GridIndexError


@dataclass(frozen=True)
class Extent:
    """Axis-aligned 3D bounds in planar units (normally UTM metres)."""
    min_x: float
    max_x: float
    min_y: float
    max_y: float
    min_z: float
    max_z: float

    @classmethod
    def empty(cls) -> "Extent":
        """Return the identity for ``union``.

        Uses an impossible range that breaks every calculation on its own;
        union it with at least one real extent before use.
        """
        return cls(math.inf, -math.inf, math.inf, -math.inf, math.inf, -math.inf)

    def is_empty(self) -> bool:
        return self.min_x > self.max_x or self.min_y > self.max_y

    def union(self, other: "Extent") -> "Extent":
        """Smallest extent containing both ``self`` and ``other``."""
        return Extent(
            min_x=min(self.min_x, other.min_x),
            max_x=max(self.max_x, other.max_x),
            min_y=min(self.min_y, other.min_y),
            max_y=max(self.max_y, other.max_y),
            min_z=min(self.min_z, other.min_z),
            max_z=max(self.max_z, other.max_z),
        )

    def include_point(self, x: float, y: float) -> "Extent":
        """Grow the planar footprint to include ``(x, y)``; z is untouched."""
        return replace(self,
                       min_x=min(self.min_x, x), max_x=max(self.max_x, x),
                       min_y=min(self.min_y, y), max_y=max(self.max_y, y))

    @property
    def x_range(self) -> float:
        return self.max_x - self.min_x

    @property
    def y_range(self) -> float:
        return self.max_y - self.min_y

    @property
    def z_range(self) -> float:
        return self.max_z - self.min_z

    def to_dict(self) -> dict:
        return {
            "min_x": self.min_x, "max_x": self.max_x,
            "min_y": self.min_y, "max_y": self.max_y,
            "min_z": self.min_z, "max_z": self.max_z,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Extent":
        return cls(**{k: float(data[k]) for k in
                      ("min_x", "max_x", "min_y", "max_y", "min_z", "max_z")})

    def __str__(self):
        return (f"x: ({self.min_x}, {self.max_x}) "
                f"y: ({self.min_y}, {self.max_y}) "
                f"z: ({self.min_z}, {self.max_z})")


@dataclass(frozen=True)
class GridGeometry:
    """Resolution and extent of a regular grid.

    Height maps and masks carry one of these; two grids interoperate only
    when their geometries compare equal. Row 0 is the north (max-Y) edge.
    """
    x_res: int
    y_res: int
    bounds: Extent

    def __post_init__(self):
        if self.x_res < 2 or self.y_res < 2:
            raise ConfigurationError(
                f"Grid resolution must be at least 2x2, got "
                f"{self.x_res}x{self.y_res}")
        for name, tick in (("x_tick", self.x_tick), ("y_tick", self.y_tick)):
            if not math.isfinite(tick) or tick <= 0:
                raise ConfigurationError(
                    f"{name} must be finite and positive, got {tick} "
                    f"(bounds {self.bounds})")

    @property
    def x_tick(self) -> float:
        return self.bounds.x_range / (self.x_res - 1)

    @property
    def y_tick(self) -> float:
        return self.bounds.y_range / (self.y_res - 1)

    @property
    def shape(self) -> tuple:
        """numpy shape ``(rows, cols)``."""
        return self.y_res, self.x_res

    def index(self, x: int, y: int) -> int:
        """Flat index of cell ``(x, y)``; raises ``GridIndexError`` when out of range."""
        if 0 <= x < self.x_res and 0 <= y < self.y_res:
            return y * self.x_res + x
        raise GridIndexError(x, y, self.x_res, self.y_res)

    def cell_of(self, x: float, y: float) -> tuple:
        """Planar coordinate to ``(col, row)``; the result may lie off the grid."""
        col = math.floor((x - self.bounds.min_x) / self.x_tick)
        row = self.y_res - 1 - math.floor((y - self.bounds.min_y) / self.y_tick)
        return col, row

    def cell_center(self, col: int, row: int) -> tuple:
        """Planar coordinate of the centre of cell ``(col, row)``."""
        x = self.bounds.min_x + (col + 0.5) * self.x_tick
        y = self.bounds.min_y + (self.y_res - 1 - row + 0.5) * self.y_tick
        return x, y
