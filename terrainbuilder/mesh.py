"""Heightfield to closed triangle mesh, and binary STL output.

The solid has a top surface at terrain height, a flat bottom at z=0 and
vertical walls joining them. With a mask, only selected cells get
vertices. Walls are then placed wherever a fully selected quad borders
one that is not (outer perimeter, holes, separate islands), found with
a boundary helper mask rather than contour tracing.

Mesh frame: X is the grid column, Y counts rows up from the south edge
(so north is +Y and the print is not mirrored), Z is up.
"""

import logging
import pathlib
import time
from dataclasses import dataclass

import numpy as np
import trimesh

from .errors import (GeometryMismatchError, MeshConsistencyError,
                     OutputExistsError, ResourceError)
from .utils import normal_pos_or_default

logger = logging.getLogger(__name__)

ABSENT = -1

NORMAL_UP = (0.0, 0.0, 1.0)
NORMAL_DOWN = (0.0, 0.0, -1.0)
NORMAL_EAST = (1.0, 0.0, 0.0)
NORMAL_WEST = (-1.0, 0.0, 0.0)
NORMAL_NORTH = (0.0, 1.0, 0.0)
NORMAL_SOUTH = (0.0, -1.0, 0.0)


@dataclass
class TerrainMesh:
    """Indexed triangle mesh with one normal per face."""
    vertices: np.ndarray  # (V, 3) float32
    faces: np.ndarray     # (F, 3) int64 indices into vertices
    normals: np.ndarray   # (F, 3) float32

    def __len__(self):
        return len(self.faces)

    @property
    def triangle_count(self) -> int:
        return len(self.faces)

    def triangles(self) -> np.ndarray:
        """Vertex positions per face, ``(F, 3, 3)``."""
        return self.vertices[self.faces]

    def is_closed(self) -> bool:
        """True when every edge is shared by exactly two triangles."""
        if not len(self.faces):
            return False
        return bool(self.to_trimesh().is_watertight)

    def to_trimesh(self) -> trimesh.Trimesh:
        return trimesh.Trimesh(vertices=self.vertices.astype(np.float64),
                               faces=self.faces,
                               face_normals=self.normals.astype(np.float64),
                               process=False)

    def save_stl(self, path):
        """Write binary STL to ``path``. Fails if the file already exists."""
        path = pathlib.Path(path)
        try:
            with open(path, 'xb') as f:
                self.to_trimesh().export(file_obj=f, file_type='stl')
        except FileExistsError as e:
            raise OutputExistsError(path) from e
        except OSError as e:
            raise ResourceError(f"Failed to write STL to {path}: {e}") from e

        size_mb = path.stat().st_size / 1024 / 1024
        logger.info(f"Saved {len(self.faces)} triangles to {path} ({size_mb:.1f} MB)")


def quads_to_triangles(v1, v2, v3, v4) -> tuple:
    """Split quads into two triangles each along the ``v2``-``v4`` diagonal.

    Corners are vertex index arrays, counter-clockwise as seen from the
    side the face looks out of. A corner equal to ``ABSENT`` means the
    vertex does not exist; such quads produce no triangles.

    Returns ``(faces, present)``: ``(2k, 3)`` faces for the ``k`` quads
    with all corners present, and the per-quad presence flags.
    """
    quad = np.stack([np.ravel(v1), np.ravel(v2), np.ravel(v3), np.ravel(v4)], axis=1)
    present = (quad != ABSENT).all(axis=1)
    quad = quad[present]
    faces = np.concatenate([quad[:, [0, 1, 3]], quad[:, [1, 2, 3]]])
    return faces, present


class BoundaryHelperMask:
    """Quads whose four corner cells are all selected.

    One smaller than the cell mask in each dimension: quad ``(j, i)`` covers
    cells ``(j, i)``, ``(j, i+1)``, ``(j+1, i)``, ``(j+1, i+1)`` in mesh frame.
    """

    def __init__(self, present: np.ndarray):
        self.data = (present[:-1, :-1] & present[:-1, 1:] &
                     present[1:, :-1] & present[1:, 1:])

    def get_cardinal_edge(self, dx: int, dy: int) -> tuple:
        """Quads that are set but whose neighbour at ``(i+dx, j+dy)`` is not.

        Neighbours off the grid count as not set. Returns ``(j, i)`` arrays.
        """
        padded = np.pad(self.data, 1, constant_values=False)
        rows, cols = self.data.shape
        neighbour = padded[1 + dy:1 + dy + rows, 1 + dx:1 + dx + cols]
        return np.nonzero(self.data & ~neighbour)


def top_heights(height_map, z_scaling: float, base_thickness: float) -> np.ndarray:
    """Top-surface z for every cell, in mesh frame.

    ``(height - min_z)`` is clamped to 0 when negative or not finite, then
    scaled by ``z_scaling * x_res / x_range`` so the vertical exaggeration
    is relative to horizontal grid units.
    """
    bounds = height_map.bounds
    z_scale = z_scaling * height_map.x_res / bounds.x_range
    relative = normal_pos_or_default(height_map.data[::-1] - bounds.min_z, 0.0)
    return relative * z_scale + base_thickness


def _wall(top, bottom, js, is_, dx0, dy0, dx1, dy1, normal, name):
    """Faces for the wall running from corner offset 0 to corner offset 1.

    Walls are ordered bottom 0, bottom 1, top 1, top 0, which is
    counter-clockwise seen from outside when offset 0 -> 1 also runs
    counter-clockwise around the quad seen from above.
    """
    b0 = bottom[js + dy0, is_ + dx0]
    b1 = bottom[js + dy1, is_ + dx1]
    t1 = top[js + dy1, is_ + dx1]
    t0 = top[js + dy0, is_ + dx0]
    faces, present = quads_to_triangles(b0, b1, t1, t0)
    if not present.all():
        bad = np.nonzero(~present)[0][0]
        raise MeshConsistencyError(
            f"{name} wall of quad (col {is_[bad]}, row {js[bad]}) references a "
            "vertex that does not exist; the boundary helper mask disagrees "
            "with the top and bottom faces")
    logger.debug(f"assembled {len(faces)} {name} wall faces")
    return faces, np.tile(normal, (len(faces), 1))


def generate_mesh(height_map, mask=None, z_scaling: float = 1.0,
                  base_thickness: float = 0.0) -> TerrainMesh:
    """Build a closed solid from ``height_map``.

    With ``mask`` only the selected cells become part of the solid, and
    walls follow the irregular selection boundary. Without one the solid
    covers the whole grid.
    """
    t0 = time.perf_counter()

    if mask is None:
        present = np.ones(height_map.data.shape, dtype=bool)
    else:
        if mask.geometry != height_map.geometry:
            raise GeometryMismatchError(height_map, mask)
        present = mask.data[::-1].copy()

    ny, nx = present.shape
    n_present = int(present.sum())

    # ── Vertices: one top and one bottom per selected cell ───────────
    top = np.full((ny, nx), ABSENT, dtype=np.int64)
    bottom = np.full((ny, nx), ABSENT, dtype=np.int64)
    top[present] = np.arange(n_present)
    bottom[present] = np.arange(n_present) + n_present

    js, is_ = np.nonzero(present)
    z = top_heights(height_map, z_scaling, base_thickness)[present]
    vertices = np.empty((2 * n_present, 3), dtype=np.float32)
    vertices[:n_present, 0] = is_
    vertices[:n_present, 1] = js
    vertices[:n_present, 2] = z
    vertices[n_present:, 0] = is_
    vertices[n_present:, 1] = js
    vertices[n_present:, 2] = 0.0
    logger.info(f"assembled vertex lists ({len(vertices)} vertices)")

    # ── Top and bottom: quads with all four corners present ──────────
    top_faces, _ = quads_to_triangles(
        top[:-1, :-1], top[:-1, 1:], top[1:, 1:], top[1:, :-1])
    bottom_faces, _ = quads_to_triangles(
        bottom[:-1, :-1], bottom[1:, :-1], bottom[1:, 1:], bottom[:-1, 1:])
    logger.info(f"assembled top and bottom faces ({len(top_faces) // 2} quads)")

    # ── Side walls along every selection boundary ────────────────────
    helper = BoundaryHelperMask(present)
    face_parts = [top_faces, bottom_faces]
    normal_parts = [np.tile(NORMAL_UP, (len(top_faces), 1)),
                    np.tile(NORMAL_DOWN, (len(bottom_faces), 1))]

    walls = (
        # dx, dy, corner 0, corner 1, normal, name
        (1, 0, (1, 0), (1, 1), NORMAL_EAST, "east"),
        (-1, 0, (0, 1), (0, 0), NORMAL_WEST, "west"),
        (0, 1, (1, 1), (0, 1), NORMAL_NORTH, "north"),
        (0, -1, (0, 0), (1, 0), NORMAL_SOUTH, "south"),
    )
    for dx, dy, (dx0, dy0), (dx1, dy1), normal, name in walls:
        ej, ei = helper.get_cardinal_edge(dx, dy)
        faces, normals = _wall(top, bottom, ej, ei, dx0, dy0, dx1, dy1, normal, name)
        face_parts.append(faces)
        normal_parts.append(normals)

    faces = np.concatenate(face_parts).astype(np.int64).reshape(-1, 3)
    normals = np.concatenate(normal_parts).astype(np.float32).reshape(-1, 3)

    logger.info(f"Mesh: {len(faces)} triangles from {n_present} cells "
                f"in {time.perf_counter() - t0:.2f}s")
    return TerrainMesh(vertices=vertices, faces=faces, normals=normals)
