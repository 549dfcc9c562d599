"""Exception hierarchy for terrainbuilder.

Every error raised on purpose by this package derives from
``TerrainBuilderError`` so callers (and the CLI) can catch one type.
"""


class TerrainBuilderError(Exception):
    """Base class for all terrainbuilder errors."""


# ── Configuration ────────────────────────────────────────────────────────

class ConfigurationError(TerrainBuilderError):
    """Invalid parameters detected before any work starts."""


class NoResolutionError(ConfigurationError):
    def __init__(self):
        super().__init__(
            "Neither x_res nor y_res was given. One of them can be left out "
            "to keep the aspect ratio of the data, but at least one must be set.")


# ── Resources ────────────────────────────────────────────────────────────

class ResourceError(TerrainBuilderError):
    """A file, image or mesh could not be read or written."""


class OutputExistsError(ResourceError, FileExistsError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Refusing to overwrite existing file: {path}")


# ── Partial input ────────────────────────────────────────────────────────

class NoValidInputError(TerrainBuilderError):
    """Every input of a batch failed, so nothing usable is left."""


class NoValidFilesError(NoValidInputError):
    def __init__(self, pattern):
        self.pattern = pattern
        super().__init__(
            f"No files matching {pattern!r} could be found, or none of the "
            "found files could be read. Unreadable files are logged as warnings.")


class NoValidGeometriesError(NoValidInputError):
    def __init__(self, paths=None):
        self.paths = list(paths or [])
        super().__init__(
            f"No valid geometries found in {len(self.paths)} file(s). Either the "
            "files could not be read or they held no geometry; per-file errors "
            "are logged.")


# ── Grid geometry ────────────────────────────────────────────────────────

class GeometryMismatchError(TerrainBuilderError, ValueError):
    """Two grids with different resolution or bounds were combined."""

    def __init__(self, other, mask):
        self.other = other
        self.mask = mask
        super().__init__(
            "Attempted to combine grids of different resolutions/bounds: "
            f"other x_res={other.x_res}, y_res={other.y_res}, bounds={other.bounds}; "
            f"mask x_res={mask.x_res}, y_res={mask.y_res}, bounds={mask.bounds}")


class GridIndexError(TerrainBuilderError, IndexError):
    """A cell coordinate outside ``0 <= x < x_res``, ``0 <= y < y_res``."""

    def __init__(self, x, y, x_res, y_res, message=None):
        self.x = x
        self.y = y
        self.x_res = x_res
        self.y_res = y_res
        super().__init__(
            message or
            f"Cell ({x}, {y}) is out of range. x must be less than "
            f"x_res={x_res} and y less than y_res={y_res}.")


class StampOutOfBoundsError(GridIndexError):
    def __init__(self, x, y, x_res, y_res):
        super().__init__(
            x, y, x_res, y_res,
            f"Stamp centred on ({x}, {y}) missed the grid entirely "
            f"(x_res={x_res}, y_res={y_res}).")


class PolygonOutOfBoundsError(GridIndexError):
    def __init__(self, x, y, x_res, y_res):
        super().__init__(
            x, y, x_res, y_res,
            f"Polygon bounding rectangle (cols {x}, rows {y}) does not overlap "
            f"the grid (x_res={x_res}, y_res={y_res}).")


# ── Vector geometry ──────────────────────────────────────────────────────

class EmptyGeometryError(TerrainBuilderError, ValueError):
    """Polygon has no bounding rectangle, probably empty."""


class TrailInterpolationError(TerrainBuilderError, ValueError):
    """A trail could not be resampled along its length."""


# ── Mesh ─────────────────────────────────────────────────────────────────

class MeshConsistencyError(TerrainBuilderError):
    """Side-wall generation referenced a vertex that does not exist.

    This never happens for valid input and points at a bug in the
    boundary helper mask.
    """
