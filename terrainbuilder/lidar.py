"""Point-cloud input: LAS/LAZ bounds and batch ingestion into a HeightMap."""

import logging
import pathlib
import time
from typing import List, Optional

import laspy
import numpy as np
from tqdm import tqdm

from .aggregator import GridAggregator
from .constants import CHUNK_SIZE, PROGRESS_INTERVAL
from .errors import NoValidFilesError
from .height_map import HeightMap
from .models import Extent
from .utils import get_paths

logger = logging.getLogger(__name__)


def read_bounds(path) -> Extent:
    """Extent declared in a LAS/LAZ header (no points are read)."""
    with laspy.open(str(path)) as f:
        header = f.header
        min_x, min_y, min_z = header.mins
        max_x, max_y, max_z = header.maxs
    return Extent(float(min_x), float(max_x), float(min_y), float(max_y),
                  float(min_z), float(max_z))


def bounds_from_paths(paths: List[pathlib.Path]) -> tuple:
    """Union of the header extents of ``paths``.

    Files whose header cannot be read are logged and left out. Returns
    ``(extent, readable_paths)``.
    """
    global_bounds = Extent.empty()
    readable = []

    logger.info(f"finding bounds of {len(paths)} files")
    for path in tqdm(paths, desc="Bounding"):
        try:
            global_bounds = global_bounds.union(read_bounds(path))
            readable.append(path)
        except Exception as e:
            logger.warning(f"Failed to read header of {path}: {e}. Skipping file.")

    return global_bounds, readable


def iter_point_chunks(path, chunk_size: int = CHUNK_SIZE):
    """Yield ``(x, y, z)`` float arrays from a LAS/LAZ file, chunk by chunk."""
    with laspy.open(str(path)) as reader:
        for points in reader.chunk_iterator(chunk_size):
            yield (np.asarray(points.x, dtype=np.float64),
                   np.asarray(points.y, dtype=np.float64),
                   np.asarray(points.z, dtype=np.float64))


def _point_count(path) -> int:
    with laspy.open(str(path)) as f:
        return int(f.header.point_count)


def ingest_file(aggregator: GridAggregator, path, file_number: int = 1,
                num_files: int = 1, chunk_size: int = CHUNK_SIZE) -> int:
    """Feed every point of one file into ``aggregator``.

    Logs progress every ``PROGRESS_INTERVAL`` points. Returns the number
    of points read (kept or not).
    """
    num_points = _point_count(path)
    logger.info(f"Number of points: {num_points} in {path}")

    malformed_before = aggregator.malformed
    counter = 0
    next_report = PROGRESS_INTERVAL
    for xs, ys, zs in iter_point_chunks(path, chunk_size):
        aggregator.add_samples(xs, ys, zs)
        counter += len(xs)
        while counter >= next_report:
            pct = 100.0 * counter / num_points if num_points else 100.0
            logger.info(f"{pct:.2f}% done with {path}. "
                        f"(file {file_number} / {num_files})")
            next_report += PROGRESS_INTERVAL

    malformed = aggregator.malformed - malformed_before
    if malformed:
        logger.warning(f"Skipped {malformed} malformed points in {path}")
    return counter


def get_height_map(paths: List[pathlib.Path], x_res: Optional[int] = None,
                   y_res: Optional[int] = None,
                   chunk_size: int = CHUNK_SIZE,
                   label: str = "input") -> HeightMap:
    """Aggregate the given LAS/LAZ files into one HeightMap.

    Give ``x_res`` or ``y_res`` (or both); a missing one is derived from
    the aspect ratio of the data. A resolution too high leaves cells with
    no samples, which default to the lowest elevation seen.

    Files that cannot be read are logged and skipped. Only when no file
    at all could be read does this raise ``NoValidFilesError``.
    """
    bounds, readable = bounds_from_paths(paths)
    if not readable:
        raise NoValidFilesError(label)

    # Resolution is validated before the long ingestion starts
    aggregator = GridAggregator(bounds, x_res, y_res)
    logger.info(f"Height map {aggregator.x_res}x{aggregator.y_res} over {bounds}")

    global_t0 = time.perf_counter()
    num_files = len(readable)
    ingested = 0
    for file_number, path in enumerate(readable, start=1):
        t0 = time.perf_counter()
        try:
            ingest_file(aggregator, path, file_number, num_files, chunk_size)
        except Exception as e:
            logger.warning(f"reader failed to read file {path} with error: {e}. "
                           f"Skipping file.")
            continue
        ingested += 1
        logger.info(f"file {file_number} / {num_files} took "
                    f"{time.perf_counter() - t0:.1f}s")

    if not ingested:
        raise NoValidFilesError(label)

    logger.info(f"loading all {num_files} files took "
                f"{time.perf_counter() - global_t0:.1f}s")
    return aggregator.finalize()


def glob_get_height_map(glob_pattern: str, x_res: Optional[int] = None,
                        y_res: Optional[int] = None,
                        chunk_size: int = CHUNK_SIZE) -> HeightMap:
    """Build a HeightMap from every LAS/LAZ file matching ``glob_pattern``.

    This can take a long time for large data sets; save the result with
    ``HeightMap.save`` to avoid parsing the same data again.
    """
    paths = get_paths(glob_pattern)
    return get_height_map(paths, x_res, y_res, chunk_size, label=glob_pattern)
