"""Fixture writers shared by the ingestion and CLI tests."""

import laspy
import numpy as np


def write_las(path, xs, ys, zs):
    """Write a small LAS 1.2 file (point format 3) with the given points."""
    header = laspy.LasHeader(point_format=3, version="1.2")
    header.offsets = np.array([0.0, 0.0, 0.0])
    header.scales = np.array([0.01, 0.01, 0.01])
    las = laspy.LasData(header)
    las.x = np.asarray(xs, dtype=np.float64)
    las.y = np.asarray(ys, dtype=np.float64)
    las.z = np.asarray(zs, dtype=np.float64)
    las.write(str(path))
    return path


def write_corner_las(path):
    """Four points at the corners of 0..10 with heights 1..4."""
    return write_las(path,
                     [0.0, 10.0, 10.0, 0.0],
                     [0.0, 10.0, 0.0, 10.0],
                     [1.0, 3.0, 2.0, 4.0])
