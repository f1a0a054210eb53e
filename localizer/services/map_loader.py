import numpy as np

from ..types import PointCloud


def load_map(file_path, frame_id="world", delimiter=","):
    """Load a prior map stored one point per line: ``x,y,z[,intensity]``."""
    points = np.loadtxt(file_path, delimiter=delimiter, ndmin=2)
    if points.shape[1] not in (3, 4):
        raise ValueError(f"Expected 3 or 4 columns (x, y, z[, i]), got {points.shape[1]}")
    return PointCloud(points, frame_id)
