import time

import numpy as np

from ..types import PointCloud


def parse_line_lidar_data(data, point_width=4):
    """Parse ``timestamp;x;y;z;i;x;y;z;i;...`` into (timestamp, points).

    With ``point_width=3`` the values are read as x,y,z triples and intensity
    is set to zero.  All-zero returns are dropped.
    """
    elements = data.strip().replace(";", " ").split()
    if len(elements) < 2:
        raise ValueError("Invalid lidar line: expected timestamp + values")

    timestamp = float(elements[0])
    float_values = [float(v) for v in elements[1:]]
    if len(float_values) % point_width != 0:
        raise ValueError(
            f"Invalid lidar line: values must come in groups of {point_width}"
        )
    points = np.array(float_values).reshape(-1, point_width)
    mask = np.all(points[:, :3] == 0, axis=1)
    points = points[~mask]
    return timestamp, points


class LidarService:
    """Replays scans from a file, one scan per line."""

    def __init__(self, file_path, frame_id="nuscenes_lidar", point_width=4,
                 sleep_s=0.0, loop=False):
        self.file_path = file_path
        self.frame_id = frame_id
        self.point_width = point_width
        self.sleep_s = sleep_s
        self.loop = loop

    def scans(self):
        """Yield a :class:`PointCloud` for each non-empty line."""
        while True:
            with open(self.file_path, "r") as file:
                for line in file:
                    if not line.strip():
                        continue
                    timestamp, points = parse_line_lidar_data(line, self.point_width)
                    yield PointCloud(points, self.frame_id, timestamp)
                    if self.sleep_s > 0:
                        time.sleep(self.sleep_s)
            if not self.loop:
                break
