"""Sensor → vehicle frame composition.

``map_T_vehicle = map_T_lidar @ inv(vehicle_T_lidar)``: both factors are full
rigid transforms, so the offset is composed, never subtracted.
"""

import numpy as np

from .geometry import euler_ypr, invert_transform, matrix_from_ypr
from .types import LocalizationRecord


def compose(map_to_sensor, sensor_to_vehicle):
    """Map → vehicle transform from the tracked map → lidar transform.

    *sensor_to_vehicle* is the static base_link → lidar extrinsic.
    """
    return np.asarray(map_to_sensor, dtype=np.float64) @ invert_transform(
        np.asarray(sensor_to_vehicle, dtype=np.float64))


def to_euler(rotation):
    """(yaw, pitch, roll) for logging; lossy, do not compose with these."""
    return euler_ypr(rotation)


def from_euler(yaw, pitch, roll):
    return matrix_from_ypr(yaw, pitch, roll)


class FrameComposer:
    """Holds the extrinsic and turns tracked lidar poses into trace records."""

    def __init__(self, extrinsics):
        self.extrinsics = np.array(extrinsics, dtype=np.float64)
        self.extrinsics.setflags(write=False)

    def vehicle_pose(self, map_to_sensor):
        return compose(map_to_sensor, self.extrinsics)

    def record(self, seq, map_to_sensor):
        T = self.vehicle_pose(map_to_sensor)
        yaw, pitch, roll = to_euler(T[:3, :3])
        x, y, z = (float(v) for v in T[:3, 3])
        return LocalizationRecord(seq, x, y, z, yaw, pitch, roll)
