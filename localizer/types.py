"""
Plain data carriers shared by every stage of the localizer.

Transforms are always 4×4 homogeneous float64 matrices.  Point clouds are
(N, 4) arrays of x, y, z, intensity that are frozen once wrapped.
"""

from dataclasses import dataclass

import numpy as np


def _freeze(points):
    pts = np.array(points, dtype=np.float64, copy=True)
    if pts.size == 0:
        pts = pts.reshape(0, 4)
    elif pts.ndim == 1:
        pts = pts.reshape(1, -1)
    if pts.shape[1] == 3:
        # xyz-only sources get zero intensity
        pts = np.column_stack([pts, np.zeros(len(pts))])
    if pts.shape[1] != 4:
        raise ValueError(f"Expected 3 or 4 columns (x, y, z[, i]), got {pts.shape[1]}")
    pts.setflags(write=False)
    return pts


@dataclass(frozen=True, eq=False)
class PointCloud:
    """Points captured in one frame, stamped in seconds."""

    points: np.ndarray
    frame_id: str = ""
    stamp: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "points", _freeze(self.points))

    def __len__(self):
        return len(self.points)

    @property
    def xyz(self):
        return self.points[:, :3]

    @property
    def intensity(self):
        return self.points[:, 3]

    def with_points(self, points, frame_id=None):
        """Return a new cloud with the same stamp and replaced points."""
        return PointCloud(points, self.frame_id if frame_id is None else frame_id, self.stamp)


@dataclass(frozen=True)
class PositionFix:
    """Absolute position (no orientation) from GPS or similar."""

    x: float
    y: float
    z: float
    stamp: float = 0.0


@dataclass(frozen=True)
class RegistrationParams:
    """Tuning for one registration call.  Immutable, passed per call."""

    max_correspondence_distance: float = 1.0
    max_iterations: int = 1000
    transformation_epsilon: float = 1e-8
    fitness_epsilon: float = 1e-8


@dataclass(frozen=True, eq=False)
class RegistrationResult:
    transform: np.ndarray
    fitness: float
    converged: bool = True
    iterations: int = 0


@dataclass(frozen=True)
class LocalizationRecord:
    id: int
    x: float
    y: float
    z: float
    yaw: float
    pitch: float
    roll: float

    HEADER = ("id", "x", "y", "z", "yaw", "pitch", "roll")

    def as_row(self):
        return [self.id, self.x, self.y, self.z, self.yaw, self.pitch, self.roll]


@dataclass(frozen=True, eq=False)
class StampedTransform:
    """A transform labelled with its parent and child frame."""

    transform: np.ndarray
    parent_frame: str
    child_frame: str
    stamp: float = 0.0
