"""SE(3) helpers on 4×4 homogeneous matrices.

Rotations go through ``scipy.spatial.transform.Rotation`` so quaternion and
Euler conventions are defined in one place.  Quaternions are (x, y, z, w).
"""

import numpy as np
from scipy.spatial.transform import Rotation

# Intrinsic Z-Y'-X'': R = Rz(yaw) @ Ry(pitch) @ Rx(roll)
EULER_SEQ = "ZYX"


def make_transform(R=None, t=None):
    """Build a 4×4 homogeneous matrix from rotation *R* and translation *t*."""
    T = np.eye(4)
    if R is not None:
        T[:3, :3] = np.asarray(R, dtype=np.float64)
    if t is not None:
        T[:3, 3] = np.asarray(t, dtype=np.float64).reshape(3)
    return T


def translation(x, y, z):
    return make_transform(t=(x, y, z))


def rotation_about_z(theta):
    """Rotation by *theta* radians about the vertical axis, as a 4×4 matrix."""
    c, s = np.cos(theta), np.sin(theta)
    return make_transform(np.array([[c, -s, 0.0],
                                    [s,  c, 0.0],
                                    [0.0, 0.0, 1.0]]))


def invert_transform(T):
    """Closed-form rigid inverse: [Rᵀ, −Rᵀt]."""
    R = T[:3, :3]
    t = T[:3, 3]
    return make_transform(R.T, -R.T @ t)


def transform_points(points, T):
    """Apply *T* to the xyz columns of *points*; extra columns pass through."""
    pts = np.asarray(points, dtype=np.float64)
    out = pts.copy()
    out[:, :3] = pts[:, :3] @ T[:3, :3].T + T[:3, 3]
    return out


def quaternion_to_matrix(q):
    """(x, y, z, w) → 3×3 rotation matrix."""
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"quaternion must have 4 elements, got {q.size}")
    if np.linalg.norm(q) < 1e-12:
        raise ValueError("quaternion has zero norm")
    return Rotation.from_quat(q).as_matrix()


def matrix_to_quaternion(R):
    """3×3 rotation matrix → (x, y, z, w)."""
    return Rotation.from_matrix(np.asarray(R)[:3, :3]).as_quat()


def euler_ypr(R):
    """Return (yaw, pitch, roll) in radians for rotation *R*."""
    yaw, pitch, roll = Rotation.from_matrix(np.asarray(R)[:3, :3]).as_euler(EULER_SEQ)
    return float(yaw), float(pitch), float(roll)


def matrix_from_ypr(yaw, pitch, roll):
    """Inverse of :func:`euler_ypr` (3×3)."""
    return Rotation.from_euler(EULER_SEQ, [yaw, pitch, roll]).as_matrix()


def is_rigid(T, atol=1e-6):
    """True when *T* is a proper rigid transform (orthonormal R, det +1)."""
    T = np.asarray(T)
    if T.shape != (4, 4):
        return False
    R = T[:3, :3]
    return (np.allclose(R.T @ R, np.eye(3), atol=atol)
            and np.isclose(np.linalg.det(R), 1.0, atol=atol)
            and np.allclose(T[3], [0.0, 0.0, 0.0, 1.0], atol=atol))
