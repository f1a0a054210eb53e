import logging

import numpy as np
from scipy.spatial import KDTree

from .geometry import make_transform, transform_points
from .types import RegistrationParams, RegistrationResult

logger = logging.getLogger(__name__)


def center_of_mass(points):
    return np.array(np.mean(points, axis=0))


def voxel_downsample(points, voxel_size):
    """Average points falling into the same voxel cell.

    Cells are anchored at the world origin (``floor(p / voxel_size)``) and
    keyed on the first three columns only, so any extra columns such as
    intensity are averaged along with the coordinates.  Because each centroid
    stays inside its own cell, downsampling an already-downsampled cloud with
    the same voxel size returns it unchanged.

    Uses 1-D keys derived from grid indices so ``np.unique`` operates on
    a flat int64 array instead of doing row-wise comparison.
    """
    points = np.asarray(points, dtype=np.float64)
    if voxel_size <= 0:
        raise ValueError(f"voxel_size must be positive, got {voxel_size}")
    if len(points) == 0:
        return points.copy()

    dim = points.shape[1]
    vi = np.floor(points[:, :3] / voxel_size).astype(np.int64)
    vi -= vi.min(axis=0)

    # ── 1-D key for fast np.unique ────────────────────────────────────
    spans = vi.max(axis=0) + 1
    keys = (vi[:, 0] * spans[1] + vi[:, 1]) * spans[2] + vi[:, 2]
    _, inv = np.unique(keys, return_inverse=True)
    inv = inv.reshape(-1)

    n_unique = int(inv.max() + 1)
    counts = np.bincount(inv, minlength=n_unique).astype(np.float64)
    downsampled = np.empty((n_unique, dim))
    for d in range(dim):
        downsampled[:, d] = np.bincount(inv, weights=points[:, d],
                                        minlength=n_unique)
    downsampled /= counts[:, np.newaxis]
    return downsampled


def _increment_size(T):
    """Squared change of an incremental transform (rotation + translation)."""
    return float(np.sum((T - np.eye(4)) ** 2))


def ICP(source, target, init_guess=None, max_corr_dist=None,
        max_iterations=1000, transformation_epsilon=1e-8,
        fitness_epsilon=1e-8, target_tree=None):
    """Point-to-point Iterative Closest Point in 3-D.

    Aligns *source* onto *target*; both are (N, >=3) arrays and only the xyz
    columns are used.

    Parameters
    ----------
    init_guess : (4, 4) array or None
        Transform applied to the source before the first iteration.
    max_corr_dist : float or None
        Point pairs farther apart are excluded from the alignment solve.
        ``None`` uses all correspondences.
    transformation_epsilon : float
        Stop once the squared size of the per-iteration increment drops below
        this value.
    fitness_epsilon : float
        Stop once the mean squared correspondence error changes by less than
        this value between iterations.
    target_tree : KDTree or None
        Prebuilt tree over ``target[:, :3]``.

    Returns
    -------
    T : (4, 4) source → target transform (includes the initial guess)
    fitness : mean squared nearest-neighbour distance of the aligned source
    converged : whether an epsilon criterion fired before the iteration cap
    iterations : number of iterations run
    """
    source = np.asarray(source, dtype=np.float64)[:, :3]
    target = np.asarray(target, dtype=np.float64)[:, :3]

    T_total = np.eye(4) if init_guess is None else np.array(init_guess, dtype=np.float64)
    transformed = transform_points(source, T_total)

    if target_tree is None:
        target_tree = KDTree(target)

    max_corr_sq = max_corr_dist ** 2 if max_corr_dist is not None else None

    prev_error = float('inf')
    converged = False
    iteration = 0
    for iteration in range(1, max_iterations + 1):
        # ── find correspondences (KDTree) ─────────────────────────────
        nn_dists, nn_indices = target_tree.query(transformed)
        nearest = target[nn_indices]

        # ── correspondence rejection (outlier filtering) ──────────────
        if max_corr_sq is not None:
            inlier = nn_dists ** 2 < max_corr_sq
            if inlier.sum() < max(3, len(transformed) // 10):
                logger.debug("ICP: too few inliers (%d) at iter=%d", inlier.sum(), iteration)
                break
        else:
            inlier = np.ones(len(transformed), dtype=bool)

        # ── solve for incremental (r, t) using inliers only ──────────
        mu_source = center_of_mass(transformed[inlier])
        mu_target = center_of_mass(nearest[inlier])
        source_centered = transformed[inlier] - mu_source
        target_centered = nearest[inlier] - mu_target
        w = np.dot(source_centered.T, target_centered)
        u, s, vt = np.linalg.svd(w)
        r = np.dot(vt.T, u.T)
        if np.linalg.det(r) < 0:
            vt[-1, :] *= -1
            r = np.dot(vt.T, u.T)
        t = mu_target - np.dot(r, mu_source)

        # ── accumulate & apply (to ALL points) ────────────────────────
        T_inc = make_transform(r, t)
        T_total = T_inc @ T_total
        transformed = np.dot(transformed, r.T) + t

        # ── convergence check ─────────────────────────────────────────
        error = np.mean(np.sum((nearest[inlier] - transformed[inlier]) ** 2, axis=1))
        if _increment_size(T_inc) < transformation_epsilon:
            converged = True
            break
        if abs(prev_error - error) < fitness_epsilon:
            converged = True
            break
        prev_error = error

    final_dists, _ = target_tree.query(transformed)
    fitness = float(np.mean(final_dists ** 2)) if len(final_dists) else float('inf')
    if converged:
        logger.debug("ICP converged: iter=%d, fitness=%.8f", iteration, fitness)
    else:
        logger.debug("ICP stopped without converging: iter=%d, fitness=%.8f",
                     iteration, fitness)
    return T_total, fitness, converged, iteration


class VoxelDownsampler:
    """Downsampler backed by :func:`voxel_downsample`."""

    def downsample(self, cloud, leaf_size):
        return cloud.with_points(voxel_downsample(cloud.points, leaf_size))


class IcpRegistrar:
    """Registrar backed by :func:`ICP`.

    The KD-tree over the most recent target is kept, so registering many
    scans against the same (cached) map builds it only once.
    """

    def __init__(self):
        self._target = None
        self._tree = None

    def _tree_for(self, target):
        if self._target is not target:
            self._tree = KDTree(target[:, :3])
            self._target = target
        return self._tree

    def register(self, source, target, init_guess, params=RegistrationParams()):
        """Refine *init_guess* aligning *source* onto *target* (PointClouds)."""
        T, fitness, converged, iterations = ICP(
            source.points, target.points,
            init_guess=init_guess,
            max_corr_dist=params.max_correspondence_distance,
            max_iterations=params.max_iterations,
            transformation_epsilon=params.transformation_epsilon,
            fitness_epsilon=params.fitness_epsilon,
            target_tree=self._tree_for(target.points),
        )
        return RegistrationResult(T, fitness, converged, iterations)
