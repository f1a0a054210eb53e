"""
Heading search for the first pose.

The position fix gives x, y, z but no orientation, so the heading is found by
brute force: every candidate yaw in the search range is turned into an initial
guess ``translate(fix) @ rot_z(yaw)``, refined by the registrar against the
prior map, and scored by the registrar's fitness.  The lowest score wins.
"""

import logging

import numpy as np

from .errors import ConfigError
from .geometry import rotation_about_z, translation
from .types import RegistrationParams

logger = logging.getLogger(__name__)


def candidate_headings(heading_range, heading_step):
    """Yaw candidates ``k * heading_step`` for k = 0 .. floor(range / step).

    Integer-indexed so there is no float accumulation; a range that is a
    whole multiple of the step includes its end point (0.2 / 0.05 → 5 values).
    """
    if heading_step <= 0 or heading_range <= 0:
        raise ConfigError(
            f"heading search needs positive range and step, "
            f"got range={heading_range}, step={heading_step}"
        )
    n = int(np.floor(heading_range / heading_step + 1e-9)) + 1
    return [k * heading_step for k in range(n)]


class InitialPoseEstimator:
    """Bootstraps the map → lidar transform from a position-only fix.

    Parameters
    ----------
    registrar : object with ``register(source, target, init_guess, params)``
    downsampler : object with ``downsample(cloud, leaf_size)`` or None
        When given, the scan and map are reduced with *scan_leaf_size* and
        *map_leaf_size* before the search.
    """

    def __init__(self, registrar, downsampler=None, scan_leaf_size=None,
                 map_leaf_size=None):
        self.registrar = registrar
        self.downsampler = downsampler
        self.scan_leaf_size = scan_leaf_size
        self.map_leaf_size = map_leaf_size
        self.best_result = None
        self.best_heading = None
        self.scores = []

    def _prepare(self, cloud, leaf_size):
        if self.downsampler is None or leaf_size is None:
            return cloud
        return self.downsampler.downsample(cloud, leaf_size)

    def estimate(self, fix, map_cloud, scan, heading_range=0.2,
                 heading_step=0.05, params=RegistrationParams()):
        """Return the refined 4×4 transform of the best-scoring heading."""
        headings = candidate_headings(heading_range, heading_step)
        source = self._prepare(scan, self.scan_leaf_size)
        target = self._prepare(map_cloud, self.map_leaf_size)
        origin = translation(fix.x, fix.y, fix.z)

        min_score = float("inf")
        best = None
        best_heading = None
        self.scores = []
        for yaw in headings:
            init_guess = origin @ rotation_about_z(yaw)
            logger.info("start align: %f", yaw)
            result = self.registrar.register(source, target, init_guess, params)
            self.scores.append((yaw, result.fitness))
            logger.info("min score: %f, score: %f", min_score, result.fitness)
            if best is None or result.fitness < min_score:
                min_score = result.fitness
                best = result
                best_heading = yaw
                logger.info("Update best pose")

        self.best_result = best
        self.best_heading = best_heading
        logger.info("Get initial guess: heading=%.4f rad, score=%.6f",
                    best_heading, min_score)
        return np.array(best.transform, dtype=np.float64)
