import logging

import numpy as np

from .errors import NotInitializedError
from .types import RegistrationParams

logger = logging.getLogger(__name__)


class PoseTracker:
    """Warm-started scan-to-map registration.

    Constant-pose motion model: the refined transform of frame N−1 is used
    unmodified as the initial guess for frame N.  A bad registration is not
    rejected; it is reported through the returned fitness (and a warning when
    *fitness_warn_threshold* is set) and becomes the next guess regardless.
    """

    def __init__(self, registrar, downsampler=None, scan_leaf_size=None,
                 map_leaf_size=None, fitness_warn_threshold=None):
        self.registrar = registrar
        self.downsampler = downsampler
        self.scan_leaf_size = scan_leaf_size
        self.map_leaf_size = map_leaf_size
        self.fitness_warn_threshold = fitness_warn_threshold

        self.current_transform = None
        self.total_fitness = 0.0
        self.frame_count = 0
        self.last_result = None

        self._map_key = None
        self._map_filtered = None

    @property
    def initialized(self):
        return self.current_transform is not None

    def seed(self, transform):
        """Set the transform the first update starts from."""
        self.current_transform = np.array(transform, dtype=np.float64)

    def filtered_map(self, map_cloud):
        # The map is immutable, so one filtered copy per (map, leaf size).
        key = (id(map_cloud), self.map_leaf_size)
        if self._map_key != key or self._map_filtered is None:
            if self.downsampler is None or self.map_leaf_size is None:
                self._map_filtered = map_cloud
            else:
                self._map_filtered = self.downsampler.downsample(map_cloud, self.map_leaf_size)
                logger.info("Map downsampled: %d -> %d points",
                            len(map_cloud), len(self._map_filtered))
            self._map_key = key
        return self._map_filtered

    def _filtered_scan(self, scan):
        if self.downsampler is None or self.scan_leaf_size is None:
            return scan
        return self.downsampler.downsample(scan, self.scan_leaf_size)

    def update(self, scan, map_cloud, previous_guess, params=RegistrationParams()):
        """Register *scan* against *map_cloud* starting from *previous_guess*.

        The result replaces the current transform and its fitness is added to
        :attr:`total_fitness`.
        """
        result = self.registrar.register(
            self._filtered_scan(scan), self.filtered_map(map_cloud),
            previous_guess, params,
        )
        self.current_transform = np.array(result.transform, dtype=np.float64)
        self.total_fitness += result.fitness
        self.frame_count += 1
        self.last_result = result

        if not result.converged:
            logger.warning("Frame %d: registration did not converge "
                           "(fitness %.6f)", self.frame_count, result.fitness)
        elif (self.fitness_warn_threshold is not None
              and result.fitness > self.fitness_warn_threshold):
            logger.warning("Frame %d: fitness %.6f above %.6f",
                           self.frame_count, result.fitness,
                           self.fitness_warn_threshold)
        else:
            logger.debug("Frame %d: fitness %.6f", self.frame_count, result.fitness)
        return result

    def step(self, scan, map_cloud, params=RegistrationParams()):
        """:meth:`update` using the tracker's own current transform as guess."""
        if not self.initialized:
            raise NotInitializedError("PoseTracker.step called before seed()")
        return self.update(scan, map_cloud, self.current_transform, params)
