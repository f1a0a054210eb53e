"""
Localizer node: glue between the transport and the pipeline stages.

The transport calls :meth:`LocalizerNode.on_map`, :meth:`on_fix` and
:meth:`on_scan` as data arrives.  Scans are processed one at a time, in
arrival order; the first one waits on the readiness gate, runs the heading
search and seeds the tracker, every later one is a warm-started update.
"""

import logging
import threading

import numpy as np

from .errors import NotInitializedError, ShutdownError
from .frames import FrameComposer
from .geometry import invert_transform, matrix_to_quaternion, transform_points, translation
from .icp import IcpRegistrar, VoxelDownsampler
from .initial_pose import InitialPoseEstimator
from .readiness import ReadinessGate
from .recorder import ResultRecorder
from .tracker import PoseTracker
from .types import StampedTransform

logger = logging.getLogger(__name__)


class OutputSink:
    """Where poses, transforms and aligned clouds go.  Default: nowhere."""

    def publish_points(self, cloud):
        pass

    def publish_pose(self, stamp, frame_id, position, orientation):
        pass

    def broadcast_transform(self, stamped):
        pass


class LocalizerNode:

    def __init__(self, settings, registrar=None, downsampler=None, sink=None,
                 recorder=None):
        self.settings = settings
        self.registrar = registrar if registrar is not None else IcpRegistrar()
        self.downsampler = downsampler if downsampler is not None else VoxelDownsampler()
        self.sink = sink if sink is not None else OutputSink()
        self.recorder = recorder if recorder is not None else ResultRecorder(
            settings.result_save_path)

        self.gate = ReadinessGate(warn_interval=settings.warn_interval)
        self.tracker = PoseTracker(
            self.registrar, self.downsampler,
            scan_leaf_size=settings.scan_leaf_size,
            map_leaf_size=settings.map_leaf_size,
            fitness_warn_threshold=settings.fitness_warn_threshold,
        )
        # The map is filtered once, by the tracker, and shared with the search.
        self.estimator = InitialPoseEstimator(
            self.registrar, self.downsampler,
            scan_leaf_size=settings.scan_leaf_size,
        )
        self.composer = FrameComposer(settings.extrinsics)

        self.map_cloud = None
        self.fix = None
        self.cnt = 0
        self._scan_lock = threading.Lock()
        self._data_lock = threading.Lock()
        self._shutdown = False

    @property
    def initialized(self):
        return self.tracker.initialized

    # ── inbound events ───────────────────────────────────────────────────

    def on_map(self, cloud):
        with self._data_lock:
            if self.map_cloud is not None:
                logger.debug("ignoring additional map (%d points)", len(cloud))
                return
            self.map_cloud = cloud
        logger.info("map received: %d points", len(cloud))
        self.gate.set_map_ready()

    def on_fix(self, fix):
        with self._data_lock:
            first = self.fix is None
            if first:
                self.fix = fix
        if not self.initialized:
            # Provisional pose at the fix until the heading is known.
            T = translation(fix.x, fix.y, fix.z)
            self.sink.publish_pose(fix.stamp, self.settings.map_frame,
                                   T[:3, 3].copy(), matrix_to_quaternion(T))
            self.sink.broadcast_transform(StampedTransform(
                T, self.settings.map_frame, self.settings.lidar_frame, fix.stamp))
        if first:
            logger.info("position fix received: (%.3f, %.3f, %.3f)", fix.x, fix.y, fix.z)
            self.gate.set_fix_ready()

    def on_scan(self, scan):
        """Localize one scan and append its record.  Returns the record."""
        if self._shutdown:
            raise ShutdownError("node is shut down")
        with self._scan_lock:
            self.gate.wait(self.settings.ready_timeout)
            if self._shutdown:
                raise ShutdownError("node is shut down")

            if not self.initialized:
                self._initialize(scan)

            result = self.tracker.update(scan, self.map_cloud,
                                         self.tracker.current_transform,
                                         self.settings.tracking_params)
            T = result.transform
            self._publish(scan, T)

            record = self.composer.record(self.cnt + 1, T)
            self.recorder.append(record)
            self.cnt = record.id
            logger.debug("scan %d: x=%.3f y=%.3f yaw=%.4f fitness=%.6f",
                         record.id, record.x, record.y, record.yaw, result.fitness)
            return record

    # ── internals ────────────────────────────────────────────────────────

    def _initialize(self, scan):
        if self.map_cloud is None or self.fix is None:
            raise NotInitializedError("initial pose needs both a map and a fix")
        seed = self.estimator.estimate(
            self.fix, self.tracker.filtered_map(self.map_cloud), scan,
            heading_range=self.settings.heading_range,
            heading_step=self.settings.heading_step,
            params=self.settings.initial_params,
        )
        self.tracker.seed(seed)

    def _publish(self, scan, T):
        stamp = scan.stamp
        aligned = scan.with_points(transform_points(scan.points, T),
                                   frame_id=self.settings.map_frame)
        self.sink.publish_points(aligned)
        # The transform tree carries lidar → map, the inverse of the result.
        self.sink.broadcast_transform(StampedTransform(
            invert_transform(T), self.settings.lidar_frame,
            self.settings.map_frame, stamp))
        self.sink.publish_pose(stamp, self.settings.map_frame,
                               np.array(T[:3, 3]), matrix_to_quaternion(T))

    def shutdown(self):
        """Stop accepting scans, release waiters and close the trace."""
        if self._shutdown:
            return
        self._shutdown = True
        self.gate.cancel()
        with self._scan_lock:
            self.recorder.close(total_fitness=self.tracker.total_fitness)
        logger.info("localizer stopped after %d scans", self.cnt)
