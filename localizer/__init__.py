from .config import LocalizerSettings, build_settings, load_config
from .errors import (
    ConfigError,
    LocalizerError,
    NotInitializedError,
    NotReadyError,
    RecorderError,
    ShutdownError,
)
from .frames import FrameComposer, compose, from_euler, to_euler
from .icp import ICP, IcpRegistrar, VoxelDownsampler, voxel_downsample
from .initial_pose import InitialPoseEstimator, candidate_headings
from .node import LocalizerNode, OutputSink
from .readiness import ReadinessGate
from .recorder import ResultRecorder
from .tracker import PoseTracker
from .types import (
    LocalizationRecord,
    PointCloud,
    PositionFix,
    RegistrationParams,
    RegistrationResult,
    StampedTransform,
)
