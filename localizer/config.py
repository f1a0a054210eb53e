"""
YAML configuration.

Keys mirror the parameter names the localizer has always used
(``scanLeafSize``, ``baselink2lidar_trans``, ...); tuning for the two
registration stages lives in the ``initial_search`` and ``tracking`` sections.
Every value is read once at startup into a frozen :class:`LocalizerSettings`.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import yaml

from .errors import ConfigError
from .geometry import is_rigid, make_transform, quaternion_to_matrix
from .types import RegistrationParams


def load_config(path="config.yaml"):
    try:
        with open(path, "r") as f:
            cfg = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return cfg


def extrinsics_from_config(trans, rot):
    """base_link → lidar transform from a 3-vector and an (x, y, z, w) quaternion."""
    if trans is None or rot is None:
        raise ConfigError("baselink2lidar_trans and baselink2lidar_rot must be set")
    trans = list(trans)
    rot = list(rot)
    if len(trans) != 3 or len(rot) != 4:
        raise ConfigError(
            f"transform not set properly: expected 3 translation and 4 rotation "
            f"values, got {len(trans)} and {len(rot)}"
        )
    try:
        R = quaternion_to_matrix([float(v) for v in rot])
        T = make_transform(R, [float(v) for v in trans])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"transform not set properly: {exc}") from exc
    return T


def _positive(name, value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if not value > 0:
        raise ConfigError(f"{name} must be > 0, got {value}")
    return value


def _non_negative(name, value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if not value >= 0:
        raise ConfigError(f"{name} must be >= 0, got {value}")
    return value


def _registration_params(section, name, default_corr):
    try:
        return RegistrationParams(
            max_correspondence_distance=_positive(
                f"{name}.max_correspondence_distance",
                section.get("max_correspondence_distance", default_corr)),
            max_iterations=int(section.get("max_iterations", 1000)),
            transformation_epsilon=float(section.get("transformation_epsilon", 1e-8)),
            fitness_epsilon=float(section.get("fitness_epsilon", 1e-8)),
        )
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name}: {exc}") from exc


@dataclass(frozen=True, eq=False)
class LocalizerSettings:
    extrinsics: np.ndarray
    scan_leaf_size: float = 0.3
    map_leaf_size: float = 0.3
    result_save_path: str = "result.csv"
    map_frame: str = "world"
    lidar_frame: str = "nuscenes_lidar"
    heading_range: float = 0.2
    heading_step: float = 0.05
    initial_params: RegistrationParams = field(
        default_factory=lambda: RegistrationParams(max_correspondence_distance=2.0))
    tracking_params: RegistrationParams = field(
        default_factory=lambda: RegistrationParams(max_correspondence_distance=1.0))
    fitness_warn_threshold: float = None
    ready_timeout: float = 30.0
    warn_interval: float = 1.0


def build_settings(cfg):
    """Validate a loaded config mapping and freeze it into settings.

    Raises :class:`ConfigError` on malformed extrinsics or tuning values.
    """
    init_cfg = cfg.get("initial_search", {}) or {}
    track_cfg = cfg.get("tracking", {}) or {}
    ready_cfg = cfg.get("readiness", {}) or {}

    extrinsics = extrinsics_from_config(cfg.get("baselink2lidar_trans"),
                                        cfg.get("baselink2lidar_rot"))
    if not is_rigid(extrinsics):
        raise ConfigError("baselink2lidar transform is not a rigid transform")
    extrinsics.setflags(write=False)

    warn = track_cfg.get("fitness_warn_threshold")
    timeout = ready_cfg.get("timeout", 30.0)

    return LocalizerSettings(
        extrinsics=extrinsics,
        scan_leaf_size=_positive("scanLeafSize", cfg.get("scanLeafSize", 0.3)),
        map_leaf_size=_positive("mapLeafSize", cfg.get("mapLeafSize", 0.3)),
        result_save_path=str(cfg.get("resultSavePath", "result.csv")),
        map_frame=str(cfg.get("mapFrame", "world")),
        lidar_frame=str(cfg.get("lidarFrame", "nuscenes_lidar")),
        heading_range=_positive("initial_search.heading_range",
                                init_cfg.get("heading_range", 0.2)),
        heading_step=_positive("initial_search.heading_step",
                               init_cfg.get("heading_step", 0.05)),
        initial_params=_registration_params(init_cfg, "initial_search", 2.0),
        tracking_params=_registration_params(track_cfg, "tracking", 1.0),
        fitness_warn_threshold=(None if warn is None else
                                _non_negative("tracking.fitness_warn_threshold", warn)),
        ready_timeout=None if timeout is None else _positive("readiness.timeout", timeout),
        warn_interval=_positive("readiness.warn_interval",
                                ready_cfg.get("warn_interval", 1.0)),
    )


def replay_options(cfg):
    """``(point_width, sleep_s)`` for the scan replayer.

    A scan line holds x,y,z or x,y,z,intensity groups, so the width is 3 or 4.
    """
    data_cfg = cfg.get("data", {}) or {}
    svc_cfg = cfg.get("service", {}) or {}
    width = data_cfg.get("point_width", 4)
    if isinstance(width, bool) or width not in (3, 4):
        raise ConfigError(f"data.point_width must be 3 or 4, got {width!r}")
    return int(width), _non_negative("service.sleep_s", svc_cfg.get("sleep_s", 0.0))


def log_level(cfg):
    """Numeric logging level for ``log_level`` (a name such as ``"DEBUG"``)."""
    name = str(cfg.get("log_level", "INFO")).upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ConfigError(f"log_level must be one of DEBUG, INFO, WARNING, ERROR, "
                          f"CRITICAL, got {cfg.get('log_level')!r}")
    return level
