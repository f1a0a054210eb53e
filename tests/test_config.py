import logging

import numpy as np
import pytest

from localizer.config import build_settings, extrinsics_from_config, load_config, log_level, replay_options
from localizer.errors import ConfigError

BASE = {
    "baselink2lidar_trans": [0.986, 0.0, 1.84],
    "baselink2lidar_rot": [0.0, 0.0, 0.0, 1.0],
}


def test_defaults():
    settings = build_settings(dict(BASE))
    assert settings.scan_leaf_size == 0.3
    assert settings.map_leaf_size == 0.3
    assert settings.map_frame == "world"
    assert settings.lidar_frame == "nuscenes_lidar"
    assert settings.result_save_path == "result.csv"
    assert settings.initial_params.max_correspondence_distance == 2.0
    assert settings.tracking_params.max_correspondence_distance == 1.0
    assert settings.initial_params.max_iterations == 1000
    assert settings.heading_range == 0.2
    assert settings.heading_step == 0.05
    assert settings.fitness_warn_threshold is None
    assert np.allclose(settings.extrinsics[:3, 3], [0.986, 0.0, 1.84])
    assert not settings.extrinsics.flags.writeable


@pytest.mark.parametrize("trans, rot", [
    ([0.0, 0.0], [0.0, 0.0, 0.0, 1.0]),
    ([0.0, 0.0, 0.0], [0.0, 0.0, 1.0]),
    (None, [0.0, 0.0, 0.0, 1.0]),
    ([0.0, 0.0, 0.0], [0.0, 0.0, 0.0, 0.0]),
    ([0.0, "a", 0.0], [0.0, 0.0, 0.0, 1.0]),
])
def test_malformed_extrinsics_fail_fast(trans, rot):
    with pytest.raises(ConfigError):
        extrinsics_from_config(trans, rot)


def test_quaternion_is_xyzw():
    half = np.sqrt(0.5)
    T = extrinsics_from_config([0.0, 0.0, 0.0], [0.0, 0.0, half, half])
    assert np.allclose(T[:3, :3] @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0])


@pytest.mark.parametrize("key", ["scanLeafSize", "mapLeafSize"])
def test_leaf_size_must_be_positive(key):
    with pytest.raises(ConfigError):
        build_settings({**BASE, key: 0.0})


def test_sections_override_registration_params():
    cfg = {
        **BASE,
        "initial_search": {"heading_range": 6.28, "heading_step": 0.1, "max_iterations": 50},
        "tracking": {"max_correspondence_distance": 0.5, "fitness_warn_threshold": 0.2},
        "readiness": {"timeout": None},
    }
    settings = build_settings(cfg)
    assert settings.heading_range == 6.28
    assert settings.initial_params.max_iterations == 50
    assert settings.tracking_params.max_correspondence_distance == 0.5
    assert settings.fitness_warn_threshold == 0.2
    assert settings.ready_timeout is None


def test_load_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("scanLeafSize: 0.5\nbaselink2lidar_trans: [1, 2, 3]\n")
    cfg = load_config(path)
    assert cfg["scanLeafSize"] == 0.5
    assert cfg["baselink2lidar_trans"] == [1, 2, 3]


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")
    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        load_config(bad)


@pytest.mark.parametrize("warn", ["abc", -1.0, [0.2]])
def test_bad_fitness_warn_threshold(warn):
    with pytest.raises(ConfigError):
        build_settings({**BASE, "tracking": {"fitness_warn_threshold": warn}})


def test_replay_options():
    assert replay_options({}) == (4, 0.0)
    assert replay_options({"data": {"point_width": 3}, "service": {"sleep_s": 0.1}}) == (3, 0.1)


@pytest.mark.parametrize("cfg", [
    {"data": {"point_width": 5}},
    {"data": {"point_width": "four"}},
    {"service": {"sleep_s": "soon"}},
    {"service": {"sleep_s": -0.5}},
])
def test_bad_replay_options(cfg):
    with pytest.raises(ConfigError):
        replay_options(cfg)


def test_log_level():
    assert log_level({}) == logging.INFO
    assert log_level({"log_level": "debug"}) == logging.DEBUG
    with pytest.raises(ConfigError):
        log_level({"log_level": "LOUD"})
