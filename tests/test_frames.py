import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from localizer.frames import FrameComposer, compose, from_euler, to_euler
from localizer.geometry import (
    invert_transform,
    make_transform,
    rotation_about_z,
    translation,
)


def _random_pose(seed):
    rng = np.random.default_rng(seed)
    R = Rotation.random(None, seed).as_matrix()
    return make_transform(R, rng.uniform(-20, 20, size=3))


@pytest.mark.parametrize("seed", range(5))
def test_compose_then_inverse_extrinsic_restores_pose(seed):
    P = _random_pose(seed)
    E = _random_pose(seed + 100)
    assert np.allclose(compose(compose(P, E), invert_transform(E)), P, atol=1e-9)


def test_compose_is_not_subtraction():
    map_to_lidar = translation(10.0, 5.0, 0.0) @ rotation_about_z(np.pi / 2)
    vehicle_to_lidar = translation(1.0, 0.0, 2.0)
    T = compose(map_to_lidar, vehicle_to_lidar)
    # lidar 1 m ahead of and 2 m above base_link; facing +y, base_link is 1 m back in y
    assert np.allclose(T[:3, 3], [10.0, 4.0, -2.0])
    assert np.allclose(T[:3, :3], map_to_lidar[:3, :3])


@pytest.mark.parametrize("seed", range(10))
def test_euler_round_trip(seed):
    R = Rotation.random(None, seed).as_matrix()
    yaw, pitch, roll = to_euler(R)
    assert np.allclose(from_euler(yaw, pitch, roll), R, atol=1e-9)


def test_euler_order_is_yaw_pitch_roll():
    yaw, pitch, roll = to_euler(rotation_about_z(0.3)[:3, :3])
    assert yaw == pytest.approx(0.3)
    assert pitch == pytest.approx(0.0, abs=1e-12)
    assert roll == pytest.approx(0.0, abs=1e-12)


def test_composer_builds_records_in_vehicle_frame():
    extrinsics = make_transform(rotation_about_z(0.5)[:3, :3], [0.986, 0.0, 1.84])
    composer = FrameComposer(extrinsics)
    vehicle = translation(100.0, 50.0, 0.0) @ rotation_about_z(0.25)

    record = composer.record(7, vehicle @ extrinsics)

    assert record.id == 7
    assert (record.x, record.y, record.z) == pytest.approx((100.0, 50.0, 0.0))
    assert record.yaw == pytest.approx(0.25)
    assert record.pitch == pytest.approx(0.0, abs=1e-9)
    assert record.roll == pytest.approx(0.0, abs=1e-9)
    assert not composer.extrinsics.flags.writeable
