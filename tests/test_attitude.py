import math

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from legopt import euler_to_quaternion, get_unique_euler_zyx, quaternion_to_euler
from legopt.helpers import wrap_to_pi


def rotation(zyx):
    return Rotation.from_euler("ZYX", zyx).as_matrix()


@pytest.fixture
def random_triples():
    rng = np.random.default_rng(0)
    triples = list(rng.uniform(-3 * math.pi, 3 * math.pi, size=(200, 3)))
    # hit the gimbal-lock band from both sides
    for y in (math.pi / 2, -math.pi / 2, math.pi / 2 - 5e-4, -math.pi / 2 + 5e-4, math.pi / 2 + 5e-4):
        triples.append(np.array([0.4, y, -1.1]))
    return triples


def test_idempotent(random_triples):
    for zyx in random_triples:
        once = get_unique_euler_zyx(zyx)
        np.testing.assert_allclose(get_unique_euler_zyx(once), once, atol=1e-12)


def test_canonical_ranges(random_triples):
    for zyx in random_triples:
        z, y, x = get_unique_euler_zyx(zyx)
        assert -math.pi / 2 <= y <= math.pi / 2
        assert -math.pi <= z < math.pi
        assert -math.pi <= x < math.pi


def test_same_rotation_outside_band(random_triples):
    for zyx in random_triples:
        out = get_unique_euler_zyx(zyx)
        if abs(abs(out[1]) - math.pi / 2) > 1e-3:
            np.testing.assert_allclose(rotation(out), rotation(zyx), atol=1e-9)


@pytest.mark.parametrize("y", [math.pi / 2, -math.pi / 2])
def test_gimbal_lock_folds_third_angle(y):
    zyx = np.array([0.3, y, 0.7])
    out = get_unique_euler_zyx(zyx)
    assert out[2] == 0.0
    np.testing.assert_allclose(rotation(out), rotation(zyx), atol=1e-9)


def test_tolerance_is_configurable():
    zyx = np.array([0.3, math.pi / 2 - 0.01, 0.7])
    assert get_unique_euler_zyx(zyx)[2] == pytest.approx(0.7)
    assert get_unique_euler_zyx(zyx, tol=0.05)[2] == 0.0


def test_wrap_to_pi():
    assert wrap_to_pi(0.5) == 0.5
    assert wrap_to_pi(math.pi) == pytest.approx(-math.pi)
    assert wrap_to_pi(3 * math.pi / 2) == pytest.approx(-math.pi / 2)


def test_angle_just_below_minus_pi():
    angle = float(np.nextafter(-math.pi, -4.0))
    assert -math.pi <= wrap_to_pi(angle) < math.pi
    once = get_unique_euler_zyx((angle, 0.0, 0.0))
    assert -math.pi <= once[0] < math.pi
    np.testing.assert_array_equal(get_unique_euler_zyx(once), once)


def test_quaternion_round_trip():
    phi = np.array([0.1, -0.2, 0.3])  # roll, pitch, yaw
    np.testing.assert_allclose(quaternion_to_euler(euler_to_quaternion(phi)), phi, atol=1e-12)
