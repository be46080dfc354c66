import numpy as np
import pytest

from legopt import (InverseKinematics, KinematicInfeasibilityError, get_joint_trajectory,
                    get_trajectory, is_within_joint_limits, trajectory_to_arrays)
from legopt.trajectory import get_sample_times


class ShortLegIK(InverseKinematics):
    """Straight two-link leg reaching at most 0.55m."""

    def get_joint_angles(self, pos_B, ee):
        length = np.linalg.norm(pos_B)
        if length > 0.55:
            raise KinematicInfeasibilityError(f"foot at {length:.3f}m out of reach", context=f"leg {ee}")
        return np.array([0.0, np.arccos(length / 0.55)])

    def get_upper_joint_limits(self, ee):
        return np.array([1.0, 1.5])

    def get_lower_joint_limits(self, ee):
        return np.array([-1.0, 0.0])


def test_sample_times_include_end():
    np.testing.assert_allclose(get_sample_times(1.0, 0.5), [0.0, 0.5, 1.0])
    np.testing.assert_allclose(get_sample_times(1.0, 0.3), [0.0, 0.3, 0.6, 0.9])


def test_extraction_dt_half_second(formulation_factory):
    formulation = formulation_factory()
    formulation.get_variable_sets()
    trajectory = get_trajectory(formulation.spline_holder, 0.5)

    assert [s.t for s in trajectory] == pytest.approx([0.0, 0.5, 1.0])
    assert [s.ee[0].contact for s in trajectory] == [True, False, True]
    np.testing.assert_allclose(trajectory[0].base_linear.p, [0.0, 0.0, 0.58])
    np.testing.assert_allclose(trajectory[0].base_orientation, [0.0, 0.0, 0.0, 1.0])


def test_extraction_is_repeatable(formulation_factory):
    formulation = formulation_factory(goal_x=0.4)
    formulation.get_variable_sets()
    first = trajectory_to_arrays(get_trajectory(formulation.spline_holder, 0.1))
    second = trajectory_to_arrays(get_trajectory(formulation.spline_holder, 0.1))
    for a, b in zip(first, second):
        np.testing.assert_array_equal(a, b)


def test_trajectory_to_arrays_shapes(formulation_factory):
    formulation = formulation_factory(robot="biped")
    formulation.get_variable_sets()
    times, base_pos, base_rot, feet, forces, contacts = trajectory_to_arrays(
        get_trajectory(formulation.spline_holder, 0.25))
    assert times.shape == (5,)
    assert base_pos.shape == base_rot.shape == (5, 3)
    assert feet.shape == forces.shape == (5, 2, 3)
    assert contacts.dtype == bool and contacts.shape == (5, 2)
    # no force while the foot is in the air
    np.testing.assert_allclose(forces[~contacts], 0.0)


def test_joint_trajectory_marks_unreachable(formulation_factory):
    formulation = formulation_factory(base_z=0.58)
    formulation.get_variable_sets()
    trajectory = get_trajectory(formulation.spline_holder, 0.5)
    joints = get_joint_trajectory(trajectory, ShortLegIK())
    # feet 0.58m below the base, out of reach
    assert all(q[0] is None for q in joints)

    formulation = formulation_factory(base_z=0.5)
    formulation.get_variable_sets()
    joints = get_joint_trajectory(get_trajectory(formulation.spline_holder, 0.5), ShortLegIK())
    assert all(q[0] is not None for q in joints)
    assert all(is_within_joint_limits(ShortLegIK(), q[0], 0) for q in joints)
