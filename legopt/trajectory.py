import logging

import numpy as np

from .exceptions import ConfigurationError, KinematicInfeasibilityError
from .helpers import (euler_zyx_to_matrix, euler_to_quaternion, angular_velocity_in_world,
                      angular_acceleration_in_world)
from .kinematics import InverseKinematics
from .legopt_dataclasses import EndeffectorState, RobotStateCartesian, State
from .spline_holder import SplineHolder

logger = logging.getLogger(__name__)


def get_sample_times(t_total: float, dt: float, time_slack: float = 1e-5) -> np.ndarray:
    """0, dt, 2dt, ... up to t_total inclusive, allowing time_slack past the end."""
    if dt <= 0.0:
        raise ConfigurationError(f"Sampling step must be positive, got {dt}")
    n = int(np.floor((t_total + time_slack) / dt)) + 1
    return np.arange(n) * dt


def get_state(holder: SplineHolder, t: float) -> RobotStateCartesian:
    base_lin = holder.base_linear.get_point(t)
    base_ang = holder.base_angular.get_point(t)

    ee = []
    for motion, force, durations in zip(holder.ee_motion, holder.ee_force, holder.phase_durations):
        ee.append(EndeffectorState(
            contact=durations.is_contact_phase(t),
            motion=motion.get_point(t),
            force=force.get_point(t).p,
        ))

    return RobotStateCartesian(
        t=float(t),
        base_linear=base_lin,
        base_angular=State(base_ang.p, base_ang.v, base_ang.a),
        base_orientation=euler_to_quaternion(base_ang.p),
        ee=ee,
        base_angular_velocity_W=angular_velocity_in_world(base_ang.p, base_ang.v),
        base_angular_acceleration_W=angular_acceleration_in_world(base_ang.p, base_ang.v, base_ang.a),
    )


def get_trajectory(holder: SplineHolder, dt: float, time_slack: float = 1e-5) -> list:
    """
    Sample the splines of one solution every dt seconds.

    Only reads the holder, so it can be repeated for any stored iterate.

    Args:
        holder: splines of the solution to sample
        dt: sampling step [s]
        time_slack: tolerance past the total duration for the last sample

    Returns:
        list of RobotStateCartesian, first at t=0, last at the total duration
    """
    times = get_sample_times(holder.get_total_time(), dt, time_slack)
    return [get_state(holder, t) for t in times]


def trajectory_to_arrays(trajectory: list):
    """
    Stack a sampled trajectory into arrays.

    Returns:
        times: (N,)
        base_positions: (N, 3)
        base_rotations: (N, 3) Euler angles (roll, pitch, yaw)
        feet_positions: (N, n_ee, 3)
        forces: (N, n_ee, 3)
        contacts: (N, n_ee) bool
    """
    times = np.array([s.t for s in trajectory])
    base_positions = np.array([s.base_linear.p for s in trajectory]).reshape(-1, 3)
    base_rotations = np.array([s.base_angular.p for s in trajectory]).reshape(-1, 3)
    n_ee = trajectory[0].n_ee if trajectory else 0
    feet_positions = np.array([[e.motion.p for e in s.ee] for s in trajectory]).reshape(-1, n_ee, 3)
    forces = np.array([[e.force for e in s.ee] for s in trajectory]).reshape(-1, n_ee, 3)
    contacts = np.array([[e.contact for e in s.ee] for s in trajectory], dtype=bool).reshape(-1, n_ee)
    return times, base_positions, base_rotations, feet_positions, forces, contacts


def get_joint_trajectory(trajectory: list, ik: InverseKinematics) -> list:
    """
    Joint angles of every leg at every sample, None where the foot position
    cannot be reached.
    """
    joints = []
    for state in trajectory:
        R = np.asarray(euler_zyx_to_matrix(state.base_angular.p))
        q_sample = []
        for ee, ee_state in enumerate(state.ee):
            pos_B = R.T @ (ee_state.motion.p - state.base_linear.p)
            try:
                q_sample.append(np.asarray(ik.get_joint_angles(pos_B, ee)))
            except KinematicInfeasibilityError as e:
                logger.warning("t=%.3f leg %d: %s", state.t, ee, e)
                q_sample.append(None)
        joints.append(q_sample)
    return joints
