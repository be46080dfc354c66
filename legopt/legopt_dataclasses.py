from dataclasses import dataclass, field
from enum import Enum
import numpy as np

from .exceptions import ConfigurationError

X, Y, Z = 0, 1, 2
POS, VEL, ACC, JERK = 0, 1, 2, 3


class ConstraintName(str, Enum):
    RANGE_OF_MOTION = "range_of_motion"
    CONVEXITY = "convexity"
    TOTAL_TIME = "total_time"
    TERRAIN = "terrain"
    FORCE = "force"
    DYNAMIC = "dynamic"


class CostName(str, Enum):
    BASE_LIN_ACC = "base_lin_acc"
    BASE_ANG_ACC = "base_ang_acc"
    EE_MOTION_VEL = "ee_motion_vel"
    EE_FORCE = "ee_force"


def _resolve(enum_cls, name):
    try:
        return enum_cls(name)
    except ValueError:
        kind = "constraint" if enum_cls is ConstraintName else "cost"
        raise ConfigurationError(f"Unknown {kind} '{name}'",
                                 context=f"valid: {[e.value for e in enum_cls]}") from None


@dataclass
class State:
    p: np.ndarray = field(default_factory=lambda: np.zeros(3))  # position
    v: np.ndarray = field(default_factory=lambda: np.zeros(3))  # velocity
    a: np.ndarray = field(default_factory=lambda: np.zeros(3))  # acceleration

    def at(self, deriv: int) -> np.ndarray:
        return (self.p, self.v, self.a)[deriv]


@dataclass
class BaseState:
    lin: State = field(default_factory=State)  # base position in world frame
    ang: State = field(default_factory=State)  # Euler angles (roll, pitch, yaw), applied Z-Y-X


@dataclass
class KinematicModel:
    nominal_stance_B: list          # Nominal foot position per leg in base frame
    max_dev_from_nominal: np.ndarray  # Box half-size, one (3,) for all legs or (n_ee, 3) per leg

    @property
    def n_ee(self) -> int:
        return len(self.nominal_stance_B)

    def get_max_deviation(self, ee: int) -> np.ndarray:
        max_dev = np.asarray(self.max_dev_from_nominal, dtype=float)
        if max_dev.ndim == 1:
            return max_dev
        return max_dev[ee]


@dataclass
class DynamicModel:
    mass: float
    gravity: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, -9.80665]))


@dataclass
class RobotModel:
    kinematic_model: KinematicModel
    dynamic_model: DynamicModel

    @property
    def n_ee(self) -> int:
        return self.kinematic_model.n_ee


@dataclass
class Parameters:
    total_duration: float = 1.0
    ee_phase_durations: list = field(default_factory=list)   # Phase durations per leg [s]
    ee_in_contact_at_start: list = field(default_factory=list)  # First phase contact flag per leg
    constraints: list = field(default_factory=lambda: [
        ConstraintName.TERRAIN,
        ConstraintName.DYNAMIC,
        ConstraintName.RANGE_OF_MOTION,
        ConstraintName.FORCE,
    ])
    costs: dict = field(default_factory=dict)  # cost name -> weight
    optimize_timings: bool = False

    duration_base_polynomial: float = 0.1
    ee_polynomials_per_swing_phase: int = 2
    force_polynomials_per_stance_phase: int = 3
    dt_constraint_range_of_motion: float = 0.08
    dt_constraint_dynamic: float = 0.1
    dt_constraint_convexity: float = 0.1
    force_limit_in_normal_direction: float = 1000.0
    bound_phase_duration: tuple = (0.2, 1.0)

    attitude_singularity_tol: float = 1e-3  # band around +-pi/2 pitch
    trajectory_time_slack: float = 1e-5     # end-time slack when sampling

    def optimize_phase_durations(self):
        self.optimize_timings = True
        if ConstraintName.TOTAL_TIME not in self.get_used_constraints():
            self.constraints.append(ConstraintName.TOTAL_TIME)

    def is_optimize_timings(self) -> bool:
        return self.optimize_timings

    def get_used_constraints(self) -> list:
        return [_resolve(ConstraintName, c) for c in self.constraints]

    def get_cost_weights(self) -> list:
        return [(_resolve(CostName, name), float(w)) for name, w in self.costs.items()]

    def get_ee_count(self) -> int:
        return len(self.ee_phase_durations)

    def get_phase_count(self, ee: int) -> int:
        return len(self.ee_phase_durations[ee])


@dataclass
class EndeffectorState:
    contact: bool
    motion: State      # foot position and derivatives in world frame
    force: np.ndarray  # ground reaction force in world frame


@dataclass
class RobotStateCartesian:
    t: float
    base_linear: State
    base_angular: State           # Euler angles (roll, pitch, yaw) and their rates
    base_orientation: np.ndarray  # quaternion (x, y, z, w), base to world
    ee: list                      # EndeffectorState per leg
    base_angular_velocity_W: np.ndarray = field(default_factory=lambda: np.zeros(3))
    base_angular_acceleration_W: np.ndarray = field(default_factory=lambda: np.zeros(3))

    @property
    def n_ee(self) -> int:
        return len(self.ee)
