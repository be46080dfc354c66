from abc import ABC, abstractmethod

import numpy as np


class InverseKinematics(ABC):
    """
    Joint angles of one leg from its foot position in the base frame.

    Implementations raise KinematicInfeasibilityError for a position the
    leg cannot reach. The error only concerns that query.
    """

    @abstractmethod
    def get_joint_angles(self, pos_B: np.ndarray, ee: int) -> np.ndarray:
        ...

    @abstractmethod
    def get_upper_joint_limits(self, ee: int) -> np.ndarray:
        ...

    @abstractmethod
    def get_lower_joint_limits(self, ee: int) -> np.ndarray:
        ...


def is_within_joint_limits(ik: InverseKinematics, q: np.ndarray, ee: int, tol: float = 0.0) -> bool:
    q = np.asarray(q, dtype=float)
    lower = np.asarray(ik.get_lower_joint_limits(ee), dtype=float)
    upper = np.asarray(ik.get_upper_joint_limits(ee), dtype=float)
    return bool(np.all(q >= lower - tol) and np.all(q <= upper + tol))
