import numpy as np

from .exceptions import ConfigurationError
from .legopt_dataclasses import DynamicModel, KinematicModel, RobotModel


def _monoped() -> RobotModel:
    kin = KinematicModel(
        nominal_stance_B=[np.array([0.0, 0.0, -0.58])],
        max_dev_from_nominal=np.array([0.25, 0.15, 0.2]),
    )
    return RobotModel(kin, DynamicModel(mass=20.0))


def _biped() -> RobotModel:
    z_nominal_b = -0.65
    y_nominal_b = 0.20
    kin = KinematicModel(
        nominal_stance_B=[np.array([0.0, y_nominal_b, z_nominal_b]),    # left
                          np.array([0.0, -y_nominal_b, z_nominal_b])],  # right
        max_dev_from_nominal=np.array([0.25, 0.15, 0.15]),
    )
    return RobotModel(kin, DynamicModel(mass=20.0))


def _hyq() -> RobotModel:
    x_nominal_b = 0.31
    y_nominal_b = 0.29
    z_nominal_b = -0.58
    kin = KinematicModel(
        nominal_stance_B=[np.array([x_nominal_b, y_nominal_b, z_nominal_b]),    # LF
                          np.array([x_nominal_b, -y_nominal_b, z_nominal_b]),   # RF
                          np.array([-x_nominal_b, y_nominal_b, z_nominal_b]),   # LH
                          np.array([-x_nominal_b, -y_nominal_b, z_nominal_b])],  # RH
        max_dev_from_nominal=np.array([0.25, 0.20, 0.10]),
    )
    return RobotModel(kin, DynamicModel(mass=83.0))


_ROBOTS = {
    "monoped": _monoped,
    "biped": _biped,
    "hyq": _hyq,
}


def make_robot_model(name: str) -> RobotModel:
    if name not in _ROBOTS:
        raise ConfigurationError(f"Unknown robot '{name}'", context=f"valid: {sorted(_ROBOTS)}")
    return _ROBOTS[name]()
