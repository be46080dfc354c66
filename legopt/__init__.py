# Re-export selected symbols
from .problem_class import Problem
from .composite import Composite, Component, VariableSet, ConstraintSet, CostTerm
from .nodes import NodesVariables, NodesVariablesAll, NodesVariablesPhaseBased, EEMotionNodes, EEForceNodes
from .spline import CubicHermitePolynomial, NodeSpline, PhaseSpline
from .phase_durations import PhaseDurations
from .endeffector_load import EndeffectorLoad
from .spline_holder import SplineHolder
from .constraints import (
    uniform_sample_times,
    TimeDiscretizationConstraint,
    RangeOfMotionBox,
    ConvexityConstraint,
    TotalDurationConstraint,
    DynamicConstraint,
    TerrainConstraint,
    ForceConstraint,
)
from .cost_parts import QuadraticSplineCost, acceleration_cost_terms, node_cost_terms
from .helpers import (
    euler_zyx_to_matrix,
    euler_to_quaternion,
    quaternion_to_euler,
    get_unique_euler_zyx,
    bilinear_interp,
)
from .terrain import (
    HeightMap,
    GridHeightMap,
    make_terrain,
    compute_heightmap_gradients,
    get_flat_heightmap,
    get_stairs_heightmap,
    get_heightmap_ramp,
)
from .kinematics import InverseKinematics, is_within_joint_limits
from .robot_models import make_robot_model
from .nlp_factory import NlpFormulation
from .motion_optimizer import MotionOptimizer
from .trajectory import get_trajectory, trajectory_to_arrays, get_joint_trajectory
from .exceptions import (
    LegoptBaseError,
    ConfigurationError,
    DataIntegrityError,
    KinematicInfeasibilityError,
)

from .legopt_dataclasses import *

__all__ = [
    'Problem', 'Composite', 'Component', 'VariableSet', 'ConstraintSet', 'CostTerm',
    'NodesVariables', 'NodesVariablesAll', 'NodesVariablesPhaseBased', 'EEMotionNodes', 'EEForceNodes',
    'CubicHermitePolynomial', 'NodeSpline', 'PhaseSpline', 'PhaseDurations', 'EndeffectorLoad',
    'SplineHolder',
    'uniform_sample_times', 'TimeDiscretizationConstraint', 'RangeOfMotionBox',
    'ConvexityConstraint', 'TotalDurationConstraint', 'DynamicConstraint', 'TerrainConstraint',
    'ForceConstraint',
    'QuadraticSplineCost', 'acceleration_cost_terms', 'node_cost_terms',
    'euler_zyx_to_matrix', 'euler_to_quaternion', 'quaternion_to_euler', 'get_unique_euler_zyx',
    'bilinear_interp',
    'HeightMap', 'GridHeightMap', 'make_terrain', 'compute_heightmap_gradients',
    'get_flat_heightmap', 'get_stairs_heightmap', 'get_heightmap_ramp',
    'InverseKinematics', 'is_within_joint_limits', 'make_robot_model',
    'NlpFormulation', 'MotionOptimizer',
    'get_trajectory', 'trajectory_to_arrays', 'get_joint_trajectory',
    'LegoptBaseError', 'ConfigurationError', 'DataIntegrityError', 'KinematicInfeasibilityError',
    'State', 'BaseState', 'KinematicModel', 'DynamicModel', 'RobotModel', 'Parameters',
    'EndeffectorState', 'RobotStateCartesian', 'ConstraintName', 'CostName',
]
