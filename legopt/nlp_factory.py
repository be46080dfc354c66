import logging

import numpy as np

from .constraints import (uniform_sample_times, RangeOfMotionBox, ConvexityConstraint,
                          TotalDurationConstraint, DynamicConstraint, TerrainConstraint,
                          ForceConstraint)
from .cost_parts import QuadraticSplineCost, acceleration_cost_terms, node_cost_terms
from .endeffector_load import EndeffectorLoad
from .exceptions import ConfigurationError
from .legopt_dataclasses import (X, Y, Z, POS, VEL, BaseState, ConstraintName, CostName,
                                 Parameters, RobotModel)
from .nodes import NodesVariablesAll, EEMotionNodes, EEForceNodes
from .phase_durations import PhaseDurations, check_phase_durations
from .problem_class import Problem
from .spline_holder import SplineHolder
from .terrain import HeightMap
from .variable_names import BASE_LIN_NODES, BASE_ANG_NODES, ee_motion_nodes, ee_force_nodes

logger = logging.getLogger(__name__)

XYZ = (X, Y, Z)


def get_base_poly_durations(t_total: float, dt: float, eps: float = 1e-10) -> list:
    """Equal polynomials of length dt, the last one shortened to end at t_total."""
    durations = []
    t_left = t_total
    while t_left > eps:
        durations.append(min(dt, t_left))
        t_left -= dt
    return durations


class NlpFormulation:
    """
    Builds the variables, constraints and costs of one motion from the
    parameters, the robot model and the terrain.

    Set initial_base, final_base and initial_ee_W before building.
    """

    def __init__(self, params: Parameters, model: RobotModel, terrain: HeightMap):
        self.params = params
        self.model = model
        self.terrain = terrain
        self.initial_base = BaseState()
        self.final_base = BaseState()
        self.initial_ee_W = []
        self.spline_holder = None

    # ----------------- validation -----------------
    def check(self):
        params, n_ee = self.params, self.model.n_ee
        if params.total_duration <= 0.0:
            raise ConfigurationError(f"Total duration must be positive, got {params.total_duration}")
        if params.get_ee_count() != n_ee:
            raise ConfigurationError(
                f"Phase schedule has {params.get_ee_count()} legs, robot model has {n_ee}")
        if len(params.ee_in_contact_at_start) != n_ee:
            raise ConfigurationError(
                f"{len(params.ee_in_contact_at_start)} initial contact flags for {n_ee} legs")
        if len(self.initial_ee_W) != n_ee:
            raise ConfigurationError(f"{len(self.initial_ee_W)} initial foot positions for {n_ee} legs")
        max_dev_shape = np.shape(self.model.kinematic_model.max_dev_from_nominal)
        if max_dev_shape not in ((3,), (n_ee, 3)):
            raise ConfigurationError(f"Maximum deviation of shape {max_dev_shape}, expected (3,) or ({n_ee}, 3)")
        for ee, timings in enumerate(params.ee_phase_durations):
            check_phase_durations(timings, params.total_duration, ee)
        for dt in (params.duration_base_polynomial, params.dt_constraint_range_of_motion,
                   params.dt_constraint_dynamic, params.dt_constraint_convexity):
            if dt <= 0.0:
                raise ConfigurationError(f"Discretization steps must be positive, got {dt}")
        # resolves names, raises on unknown ones
        params.get_used_constraints()
        params.get_cost_weights()

    # ----------------- variables -----------------
    def make_base_variables(self) -> list:
        n_nodes = len(get_base_poly_durations(self.params.total_duration,
                                              self.params.duration_base_polynomial)) + 1
        T = self.params.total_duration

        spline_lin = NodesVariablesAll(n_nodes, 3, BASE_LIN_NODES)
        spline_lin.set_by_linear_interpolation(self.initial_base.lin.p, self.final_base.lin.p, T)
        spline_lin.add_start_bound(POS, XYZ, self.initial_base.lin.p)
        spline_lin.add_start_bound(VEL, XYZ, self.initial_base.lin.v)
        spline_lin.add_final_bound(POS, XYZ, self.final_base.lin.p)
        spline_lin.add_final_bound(VEL, XYZ, self.final_base.lin.v)

        spline_ang = NodesVariablesAll(n_nodes, 3, BASE_ANG_NODES)
        spline_ang.set_by_linear_interpolation(self.initial_base.ang.p, self.final_base.ang.p, T)
        spline_ang.add_start_bound(POS, XYZ, self.initial_base.ang.p)
        spline_ang.add_start_bound(VEL, XYZ, self.initial_base.ang.v)
        spline_ang.add_final_bound(POS, XYZ, self.final_base.ang.p)
        spline_ang.add_final_bound(VEL, XYZ, self.final_base.ang.v)

        return [spline_lin, spline_ang]

    def make_endeffector_variables(self) -> list:
        params = self.params
        T = params.total_duration
        variables = []
        for ee in range(params.get_ee_count()):
            nodes = EEMotionNodes(params.get_phase_count(ee), params.ee_in_contact_at_start[ee],
                                  ee_motion_nodes(ee), params.ee_polynomials_per_swing_phase)

            final_ee_W = np.asarray(self.final_base.lin.p, dtype=float) \
                + np.asarray(self.model.kinematic_model.nominal_stance_B[ee], dtype=float)
            x, y = final_ee_W[X], final_ee_W[Y]
            final_ee_W[Z] = self.terrain.get_height(x, y)

            nodes.set_by_linear_interpolation(self.initial_ee_W[ee], final_ee_W, T)
            nodes.add_start_bound(POS, (X, Y), self.initial_ee_W[ee])
            variables.append(nodes)
        return variables

    def make_force_variables(self) -> list:
        params = self.params
        T = params.total_duration
        n_ee = params.get_ee_count()
        m = self.model.dynamic_model.mass
        g = np.asarray(self.model.dynamic_model.gravity, dtype=float)
        f_stance = -m * g / n_ee
        variables = []
        for ee in range(n_ee):
            nodes = EEForceNodes(params.get_phase_count(ee), params.ee_in_contact_at_start[ee],
                                 ee_force_nodes(ee), params.force_polynomials_per_stance_phase)
            nodes.set_by_linear_interpolation(f_stance, f_stance, T)
            variables.append(nodes)
        return variables

    def make_contact_schedule_variables(self) -> list:
        params = self.params
        return [PhaseDurations(ee, params.ee_phase_durations[ee], params.ee_in_contact_at_start[ee],
                               params.bound_phase_duration[0], params.bound_phase_duration[1],
                               params.total_duration)
                for ee in range(params.get_ee_count())]

    def get_variable_sets(self) -> list:
        """All variable sets in registration order; builds the SplineHolder as a side effect."""
        self.check()
        params = self.params

        base_motion = self.make_base_variables()
        ee_motion = self.make_endeffector_variables()
        ee_force = self.make_force_variables()
        contact_schedule = self.make_contact_schedule_variables()

        ee_load = None
        if ConstraintName.CONVEXITY in params.get_used_constraints():
            times = uniform_sample_times(params.total_duration, params.dt_constraint_convexity)
            ee_load = EndeffectorLoad(params.get_ee_count(), times, contact_schedule)

        self.spline_holder = SplineHolder(
            base_motion[0], base_motion[1],
            get_base_poly_durations(params.total_duration, params.duration_base_polynomial),
            ee_motion, ee_force, contact_schedule,
            params.is_optimize_timings(), ee_load)

        variables = base_motion + ee_motion + ee_force
        if params.is_optimize_timings():
            variables += contact_schedule
        if ee_load is not None:
            variables.append(ee_load)
        return variables

    # ----------------- constraints -----------------
    def get_constraint(self, name: ConstraintName, s: SplineHolder) -> list:
        params = self.params
        kin = self.model.kinematic_model
        n_ee = params.get_ee_count()
        if name == ConstraintName.RANGE_OF_MOTION:
            return [RangeOfMotionBox(s, ee, kin.nominal_stance_B[ee], kin.get_max_deviation(ee),
                                     params.dt_constraint_range_of_motion) for ee in range(n_ee)]
        if name == ConstraintName.CONVEXITY:
            return [ConvexityConstraint(s)]
        if name == ConstraintName.TOTAL_TIME:
            if not params.is_optimize_timings():
                logger.debug("Phase durations fixed, total time constraint skipped")
                return []
            return [TotalDurationConstraint(s, params.total_duration, ee) for ee in range(n_ee)]
        if name == ConstraintName.TERRAIN:
            return [TerrainConstraint(s, self.terrain, ee) for ee in range(n_ee)]
        if name == ConstraintName.FORCE:
            return [ForceConstraint(s, self.terrain, params.force_limit_in_normal_direction, ee)
                    for ee in range(n_ee)]
        if name == ConstraintName.DYNAMIC:
            dyn = self.model.dynamic_model
            return [DynamicConstraint(s, dyn.mass, dyn.gravity, params.dt_constraint_dynamic)]
        raise ConfigurationError(f"Constraint '{name}' not implemented")

    def get_constraints(self, s: SplineHolder) -> list:
        constraints = []
        for name in self.params.get_used_constraints():
            constraints += self.get_constraint(name, s)
        return constraints

    # ----------------- costs -----------------
    def get_cost(self, name: CostName, weight: float, s: SplineHolder) -> list:
        if name == CostName.BASE_LIN_ACC:
            M, v = acceleration_cost_terms(s.base_linear)
            return [QuadraticSplineCost(s.base_linear.get_nodes(), M, v, weight, f"cost_{name.value}")]
        if name == CostName.BASE_ANG_ACC:
            M, v = acceleration_cost_terms(s.base_angular)
            return [QuadraticSplineCost(s.base_angular.get_nodes(), M, v, weight, f"cost_{name.value}")]
        if name == CostName.EE_MOTION_VEL:
            costs = []
            for ee, spline in enumerate(s.ee_motion):
                M, v = node_cost_terms(spline.get_nodes(), VEL, (X, Y))
                costs.append(QuadraticSplineCost(spline.get_nodes(), M, v, weight,
                                                 f"cost_{name.value}_{ee}"))
            return costs
        if name == CostName.EE_FORCE:
            costs = []
            for ee, spline in enumerate(s.ee_force):
                M, v = node_cost_terms(spline.get_nodes(), POS, XYZ)
                costs.append(QuadraticSplineCost(spline.get_nodes(), M, v, weight,
                                                 f"cost_{name.value}_{ee}"))
            return costs
        raise ConfigurationError(f"Cost '{name}' not implemented")

    def get_costs(self, s: SplineHolder) -> list:
        costs = []
        for name, weight in self.params.get_cost_weights():
            costs += self.get_cost(name, weight, s)
        return costs

    # ----------------- problem -----------------
    def build_problem(self) -> Problem:
        """
        Register all variable sets, constraints and costs into a new Problem.

        Raises:
            ConfigurationError: if the parameters do not describe a valid problem
        """
        problem = Problem()
        for var in self.get_variable_sets():
            problem.add_variable_set(var)
        for con in self.get_constraints(self.spline_holder):
            problem.add_constraint_set(con)
        for cost in self.get_costs(self.spline_holder):
            problem.add_cost_set(cost)
        logger.info("Built problem: %d variables, %d constraints, %d cost terms",
                    problem.get_number_of_optimization_variables(),
                    problem.get_number_of_constraints(),
                    problem.get_cost_composite().get_n_blocks())
        return problem
