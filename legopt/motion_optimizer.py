import copy
import logging

import numpy as np

from .exceptions import DataIntegrityError
from .helpers import get_unique_euler_zyx
from .legopt_dataclasses import BaseState, Parameters, RobotModel, State
from .nlp_factory import NlpFormulation
from .problem_class import Problem
from .spline_holder import SplineHolder
from .terrain import HeightMap
from .trajectory import get_trajectory

logger = logging.getLogger(__name__)


class MotionOptimizer:
    """
    Entry point: set the start and goal, build the problem, solve it and
    sample the result.

    Example:
        >>> opt = MotionOptimizer(make_robot_model("monoped"), make_terrain("flat"), params)
        >>> opt.set_initial_state(start, [foot_W])
        >>> opt.set_final_state(goal)
        >>> opt.solve_nlp()
        >>> trajectory = opt.get_trajectory(dt=0.02)
    """

    def __init__(self, model: RobotModel, terrain: HeightMap, params: Parameters | None = None):
        self.formulation = NlpFormulation(params or Parameters(), model, terrain)
        self.problem = None

    @property
    def params(self) -> Parameters:
        return self.formulation.params

    def set_parameters(self, params: Parameters):
        self.formulation.params = params
        self.problem = None

    def set_initial_state(self, base: BaseState, ee_pos_W: list):
        """Start state of the base and world positions of all feet."""
        base = copy.deepcopy(base)
        roll, pitch, yaw = np.asarray(base.ang.p, dtype=float)
        z, y, x = get_unique_euler_zyx((yaw, pitch, roll), self.params.attitude_singularity_tol)
        if not np.allclose([x, y, z], [roll, pitch, yaw]):
            logger.debug("Initial orientation %s normalized to %s", [roll, pitch, yaw], [x, y, z])
        base.ang = State(np.array([x, y, z]), base.ang.v, base.ang.a)
        self.formulation.initial_base = base
        self.formulation.initial_ee_W = [np.asarray(p, dtype=float) for p in ee_pos_W]
        self.problem = None

    def set_final_state(self, base: BaseState):
        self.formulation.final_base = copy.deepcopy(base)
        self.problem = None

    def build_nlp(self) -> Problem:
        self.problem = self.formulation.build_problem()
        return self.problem

    def solve_nlp(self, solver=None) -> dict:
        """
        Build the problem if needed and solve it.

        Args:
            solver: object with solve(problem), IpoptSolver with default options if None

        Returns:
            the solver info dict
        """
        if self.problem is None:
            self.build_nlp()
        if solver is None:
            # cyipopt is only needed once a problem is solved
            from .solver import IpoptSolver
            solver = IpoptSolver()
        return solver.solve(self.problem)

    def _require_problem(self) -> Problem:
        if self.problem is None:
            raise DataIntegrityError("No problem built yet", context="call build_nlp() first")
        return self.problem

    def get_solution(self) -> SplineHolder:
        """Splines at the variable values currently applied to the problem."""
        self._require_problem()
        return self.formulation.spline_holder

    def get_iteration_count(self) -> int:
        return self._require_problem().get_iteration_count()

    def set_solution(self, iteration: int):
        self._require_problem().set_opt_variables(iteration)

    def get_solution_at(self, iteration: int) -> SplineHolder:
        """Independent copy of the splines at one stored iterate."""
        problem = self._require_problem()
        problem.set_opt_variables(iteration)
        holder = self.formulation.spline_holder.snapshot()
        problem.set_opt_variables_final()
        return holder

    def get_intermediate_solutions(self, dt: float) -> list:
        """Sampled trajectory of every stored iterate, the final values are applied afterwards."""
        problem = self._require_problem()
        trajectories = []
        for i in range(problem.get_iteration_count()):
            problem.set_opt_variables(i)
            trajectories.append(self.get_trajectory(dt))
        if problem.get_iteration_count() > 0:
            problem.set_opt_variables_final()
        return trajectories

    def get_trajectory(self, dt: float) -> list:
        return get_trajectory(self.get_solution(), dt, self.params.trajectory_time_slack)
