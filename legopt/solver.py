import logging
import time

import numpy as np
import cyipopt

from .problem_class import Problem

logger = logging.getLogger(__name__)

# IPOPT return codes that mean an (acceptable) optimum was found
SOLVED_STATUS = (0, 1)


class IpoptSolver:
    """
    Runs IPOPT on a Problem through cyipopt.

    The Problem itself is the cyipopt problem object. No Hessian is provided,
    IPOPT uses its limited-memory approximation.
    """

    DEFAULT_OPTIONS = {
        "hessian_approximation": "limited-memory",
        "linear_solver": "mumps",
        "jacobian_approximation": "exact",
        "max_cpu_time": 40.0,
        "max_iter": 3000,
        "tol": 1e-8,
        "acceptable_tol": 1e-4,
        "print_level": 0,      # no IPOPT console output
        "sb": "yes",           # no copyright banner
        "print_timing_statistics": "no",
    }

    def __init__(self, options: dict | None = None):
        self.options = dict(self.DEFAULT_OPTIONS)
        if options:
            self.options.update(options)

    def set_option(self, name: str, value):
        self.options[name] = value

    def solve(self, problem: Problem) -> dict:
        """
        Solve from the current variable values. Iterates are stored in the
        problem; the final one is applied to its variable sets.

        Returns:
            the cyipopt info dict
        """
        var_bounds = problem.get_bounds_on_opt_variables()
        con_bounds = problem.get_bounds_on_constraints()
        x0 = problem.get_variable_values()

        nlp = cyipopt.Problem(
            n=problem.get_number_of_optimization_variables(),
            m=problem.get_number_of_constraints(),
            problem_obj=problem,
            lb=var_bounds[:, 0], ub=var_bounds[:, 1],
            cl=con_bounds[:, 0], cu=con_bounds[:, 1],
        )
        for k, v in self.options.items():
            nlp.add_option(k, v)

        problem.clear_iterations()
        t0 = time.perf_counter()
        x_sol, info = nlp.solve(np.asarray(x0, dtype=float))
        elapsed = time.perf_counter() - t0

        problem.set_variables(x_sol)
        n_iter = problem.get_iteration_count()
        if n_iter == 0 or not np.array_equal(problem.get_opt_variables(n_iter - 1), x_sol):
            problem.save_current()

        if info["status"] in SOLVED_STATUS:
            logger.info("IPOPT finished after %d iterations in %.2fs: %s",
                        problem.get_iteration_count(), elapsed, info["status_msg"])
        else:
            # last iterate is kept as a usable solution
            logger.warning("IPOPT stopped with status %d after %d iterations: %s",
                           info["status"], problem.get_iteration_count(), info["status_msg"])
        return info
