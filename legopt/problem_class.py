import logging

import numpy as np
import scipy.sparse as sp

from .composite import Composite, ConstraintSet, CostTerm, VariableSet
from .exceptions import DataIntegrityError

logger = logging.getLogger(__name__)


class Problem:
    """
    Flat view of all variable sets, constraint sets and cost terms.

    The instance can be handed to cyipopt directly as ``problem_obj``: every
    callback first distributes the solver's vector into the variable sets and
    then evaluates the blocks, which are pure functions of those values.
    """

    def __init__(self):
        self._variables = Composite("variable-sets", is_cost=False)
        self._constraints = Composite("constraint-sets", is_cost=False)
        self._costs = Composite("cost-terms", is_cost=True)
        self._x_prev = []  # one vector per solver iteration

    # ----------------- building -----------------
    def add_variable_set(self, variable_set: VariableSet):
        self._variables.add_component(variable_set)

    def add_constraint_set(self, constraint_set: ConstraintSet):
        self._constraints.add_component(constraint_set)

    def add_cost_set(self, cost_set: CostTerm):
        self._costs.add_component(cost_set)

    def get_number_of_optimization_variables(self) -> int:
        return self._variables.get_rows()

    def get_number_of_constraints(self) -> int:
        return self._constraints.get_rows()

    def has_cost_terms(self) -> bool:
        return self._costs.get_n_blocks() > 0

    def get_variable_composite(self) -> Composite:
        return self._variables

    def get_constraint_composite(self) -> Composite:
        return self._constraints

    def get_cost_composite(self) -> Composite:
        return self._costs

    # ----------------- values and bounds -----------------
    def get_variable_values(self) -> np.ndarray:
        return self._variables.get_values()

    def get_bounds_on_opt_variables(self) -> np.ndarray:
        return self._variables.get_bounds()

    def get_bounds_on_constraints(self) -> np.ndarray:
        return self._constraints.get_bounds()

    def set_variables(self, x: np.ndarray):
        self._variables.set_variables(np.asarray(x, dtype=float))

    def evaluate_cost_function(self, x: np.ndarray) -> float:
        self.set_variables(x)
        if not self.has_cost_terms():
            return 0.0
        return float(self._costs.get_values()[0])

    def evaluate_cost_function_gradient(self, x: np.ndarray) -> np.ndarray:
        self.set_variables(x)
        n = self.get_number_of_optimization_variables()
        if not self.has_cost_terms():
            return np.zeros(n)
        return np.asarray(self._costs.get_jacobian(self._variables).todense()).reshape(n)

    def evaluate_constraints(self, x: np.ndarray) -> np.ndarray:
        self.set_variables(x)
        return self._constraints.get_values()

    def get_jacobian_of_constraints(self) -> sp.csr_matrix:
        return self._constraints.get_jacobian(self._variables)

    def fill_derivative(self, block_name: str, var_set: str) -> sp.csr_matrix:
        """Derivative of one constraint or cost block w.r.t. one variable set."""
        for composite in (self._constraints, self._costs):
            if block_name in [c.get_name() for c in composite.get_components()]:
                return composite.fill_derivative(block_name, var_set, self._variables)
        raise DataIntegrityError(f"No constraint or cost named '{block_name}'")

    # ----------------- iterates -----------------
    def save_current(self):
        self._x_prev.append(self.get_variable_values())

    def get_iteration_count(self) -> int:
        return len(self._x_prev)

    def get_opt_variables(self, iteration: int) -> np.ndarray:
        if not 0 <= iteration < len(self._x_prev):
            raise DataIntegrityError(f"Iteration {iteration} not stored",
                                     context=f"{len(self._x_prev)} iterations")
        return self._x_prev[iteration]

    def set_opt_variables(self, iteration: int):
        self.set_variables(self.get_opt_variables(iteration))

    def set_opt_variables_final(self):
        self.set_opt_variables(len(self._x_prev) - 1)

    def clear_iterations(self):
        self._x_prev = []

    def print_current(self, tol: float = 1e-4):
        x = self.get_variable_values()
        g = self._constraints.get_values()
        bounds = self._constraints.get_bounds()
        logger.info("%-28s %10s %10s %10s", "block", "start", "stop", "violated")
        for var in self._variables.get_components():
            rng = self._variables.get_block_range(var.get_name())
            logger.info("%-28s %10d %10d %10s", var.get_name(), rng.start, rng.stop, "-")
        for con in self._constraints.get_components():
            rng = self._constraints.get_block_range(con.get_name())
            gi, bi = g[rng], bounds[rng]
            n_violated = int(np.sum((gi < bi[:, 0] - tol) | (gi > bi[:, 1] + tol)))
            logger.info("%-28s %10d %10d %10d", con.get_name(), rng.start, rng.stop, n_violated)
        for cost in self._costs.get_components():
            logger.info("%-28s %10s %10s cost=%.6f", cost.get_name(), "-", "-", cost.get_cost())
        logger.info("%d variables, %d constraints, objective = %.6f",
                    x.size, g.size, self.evaluate_cost_function(x))

    # ============== Ipopt callbacks ==============
    def objective(self, x):
        return self.evaluate_cost_function(x)

    def gradient(self, x):
        return self.evaluate_cost_function_gradient(x)

    def constraints(self, x):
        return self.evaluate_constraints(x)

    def jacobian(self, x):
        m = self.get_number_of_constraints()
        if m == 0:
            return np.array([], dtype=float)
        self.set_variables(x)
        J = self.get_jacobian_of_constraints().toarray()
        return np.asarray(J, dtype=float).ravel(order="C")

    def jacobianstructure(self):
        # Dense structure (row-major), fixed at build time
        m = self.get_number_of_constraints()
        n = self.get_number_of_optimization_variables()
        if m == 0:
            return (np.array([], dtype=np.int64), np.array([], dtype=np.int64))
        rows = np.repeat(np.arange(m), n).astype(np.int64)
        cols = np.tile(np.arange(n), m).astype(np.int64)
        return (rows, cols)

    def intermediate(self, alg_mod, iter_count, obj_value, inf_pr, inf_du, mu,
                     d_norm, regularization_size, alpha_du, alpha_pr, ls_trials):
        self.save_current()
        logger.debug("iter %d: objective = %.6e, inf_pr = %.3e", iter_count, obj_value, inf_pr)
        return True
