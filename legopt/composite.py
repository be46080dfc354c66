"""
Building blocks of the nonlinear program.

Every variable set, constraint set and cost term is a Component owning a
contiguous range of rows in the global value/bound/Jacobian structures.
A Composite keeps them in registration order and assigns the ranges.
"""
import logging

import numpy as np
import scipy.sparse as sp

from .exceptions import ConfigurationError, DataIntegrityError

logger = logging.getLogger(__name__)

INF = np.inf
NO_BOUND = (-INF, INF)
BOUND_ZERO = (0.0, 0.0)
BOUND_GREATER_ZERO = (0.0, INF)
BOUND_SMALLER_ZERO = (-INF, 0.0)


def make_bounds(n_rows: int, bound=NO_BOUND) -> np.ndarray:
    """(n_rows, 2) array of [lower, upper] rows."""
    bounds = np.empty((n_rows, 2))
    bounds[:, 0] = bound[0]
    bounds[:, 1] = bound[1]
    return bounds


class Component:
    """A named block of rows. Subclasses define what the rows mean."""

    def __init__(self, n_rows: int, name: str):
        self._n_rows = int(n_rows)
        self._name = name

    def get_values(self) -> np.ndarray:
        raise NotImplementedError

    def get_bounds(self) -> np.ndarray:
        raise NotImplementedError

    def set_variables(self, x: np.ndarray):
        raise NotImplementedError(f"'{self._name}' does not hold optimization variables")

    def get_rows(self) -> int:
        return self._n_rows

    def set_rows(self, n_rows: int):
        self._n_rows = int(n_rows)

    def get_name(self) -> str:
        return self._name


class VariableSet(Component):
    """Rows are optimization variables; bounds are variable bounds."""

    def get_bounds(self) -> np.ndarray:
        return make_bounds(self.get_rows())


class ConstraintSet(Component):
    """Rows are constraint values g(x) with lower <= g(x) <= upper."""

    def fill_jacobian_block(self, var_set: str, jac: sp.lil_matrix):
        """
        Write d(rows)/d(var_set) into jac, pre-shaped (rows, size of var_set).
        Blocks this set does not depend on are left untouched (zero).
        """
        raise NotImplementedError

    def get_jacobian(self, variables: "Composite") -> sp.csr_matrix:
        blocks = []
        for var in variables.get_components():
            jac = sp.lil_matrix((self.get_rows(), var.get_rows()))
            self.fill_jacobian_block(var.get_name(), jac)
            blocks.append(jac)
        if not blocks:
            return sp.csr_matrix((self.get_rows(), 0))
        return sp.hstack(blocks, format="csr")


class CostTerm(ConstraintSet):
    """A scalar term added to the objective, exposed as a single row."""

    def __init__(self, name: str):
        super().__init__(1, name)

    def get_cost(self) -> float:
        raise NotImplementedError

    def get_values(self) -> np.ndarray:
        return np.array([self.get_cost()])

    def get_bounds(self) -> np.ndarray:
        return make_bounds(1)


class Composite(Component):
    """
    Ordered collection of components partitioning one flat row vector.

    The row range of every component is recomputed after each add/remove:
    first the row count of every block is collected, then offsets are
    assigned in registration order. The partition therefore only depends on
    the list of blocks, never on the order of earlier modifications.
    For costs (is_cost=True) all rows are summed into a single scalar row.
    """

    def __init__(self, name: str, is_cost: bool = False):
        super().__init__(0, name)
        self._components = []
        self._ranges = {}
        self._is_cost = is_cost

    # ----------------- structure -----------------
    def add_component(self, component: Component):
        if component.get_name() in self._ranges:
            raise ConfigurationError(f"Block '{component.get_name()}' added twice",
                                     context=self.get_name())
        self._components.append(component)
        self._reindex()

    def remove_component(self, name: str):
        self._components = [c for c in self._components if c.get_name() != name]
        self._reindex()

    def clear_components(self):
        self._components = []
        self._reindex()

    def _reindex(self):
        counts = [c.get_rows() for c in self._components]
        offsets = np.concatenate([[0], np.cumsum(counts, dtype=int)])
        self._ranges = {c.get_name(): slice(int(offsets[i]), int(offsets[i + 1]))
                        for i, c in enumerate(self._components)}
        n_rows = int(offsets[-1])
        if self._is_cost:
            n_rows = 1 if self._components else 0
        self.set_rows(n_rows)
        logger.debug("Reindexed '%s': %s", self.get_name(),
                     {k: (r.start, r.stop) for k, r in self._ranges.items()})

    def get_components(self) -> list:
        return list(self._components)

    def get_component(self, name: str) -> Component:
        for c in self._components:
            if c.get_name() == name:
                return c
        raise DataIntegrityError(f"No block named '{name}'", context=self.get_name())

    def get_block_range(self, name: str) -> slice:
        if name not in self._ranges:
            raise DataIntegrityError(f"No block named '{name}'", context=self.get_name())
        return self._ranges[name]

    def get_n_blocks(self) -> int:
        return len(self._components)

    def _stacked_rows(self) -> int:
        return sum(c.get_rows() for c in self._components)

    # ----------------- values -----------------
    def get_values(self) -> np.ndarray:
        if not self._components:
            return np.zeros(0)
        values = np.concatenate([np.asarray(c.get_values(), dtype=float).reshape(-1)
                                 for c in self._components])
        if self._is_cost:
            return np.array([values.sum()])
        return values

    def get_bounds(self) -> np.ndarray:
        if not self._components or self._is_cost:
            return make_bounds(0)
        return np.vstack([c.get_bounds() for c in self._components])

    def set_variables(self, x: np.ndarray):
        x = np.asarray(x, dtype=float).reshape(-1)
        if x.size != self._stacked_rows():
            raise DataIntegrityError(f"Expected {self._stacked_rows()} values, got {x.size}",
                                     context=self.get_name())
        for c in self._components:
            c.set_variables(x[self._ranges[c.get_name()]])

    def get_jacobian(self, variables: "Composite") -> sp.csr_matrix:
        n_cols = variables.get_rows()
        if not self._components:
            return sp.csr_matrix((self.get_rows(), n_cols))
        jacs = [c.get_jacobian(variables) for c in self._components]
        if self._is_cost:
            total = sp.csr_matrix((1, n_cols))
            for jac in jacs:
                total = total + jac
            return total
        return sp.vstack(jacs, format="csr")

    def fill_derivative(self, name: str, var_set: str, variables: "Composite") -> sp.csr_matrix:
        """d(rows of block name)/d(var_set), all other entries implicitly zero."""
        block = self.get_component(name)
        var = variables.get_component(var_set)
        jac = sp.lil_matrix((block.get_rows(), var.get_rows()))
        block.fill_jacobian_block(var_set, jac)
        return jac.tocsr()
