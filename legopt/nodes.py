"""
Node values of cubic Hermite splines as optimization variables.

A node holds position and velocity of every dimension at a knot. Each
optimization variable sets one or more node values: a node shared by two
polynomials is one value, and in a constant phase both nodes of the phase
read the same position variables. Node values that no variable sets are
constants (e.g. zero velocity in stance, zero force in swing).
"""
from typing import NamedTuple

import numpy as np

from .composite import VariableSet, make_bounds
from .legopt_dataclasses import POS, VEL


class NodeValueInfo(NamedTuple):
    node_id: int
    deriv: int
    dim: int


class NodesVariables(VariableSet):
    """Variable set whose values are spline nodes."""

    def __init__(self, n_nodes: int, n_dim: int, name: str):
        super().__init__(0, name)
        self._n_dim = n_dim
        self._nodes = np.zeros((n_nodes, 2, n_dim))  # [node][pos/vel][dim]
        self._infos = []
        self._opt_index = -np.ones((n_nodes, 2, n_dim), dtype=int)
        self._bounds = make_bounds(0)

    def _set_node_mappings(self, infos: list):
        self._infos = infos
        self._opt_index[:] = -1
        opt, node, deriv, dim = [], [], [], []
        for idx, values in enumerate(infos):
            for info in values:
                self._opt_index[info.node_id, info.deriv, info.dim] = idx
                opt.append(idx)
                node.append(info.node_id)
                deriv.append(info.deriv)
                dim.append(info.dim)
        self._map = (np.array(opt, dtype=int), np.array(node, dtype=int),
                     np.array(deriv, dtype=int), np.array(dim, dtype=int))
        self._first = np.array([[v[0].node_id, v[0].deriv, v[0].dim] for v in infos],
                               dtype=int).reshape(-1, 3)
        self.set_rows(len(infos))
        self._bounds = make_bounds(len(infos))

    # ----------------- variable set interface -----------------
    def get_values(self) -> np.ndarray:
        f = self._first
        return self._nodes[f[:, 0], f[:, 1], f[:, 2]].copy()

    def set_variables(self, x: np.ndarray):
        opt, node, deriv, dim = self._map
        self._nodes[node, deriv, dim] = np.asarray(x, dtype=float)[opt]

    def get_bounds(self) -> np.ndarray:
        return self._bounds.copy()

    # ----------------- node access -----------------
    def get_nodes(self) -> np.ndarray:
        return self._nodes

    def get_dim(self) -> int:
        return self._n_dim

    def get_node_count(self) -> int:
        return self._nodes.shape[0]

    def get_polynomial_count(self) -> int:
        return self._nodes.shape[0] - 1

    def get_node_values_info(self, idx: int) -> list:
        return list(self._infos[idx])

    def get_opt_index(self, node_id: int, deriv: int, dim: int) -> int:
        """Index of the variable setting this node value, -1 if it is a constant."""
        return int(self._opt_index[node_id, deriv, dim])

    def get_opt_indices(self, node_id: int, deriv: int) -> np.ndarray:
        return self._opt_index[node_id, deriv]

    # ----------------- initialization and bounds -----------------
    def set_by_linear_interpolation(self, initial_val, final_val, t_total: float):
        """Positions linearly from initial to final over the nodes, constant average velocity."""
        initial_val = np.asarray(initial_val, dtype=float)
        dp = np.asarray(final_val, dtype=float) - initial_val
        average_velocity = dp / t_total
        n_polys = self.get_polynomial_count()
        x = self.get_values()
        for idx, values in enumerate(self._infos):
            info = values[0]
            if info.deriv == POS:
                x[idx] = initial_val[info.dim] + info.node_id / n_polys * dp[info.dim]
            elif info.deriv == VEL:
                x[idx] = average_velocity[info.dim]
        self.set_variables(x)

    def add_bounds(self, node_id: int, deriv: int, dims, values):
        """Fix the listed dimensions of one node value, where a variable sets it."""
        x = self.get_values()
        for dim in dims:
            idx = self.get_opt_index(node_id, deriv, dim)
            if idx < 0:
                continue
            self._bounds[idx] = (values[dim], values[dim])
            x[idx] = values[dim]
        self.set_variables(x)

    def add_start_bound(self, deriv: int, dims, values):
        self.add_bounds(0, deriv, dims, values)

    def add_final_bound(self, deriv: int, dims, values):
        self.add_bounds(self.get_node_count() - 1, deriv, dims, values)


class NodesVariablesAll(NodesVariables):
    """Every position and velocity of every node is a variable (base motion)."""

    def __init__(self, n_nodes: int, n_dim: int, name: str):
        super().__init__(n_nodes, n_dim, name)
        infos = [[NodeValueInfo(node_id, deriv, dim)]
                 for node_id in range(n_nodes)
                 for deriv in (POS, VEL)
                 for dim in range(n_dim)]
        self._set_node_mappings(infos)


class NodesVariablesPhaseBased(NodesVariables):
    """
    Nodes laid out per phase. Phases alternate between constant and changing.
    A constant phase is one polynomial whose end nodes share position and have
    zero velocity; if constant_is_variable is False the position is fixed at
    zero as well. A changing phase holds n_polys_in_changing_phase polynomials.
    """

    def __init__(self, phase_count: int, first_phase_constant: bool, name: str,
                 n_polys_in_changing_phase: int, constant_is_variable: bool, n_dim: int = 3):
        self._first_phase_constant = first_phase_constant
        self._polys_per_phase = [1 if self._is_constant(p, first_phase_constant)
                                 else n_polys_in_changing_phase
                                 for p in range(phase_count)]
        self._first_poly_of_phase = np.concatenate(
            [[0], np.cumsum(self._polys_per_phase)[:-1]]).astype(int)
        n_nodes = int(sum(self._polys_per_phase)) + 1
        super().__init__(n_nodes, n_dim, name)

        infos = []
        for node_id in range(n_nodes):
            if self.is_constant_node(node_id):
                phase = self._constant_phase_of_node(node_id)
                starts_phase = node_id == self._first_poly_of_phase[phase]
                if constant_is_variable and starts_phase:
                    for dim in range(n_dim):
                        infos.append([NodeValueInfo(node_id, POS, dim),
                                      NodeValueInfo(node_id + 1, POS, dim)])
            else:
                for deriv in (POS, VEL):
                    for dim in range(n_dim):
                        infos.append([NodeValueInfo(node_id, deriv, dim)])
        self._set_node_mappings(infos)

    @staticmethod
    def _is_constant(phase: int, first_phase_constant: bool) -> bool:
        return (phase % 2 == 0) == first_phase_constant

    def is_constant_phase(self, phase: int) -> bool:
        return self._is_constant(phase, self._first_phase_constant)

    def get_polys_per_phase(self) -> list:
        return list(self._polys_per_phase)

    def get_phase_count(self) -> int:
        return len(self._polys_per_phase)

    def get_phase_of_poly(self, poly_id: int) -> int:
        return int(np.searchsorted(self._first_poly_of_phase, poly_id, side="right") - 1)

    def get_first_node_of_phase(self, phase: int) -> int:
        return int(self._first_poly_of_phase[phase])

    def get_phase_of_node(self, node_id: int) -> int:
        """Phase of the polynomial starting at this node, the last phase for the final node."""
        return self.get_phase_of_poly(min(node_id, self.get_polynomial_count() - 1))

    def is_constant_poly(self, poly_id: int) -> bool:
        return self.is_constant_phase(self.get_phase_of_poly(poly_id))

    def _constant_phase_of_node(self, node_id: int):
        # A node touches the polynomial before and after it
        for poly_id in (node_id - 1, node_id):
            if 0 <= poly_id < self.get_polynomial_count() and self.is_constant_poly(poly_id):
                return self.get_phase_of_poly(poly_id)
        return None

    def is_constant_node(self, node_id: int) -> bool:
        return self._constant_phase_of_node(node_id) is not None

    def get_non_constant_nodes(self) -> list:
        return [n for n in range(self.get_node_count()) if not self.is_constant_node(n)]


class EEMotionNodes(NodesVariablesPhaseBased):
    """Foot position: constant (but optimized) while in contact."""

    def __init__(self, phase_count: int, is_in_contact_at_start: bool, name: str,
                 n_polys_per_swing_phase: int):
        super().__init__(phase_count, is_in_contact_at_start, name,
                         n_polys_per_swing_phase, constant_is_variable=True)


class EEForceNodes(NodesVariablesPhaseBased):
    """Foot force: fixed at zero while in swing."""

    def __init__(self, phase_count: int, is_in_contact_at_start: bool, name: str,
                 n_polys_per_stance_phase: int):
        super().__init__(phase_count, not is_in_contact_at_start, name,
                         n_polys_per_stance_phase, constant_is_variable=False)
