import numpy as np

from .composite import CostTerm, VariableSet
from .legopt_dataclasses import POS, VEL
from .nodes import NodesVariables
from .spline import CubicHermitePolynomial, NodeSpline


class QuadraticSplineCost(CostTerm):
    """
    weight * (x^T M x + v^T x) over the current values x of one variable set.
    M is expected symmetric.
    """

    def __init__(self, variables: VariableSet, M, v, weight: float = 1.0, name: str = None):
        super().__init__(name or f"cost_{variables.get_name()}")
        self._variables = variables
        self._M = np.asarray(M, dtype=float)
        self._v = np.asarray(v, dtype=float).reshape(-1)
        self._weight = float(weight)
        n = variables.get_rows()
        assert self._M.shape == (n, n), f"M has shape {self._M.shape}, expected {(n, n)}"
        assert self._v.size == n, f"v has {self._v.size} entries, expected {n}"

    def get_weight(self) -> float:
        return self._weight

    def get_cost(self) -> float:
        x = self._variables.get_values()
        return self._weight * float(x @ self._M @ x + self._v @ x)

    def fill_jacobian_block(self, var_set, jac):
        if var_set != self._variables.get_name():
            return
        x = self._variables.get_values()
        jac[0, :] = self._weight * (2.0 * self._M @ x + self._v)


def _node_value_index(node_id: int, deriv: int, dim: int, n_dim: int) -> int:
    return (node_id * 2 + deriv) * n_dim + dim


def _node_value_map(nodes: NodesVariables):
    """
    Node values z (flattened [node][pos/vel][dim]) as z = P x + c with x the
    optimization variables and c the constant node values.
    """
    n_dim = nodes.get_dim()
    z = nodes.get_nodes().reshape(-1)
    P = np.zeros((z.size, nodes.get_rows()))
    c = z.copy()
    for idx in range(nodes.get_rows()):
        for info in nodes.get_node_values_info(idx):
            row = _node_value_index(info.node_id, info.deriv, info.dim, n_dim)
            P[row, idx] = 1.0
            c[row] = 0.0
    return P, c


def acceleration_cost_terms(spline: NodeSpline):
    """
    Integral of the squared acceleration over the whole spline as (M, v)
    over the node variables. The constant part of the integral is dropped.

    With acc(tau) = 2c + 6e*tau on a polynomial of duration d:
        int acc^2 = 4 c^2 d + 12 c e d^2 + 12 e^2 d^3
    """
    nodes = spline.get_nodes()
    n_dim = nodes.get_dim()
    n_values = nodes.get_node_count() * 2 * n_dim
    Q = np.zeros((n_values, n_values))
    for poly_id, d in enumerate(spline.get_poly_durations()):
        C = CubicHermitePolynomial.coeff_matrix(d)
        cc, ce = C[2], C[3]
        Q_poly = (4.0 * d * np.outer(cc, cc)
                  + 6.0 * d**2 * (np.outer(cc, ce) + np.outer(ce, cc))
                  + 12.0 * d**3 * np.outer(ce, ce))
        for dim in range(n_dim):
            ids = [_node_value_index(poly_id, POS, dim, n_dim),
                   _node_value_index(poly_id, VEL, dim, n_dim),
                   _node_value_index(poly_id + 1, POS, dim, n_dim),
                   _node_value_index(poly_id + 1, VEL, dim, n_dim)]
            Q[np.ix_(ids, ids)] += Q_poly

    P, c = _node_value_map(nodes)
    M = P.T @ Q @ P
    v = 2.0 * P.T @ Q @ c
    return M, v


def node_cost_terms(nodes: NodesVariables, deriv: int, dims):
    """Sum of squares of the variables setting the given derivative and dimensions."""
    n = nodes.get_rows()
    weights = np.zeros(n)
    for idx in range(n):
        info = nodes.get_node_values_info(idx)[0]
        if info.deriv == deriv and info.dim in dims:
            weights[idx] = 1.0
    return np.diag(weights), np.zeros(n)
