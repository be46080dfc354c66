import numpy as np
import scipy.sparse as sp

from .legopt_dataclasses import POS, VEL, ACC, State
from .nodes import NodesVariables, NodesVariablesPhaseBased


class CubicHermitePolynomial:
    """
    Cubic polynomial defined by position and velocity at both ends.

    p(tau) = a + b*tau + c*tau^2 + e*tau^3 with coefficients linear in the
    boundary values (p0, v0, p1, v1). All functions return the weights of
    these four boundary values, so values and node Jacobians share one code path.
    """

    @staticmethod
    def _time_row(tau: float, deriv: int) -> np.ndarray:
        if deriv == POS:
            return np.array([1.0, tau, tau**2, tau**3])
        if deriv == VEL:
            return np.array([0.0, 1.0, 2.0*tau, 3.0*tau**2])
        if deriv == ACC:
            return np.array([0.0, 0.0, 2.0, 6.0*tau])
        return np.array([0.0, 0.0, 0.0, 6.0])  # jerk

    @staticmethod
    def coeff_matrix(T: float) -> np.ndarray:
        # rows: a, b, c, e ; columns: p0, v0, p1, v1
        return np.array([
            [1.0,       0.0,     0.0,       0.0],
            [0.0,       1.0,     0.0,       0.0],
            [-3.0/T**2, -2.0/T,  3.0/T**2,  -1.0/T],
            [2.0/T**3,  1.0/T**2, -2.0/T**3, 1.0/T**2],
        ])

    @staticmethod
    def coeff_matrix_wrt_duration(T: float) -> np.ndarray:
        return np.array([
            [0.0,       0.0,      0.0,       0.0],
            [0.0,       0.0,      0.0,       0.0],
            [6.0/T**3,  2.0/T**2, -6.0/T**3, 1.0/T**2],
            [-6.0/T**4, -2.0/T**3, 6.0/T**4, -2.0/T**3],
        ])

    @classmethod
    def basis(cls, tau: float, T: float, deriv: int) -> np.ndarray:
        """Weights of (p0, v0, p1, v1) for the deriv-th derivative at local time tau."""
        return cls._time_row(tau, deriv) @ cls.coeff_matrix(T)

    @classmethod
    def basis_wrt_duration(cls, tau: float, T: float, deriv: int) -> np.ndarray:
        """Weights of (p0, v0, p1, v1) for d/dT of the deriv-th derivative, tau held fixed."""
        return cls._time_row(tau, deriv) @ cls.coeff_matrix_wrt_duration(T)


class NodeSpline:
    """
    Sequence of cubic Hermite polynomials over [0, T] built on shared nodes.

    Polynomial i spans nodes i and i+1, so neighbouring polynomials read the
    same node values and the spline is continuous in position and velocity
    without any extra constraint.
    """

    def __init__(self, nodes: NodesVariables, poly_durations):
        self._nodes = nodes
        self._poly_durations = np.asarray(poly_durations, dtype=float)
        assert self._poly_durations.size == nodes.get_polynomial_count(), \
            f"{self._poly_durations.size} durations for {nodes.get_polynomial_count()} polynomials"

    def get_nodes(self) -> NodesVariables:
        return self._nodes

    def get_poly_durations(self) -> np.ndarray:
        return self._poly_durations

    def get_total_time(self) -> float:
        return float(np.sum(self.get_poly_durations()))

    def get_segment_id(self, t: float, eps: float = 1e-10):
        """
        Polynomial containing global time t (clamped into [0, T]) and local time.
        At a boundary the earlier polynomial is returned.
        """
        durations = self.get_poly_durations()
        ends = np.cumsum(durations)
        t = min(max(float(t), 0.0), float(ends[-1]))
        poly_id = int(np.searchsorted(ends, t - eps, side="left"))
        poly_id = min(poly_id, durations.size - 1)
        tau = t - (ends[poly_id] - durations[poly_id])
        tau = min(max(tau, 0.0), float(durations[poly_id]))
        return poly_id, tau

    def _node_values(self, poly_id: int) -> np.ndarray:
        n = self._nodes.get_nodes()
        # (4, dim) in the order p0, v0, p1, v1
        return np.stack([n[poly_id, POS], n[poly_id, VEL], n[poly_id + 1, POS], n[poly_id + 1, VEL]])

    def get_point_of_segment(self, poly_id: int, tau: float) -> State:
        T = float(self.get_poly_durations()[poly_id])
        values = self._node_values(poly_id)
        return State(*(CubicHermitePolynomial.basis(tau, T, d) @ values for d in (POS, VEL, ACC)))

    def get_point(self, t: float) -> State:
        poly_id, tau = self.get_segment_id(t)
        return self.get_point_of_segment(poly_id, tau)

    def get_derivative_wrt_time(self, t: float, deriv: int) -> np.ndarray:
        """d/dt of the deriv-th derivative, e.g. jerk for deriv=ACC."""
        poly_id, tau = self.get_segment_id(t)
        T = float(self.get_poly_durations()[poly_id])
        return CubicHermitePolynomial.basis(tau, T, deriv + 1) @ self._node_values(poly_id)

    def get_jacobian_wrt_nodes(self, t: float, deriv: int) -> sp.csr_matrix:
        """d(deriv-th derivative at t)/d(optimization variables of the nodes), shape (dim, n_vars)."""
        poly_id, tau = self.get_segment_id(t)
        T = float(self.get_poly_durations()[poly_id])
        weights = CubicHermitePolynomial.basis(tau, T, deriv)
        n_dim = self._nodes.get_dim()
        rows, cols, vals = [], [], []
        for w, (node_id, node_deriv) in zip(weights, ((poly_id, POS), (poly_id, VEL),
                                                       (poly_id + 1, POS), (poly_id + 1, VEL))):
            if w == 0.0:
                continue
            idx = self._nodes.get_opt_indices(node_id, node_deriv)
            for dim in range(n_dim):
                if idx[dim] >= 0:
                    rows.append(dim)
                    cols.append(idx[dim])
                    vals.append(w)
        # duplicates (shared variables) are summed
        return sp.csr_matrix((vals, (rows, cols)), shape=(n_dim, self._nodes.get_rows()))


class PhaseSpline(NodeSpline):
    """
    Spline on phase-based nodes whose polynomial durations follow the phase
    durations: each phase is split into equally long polynomials.
    """

    def __init__(self, nodes: NodesVariablesPhaseBased, phase_durations):
        self._phase_durations = phase_durations
        self._polys_per_phase = np.asarray(nodes.get_polys_per_phase(), dtype=int)
        super().__init__(nodes, self.get_poly_durations())

    def get_poly_durations(self) -> np.ndarray:
        T = self._phase_durations.get_durations()
        return np.repeat(T / self._polys_per_phase, self._polys_per_phase)

    def get_phase_durations(self):
        return self._phase_durations

    def is_constant_phase(self, t: float) -> bool:
        poly_id, _ = self.get_segment_id(t)
        return self._nodes.is_constant_poly(poly_id)

    def get_jacobian_wrt_durations(self, t: float, deriv: int) -> sp.csr_matrix:
        """
        d(deriv-th derivative at global t)/d(phase durations), shape (dim, n_phases).

        The active polynomial starts at s_i = sum of earlier polynomial durations
        and has length d_i = T_phase / n_phase, so for phase m
        dX/dT_m = -X'(tau) * ds_i/dT_m + dX/dd_i * dd_i/dT_m.

        From the end of the schedule on the spline holds its final node, which
        does not depend on the durations.
        """
        n_phases = self._polys_per_phase.size
        n_dim = self._nodes.get_dim()
        if float(t) >= self.get_total_time():
            return sp.csr_matrix((n_dim, n_phases))

        poly_id, tau = self.get_segment_id(t)
        durations = self.get_poly_durations()
        T = float(durations[poly_id])
        values = self._node_values(poly_id)
        x_dot = CubicHermitePolynomial.basis(tau, T, deriv + 1) @ values
        x_wrt_d = CubicHermitePolynomial.basis_wrt_duration(tau, T, deriv) @ values

        phase = self._nodes.get_phase_of_poly(poly_id)
        n_in_phase = self._polys_per_phase[phase]
        idx_in_phase = poly_id - self._nodes.get_first_node_of_phase(phase)

        jac = np.zeros((n_dim, n_phases))
        jac[:, :phase] = -x_dot[:, None]
        jac[:, phase] = -x_dot * idx_in_phase / n_in_phase + x_wrt_d / n_in_phase
        return sp.csr_matrix(jac)
