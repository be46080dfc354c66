"""
Constraint sets bound to the SplineHolder.

Each set reads the splines it needs from the holder and writes its values,
bounds and Jacobian blocks. Row layouts are fixed when the set is built.
"""
import numpy as np
import jax

from .composite import ConstraintSet, make_bounds, INF, BOUND_ZERO, BOUND_GREATER_ZERO
from .exceptions import ConfigurationError
from .helpers import euler_zyx_to_matrix, rotate_into_base_jacobian
from .legopt_dataclasses import X, Y, Z, POS, ACC
from .spline_holder import SplineHolder
from .terrain import HeightMap
from .variable_names import (BASE_LIN_NODES, BASE_ANG_NODES, EE_LOAD,
                             ee_motion_nodes, ee_force_nodes, ee_schedule)

_base_to_world = jax.jit(euler_zyx_to_matrix)


def uniform_sample_times(t_total: float, dt: float, eps: float = 1e-10) -> np.ndarray:
    """
    Times 0, dt, 2dt, ... strictly before t_total, followed by t_total itself.
    """
    if dt <= 0.0:
        raise ConfigurationError(f"Sampling step must be positive, got {dt}")
    n = int(np.floor(t_total / dt + eps)) + 1
    times = np.arange(n) * dt
    times = times[times < t_total - eps]
    return np.append(times, t_total)


class TimeDiscretizationConstraint(ConstraintSet):
    """
    Continuous-time constraint enforced at a list of sample times.

    Sample k with local dimension d sits at row k * dims_per_sample + d.
    Subclasses fill one sample at a time.
    """

    def __init__(self, sample_times, dims_per_sample: int, name: str):
        self._dts = np.asarray(sample_times, dtype=float)
        self._dims = int(dims_per_sample)
        super().__init__(self._dts.size * self._dims, name)

    def get_sample_times(self) -> np.ndarray:
        return self._dts

    def get_row(self, k: int, dim: int) -> int:
        return k * self._dims + dim

    def _rows(self, k: int) -> slice:
        return slice(self.get_row(k, 0), self.get_row(k, self._dims))

    def get_values(self) -> np.ndarray:
        g = np.zeros(self.get_rows())
        for k, t in enumerate(self._dts):
            self.update_constraint_at_instance(t, k, g)
        return g

    def get_bounds(self) -> np.ndarray:
        bounds = make_bounds(self.get_rows())
        for k, t in enumerate(self._dts):
            self.update_bounds_at_instance(t, k, bounds)
        return bounds

    def fill_jacobian_block(self, var_set, jac):
        for k, t in enumerate(self._dts):
            self.update_jacobian_at_instance(t, k, var_set, jac)

    def update_constraint_at_instance(self, t: float, k: int, g: np.ndarray):
        raise NotImplementedError

    def update_bounds_at_instance(self, t: float, k: int, bounds: np.ndarray):
        raise NotImplementedError

    def update_jacobian_at_instance(self, t: float, k: int, var_set: str, jac):
        raise NotImplementedError


class RangeOfMotionBox(TimeDiscretizationConstraint):
    """
    Foot position in the base frame stays inside a box around nominal stance.

        nominal - max_dev <= R(phi)^T (p_ee - p_base) <= nominal + max_dev
    """

    def __init__(self, holder: SplineHolder, ee: int, nominal_stance_B, max_dev_from_nominal,
                 dt: float):
        super().__init__(uniform_sample_times(holder.get_total_time(), dt), 3, f"rangeofmotion-{ee}")
        self._holder = holder
        self._ee = ee
        self._nominal = np.asarray(nominal_stance_B, dtype=float)
        self._max_dev = np.asarray(max_dev_from_nominal, dtype=float)

    def _base_and_foot(self, t):
        p_b = self._holder.base_linear.get_point(t).p
        phi = self._holder.base_angular.get_point(t).p
        p_ee = self._holder.ee_motion[self._ee].get_point(t).p
        return p_b, phi, p_ee

    def update_constraint_at_instance(self, t, k, g):
        p_b, phi, p_ee = self._base_and_foot(t)
        R = np.asarray(_base_to_world(phi))
        g[self._rows(k)] = R.T @ (p_ee - p_b)

    def update_bounds_at_instance(self, t, k, bounds):
        bounds[self._rows(k), 0] = self._nominal - self._max_dev
        bounds[self._rows(k), 1] = self._nominal + self._max_dev

    def update_jacobian_at_instance(self, t, k, var_set, jac):
        holder = self._holder
        rows = self._rows(k)
        if var_set == BASE_LIN_NODES:
            phi = holder.base_angular.get_point(t).p
            R = np.asarray(_base_to_world(phi))
            jac[rows, :] = -(R.T @ holder.base_linear.get_jacobian_wrt_nodes(t, POS).toarray())
        elif var_set == BASE_ANG_NODES:
            p_b, phi, p_ee = self._base_and_foot(t)
            dRtv = np.asarray(rotate_into_base_jacobian(phi, p_ee - p_b))
            jac[rows, :] = dRtv @ holder.base_angular.get_jacobian_wrt_nodes(t, POS).toarray()
        elif var_set == ee_motion_nodes(self._ee):
            phi = holder.base_angular.get_point(t).p
            R = np.asarray(_base_to_world(phi))
            jac[rows, :] = R.T @ holder.ee_motion[self._ee].get_jacobian_wrt_nodes(t, POS).toarray()
        elif var_set == ee_schedule(self._ee) and holder.durations_change:
            phi = holder.base_angular.get_point(t).p
            R = np.asarray(_base_to_world(phi))
            jac_dur = holder.ee_motion[self._ee].get_jacobian_wrt_durations(t, POS).toarray()
            jac[rows, :] = R.T @ jac_dur


class ConvexityConstraint(ConstraintSet):
    """
    Load fractions of all legs sum to one at every load sample.
    """

    def __init__(self, holder: SplineHolder):
        if holder.ee_load is None:
            raise ConfigurationError("Convexity constraint needs the endeffector load variables")
        self._load = holder.ee_load
        super().__init__(self._load.get_sample_times().size, "convexity")

    def get_values(self):
        n_ee = self._load.get_ee_count()
        return self._load.get_values().reshape(-1, n_ee).sum(axis=1)

    def get_bounds(self):
        return make_bounds(self.get_rows(), (1.0, 1.0))

    def fill_jacobian_block(self, var_set, jac):
        if var_set != EE_LOAD:
            return
        for k in range(self.get_rows()):
            for ee in range(self._load.get_ee_count()):
                jac[k, self._load.get_index(k, ee)] = 1.0


class TotalDurationConstraint(ConstraintSet):
    """Phase durations of one leg sum to the total time."""

    def __init__(self, holder: SplineHolder, t_total: float, ee: int):
        super().__init__(1, f"totalduration-{ee}")
        self._durations = holder.phase_durations[ee]
        self._t_total = float(t_total)
        self._ee = ee

    def get_values(self):
        return np.array([self._durations.get_durations().sum()])

    def get_bounds(self):
        return make_bounds(1, (self._t_total, self._t_total))

    def fill_jacobian_block(self, var_set, jac):
        if var_set == ee_schedule(self._ee):
            jac[0, :] = np.ones(self._durations.get_phase_count())


class DynamicConstraint(TimeDiscretizationConstraint):
    """
    Linear dynamics of the base as a point mass:

        m * a_base - sum_ee f_ee = m * g
    """

    def __init__(self, holder: SplineHolder, mass: float, gravity, dt: float):
        super().__init__(uniform_sample_times(holder.get_total_time(), dt), 3, "dynamic")
        self._holder = holder
        self._m = float(mass)
        self._g = np.asarray(gravity, dtype=float)

    def update_constraint_at_instance(self, t, k, g):
        acc = self._holder.base_linear.get_point(t).a
        f_sum = sum(f.get_point(t).p for f in self._holder.ee_force)
        g[self._rows(k)] = self._m * acc - f_sum

    def update_bounds_at_instance(self, t, k, bounds):
        bounds[self._rows(k), 0] = self._m * self._g
        bounds[self._rows(k), 1] = self._m * self._g

    def update_jacobian_at_instance(self, t, k, var_set, jac):
        holder = self._holder
        rows = self._rows(k)
        if var_set == BASE_LIN_NODES:
            jac[rows, :] = self._m * holder.base_linear.get_jacobian_wrt_nodes(t, ACC).toarray()
            return
        for ee in range(holder.get_ee_count()):
            if var_set == ee_force_nodes(ee):
                jac[rows, :] = -holder.ee_force[ee].get_jacobian_wrt_nodes(t, POS).toarray()
            elif var_set == ee_schedule(ee) and holder.durations_change:
                jac[rows, :] = -holder.ee_force[ee].get_jacobian_wrt_durations(t, POS).toarray()


class TerrainConstraint(ConstraintSet):
    """
    Foot height above the terrain at every motion node with a height variable:
    on the ground in contact, above it in swing.
    """

    def __init__(self, holder: SplineHolder, terrain: HeightMap, ee: int):
        self._nodes = holder.ee_motion[ee].get_nodes()
        self._terrain = terrain
        self._ee = ee
        # one row per z-position variable, at the first node it sets
        self._node_ids = []
        for idx in range(self._nodes.get_rows()):
            info = self._nodes.get_node_values_info(idx)[0]
            if info.deriv == POS and info.dim == Z:
                self._node_ids.append(info.node_id)
        super().__init__(len(self._node_ids), f"terrain-{ee}")

    def get_values(self):
        nodes = self._nodes.get_nodes()
        g = np.zeros(self.get_rows())
        for row, node_id in enumerate(self._node_ids):
            p = nodes[node_id, POS]
            g[row] = p[Z] - self._terrain.get_height(p[X], p[Y])
        return g

    def get_bounds(self):
        bounds = make_bounds(self.get_rows())
        for row, node_id in enumerate(self._node_ids):
            bounds[row] = BOUND_ZERO if self._nodes.is_constant_node(node_id) else BOUND_GREATER_ZERO
        return bounds

    def fill_jacobian_block(self, var_set, jac):
        if var_set != ee_motion_nodes(self._ee):
            return
        nodes = self._nodes.get_nodes()
        for row, node_id in enumerate(self._node_ids):
            p = nodes[node_id, POS]
            dh = self._terrain.get_height_derivatives(p[X], p[Y])
            idx = self._nodes.get_opt_indices(node_id, POS)
            jac[row, idx[Z]] = 1.0
            for dim in (X, Y):
                if idx[dim] >= 0:
                    jac[row, idx[dim]] = -dh[dim]


class ForceConstraint(ConstraintSet):
    """
    Unilateral, bounded normal force and a friction pyramid at every force
    node in stance, using the terrain basis under the foot.

    Rows per node: f.n in [0, f_max], then +-f.t1 - mu f.n <= 0 and
    +-f.t2 - mu f.n <= 0.
    """

    N_ROWS_PER_NODE = 5

    def __init__(self, holder: SplineHolder, terrain: HeightMap, force_limit_normal: float, ee: int):
        self._force = holder.ee_force[ee].get_nodes()
        self._motion = holder.ee_motion[ee].get_nodes()
        self._terrain = terrain
        self._f_max = float(force_limit_normal)
        self._ee = ee
        self._force_node_ids = self._force.get_non_constant_nodes()
        self._motion_node_ids = [
            self._motion.get_first_node_of_phase(self._force.get_phase_of_node(n))
            for n in self._force_node_ids]
        super().__init__(len(self._force_node_ids) * self.N_ROWS_PER_NODE, f"force-{ee}")

    def _rows(self, i: int) -> slice:
        return slice(i * self.N_ROWS_PER_NODE, (i + 1) * self.N_ROWS_PER_NODE)

    def _force_directions(self, basis: np.ndarray) -> np.ndarray:
        """(5, 3) row directions; works on basis derivatives slice by slice as well."""
        n, t1, t2 = basis[0], basis[1], basis[2]
        mu = self._terrain.friction_coeff
        return np.stack([n, t1 - mu * n, -t1 - mu * n, t2 - mu * n, -t2 - mu * n])

    def get_values(self):
        g = np.zeros(self.get_rows())
        f_nodes = self._force.get_nodes()
        m_nodes = self._motion.get_nodes()
        for i, (nf, nm) in enumerate(zip(self._force_node_ids, self._motion_node_ids)):
            p = m_nodes[nm, POS]
            A = self._force_directions(self._terrain.get_basis(p[X], p[Y]))
            g[self._rows(i)] = A @ f_nodes[nf, POS]
        return g

    def get_bounds(self):
        bounds = make_bounds(self.get_rows())
        for i in range(len(self._force_node_ids)):
            rows = self._rows(i)
            bounds[rows.start] = (0.0, self._f_max)
            bounds[rows.start + 1:rows.stop] = (-INF, 0.0)
        return bounds

    def fill_jacobian_block(self, var_set, jac):
        if var_set not in (ee_force_nodes(self._ee), ee_motion_nodes(self._ee)):
            return
        f_nodes = self._force.get_nodes()
        m_nodes = self._motion.get_nodes()
        for i, (nf, nm) in enumerate(zip(self._force_node_ids, self._motion_node_ids)):
            rows = self._rows(i)
            p = m_nodes[nm, POS]
            if var_set == ee_force_nodes(self._ee):
                A = self._force_directions(self._terrain.get_basis(p[X], p[Y]))
                idx = self._force.get_opt_indices(nf, POS)
                for dim in range(3):
                    if idx[dim] >= 0:
                        jac[rows, idx[dim]] = A[:, dim:dim + 1]
            else:
                dB = self._terrain.get_basis_derivatives(p[X], p[Y])  # (3, 3, 2)
                f = f_nodes[nf, POS]
                idx = self._motion.get_opt_indices(nm, POS)
                for dim in (X, Y):
                    if idx[dim] >= 0:
                        dA = self._force_directions(dB[:, :, dim])
                        jac[rows, idx[dim]] = (dA @ f)[:, None]
