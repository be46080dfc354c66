import numpy as np
import pytest
import scipy.sparse as sp

from legopt import (BaseState, NlpFormulation, Parameters, State, VariableSet,
                    make_robot_model, make_terrain)


class SimpleVariables(VariableSet):
    """Unbounded plain vector of variables."""

    def __init__(self, x, name="x"):
        super().__init__(len(x), name)
        self._x = np.asarray(x, dtype=float)

    def get_values(self):
        return self._x.copy()

    def set_variables(self, x):
        self._x = np.asarray(x, dtype=float).copy()


@pytest.fixture
def simple_variables():
    return SimpleVariables


@pytest.fixture(scope="session")
def flat_terrain():
    return make_terrain("flat")


def make_formulation(terrain, robot="monoped", params=None, base_z=0.58, goal_x=0.0):
    model = make_robot_model(robot)
    if params is None:
        params = Parameters(total_duration=1.0,
                            ee_phase_durations=[[0.35, 0.3, 0.35]] * model.n_ee,
                            ee_in_contact_at_start=[True] * model.n_ee)
    formulation = NlpFormulation(params, model, terrain)
    formulation.initial_base = BaseState(lin=State(p=np.array([0.0, 0.0, base_z])))
    formulation.final_base = BaseState(lin=State(p=np.array([goal_x, 0.0, base_z])))
    formulation.initial_ee_W = [np.array([p[0], p[1], 0.0])
                                for p in model.kinematic_model.nominal_stance_B]
    return formulation


@pytest.fixture
def formulation_factory(flat_terrain):
    def factory(**kwargs):
        return make_formulation(flat_terrain, **kwargs)
    return factory


def analytic_jacobian(block, var_set):
    jac = sp.lil_matrix((block.get_rows(), var_set.get_rows()))
    block.fill_jacobian_block(var_set.get_name(), jac)
    return jac.toarray()


def numeric_jacobian(block, var_set, h=1e-6):
    x0 = var_set.get_values()
    J = np.zeros((block.get_rows(), x0.size))
    for i in range(x0.size):
        xp, xm = x0.copy(), x0.copy()
        xp[i] += h
        xm[i] -= h
        var_set.set_variables(xp)
        gp = np.asarray(block.get_values(), dtype=float)
        var_set.set_variables(xm)
        gm = np.asarray(block.get_values(), dtype=float)
        J[:, i] = (gp - gm) / (2.0 * h)
    var_set.set_variables(x0)
    return J


@pytest.fixture
def jacobians():
    return analytic_jacobian, numeric_jacobian
