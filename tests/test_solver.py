"""
End-to-end solves with IPOPT, skipped when cyipopt is not installed.
"""
import numpy as np
import pytest
from scipy.spatial.transform import Rotation

pytest.importorskip("cyipopt")

from legopt import (BaseState, MotionOptimizer, Parameters, Problem, State, make_robot_model,
                    make_terrain)
from legopt.solver import IpoptSolver
from legopt.trajectory import get_state


def test_problem_without_constraints_terminates_immediately(simple_variables):
    problem = Problem()
    x = simple_variables([0.5, -1.0, 2.0])
    problem.add_variable_set(x)

    info = IpoptSolver().solve(problem)

    assert problem.get_number_of_constraints() == 0
    assert problem.get_iteration_count() <= 1
    assert info["status"] == 0
    np.testing.assert_allclose(x.get_values(), [0.5, -1.0, 2.0])


def test_monoped_standing():
    params = Parameters(total_duration=0.6, ee_phase_durations=[[0.6]], ee_in_contact_at_start=[True],
                        costs={"base_lin_acc": 1.0})
    optimizer = MotionOptimizer(make_robot_model("monoped"), make_terrain("flat"), params)
    base = BaseState(lin=State(p=np.array([0.0, 0.0, 0.58])))
    optimizer.set_initial_state(base, [np.zeros(3)])
    optimizer.set_final_state(base)

    info = optimizer.solve_nlp(IpoptSolver({"max_iter": 200}))

    assert info["status"] in (0, 1)
    assert optimizer.get_iteration_count() >= 1
    trajectory = optimizer.get_trajectory(0.1)
    assert trajectory[-1].t == pytest.approx(0.6)
    # the leg carries the full weight
    for state in trajectory:
        assert state.ee[0].contact
        assert state.ee[0].force[2] == pytest.approx(20.0 * 9.80665, rel=1e-3)

    intermediate = optimizer.get_intermediate_solutions(0.3)
    assert len(intermediate) == optimizer.get_iteration_count()
    snapshot = optimizer.get_solution_at(0)
    assert snapshot is not optimizer.get_solution()


def test_biped_shift_respects_loads_and_leg_boxes():
    params = Parameters(total_duration=0.6, ee_phase_durations=[[0.6], [0.6]],
                        ee_in_contact_at_start=[True, True],
                        constraints=["terrain", "dynamic", "range_of_motion", "force", "convexity"],
                        costs={"base_lin_acc": 1.0})
    model = make_robot_model("biped")
    optimizer = MotionOptimizer(model, make_terrain("flat"), params)
    kin = model.kinematic_model
    feet = [np.array([p[0], p[1], 0.0]) for p in kin.nominal_stance_B]
    optimizer.set_initial_state(BaseState(lin=State(p=np.array([0.0, 0.0, 0.65]))), feet)
    optimizer.set_final_state(BaseState(lin=State(p=np.array([0.1, 0.0, 0.65]))))

    info = optimizer.solve_nlp(IpoptSolver({"max_iter": 500}))
    assert info["status"] in (0, 1)

    constraints = optimizer.problem.get_constraint_composite()
    loads = constraints.get_component("convexity")
    np.testing.assert_allclose(loads.get_values(), 1.0, atol=1e-5)
    np.testing.assert_allclose(optimizer.get_trajectory(0.6)[-1].base_linear.p, [0.1, 0.0, 0.65], atol=1e-6)

    holder = optimizer.get_solution()
    for ee in range(2):
        box = constraints.get_component(f"rangeofmotion-{ee}")
        for t in box.get_sample_times():
            state = get_state(holder, t)
            R = Rotation.from_quat(state.base_orientation).as_matrix()
            foot_B = R.T @ (state.ee[ee].motion.p - state.base_linear.p)
            deviation = np.abs(foot_B - kin.nominal_stance_B[ee])
            assert np.all(deviation <= kin.get_max_deviation(ee) + 1e-5)
