"""
Constraint values at known configurations and Jacobians against central
finite differences.
"""
import numpy as np
import pytest

from legopt import (ConstraintName, ConvexityConstraint, ForceConstraint, Parameters,
                    RangeOfMotionBox, TimeDiscretizationConstraint, make_robot_model,
                    uniform_sample_times)


def all_constraints_params(n_ee, optimize_durations):
    params = Parameters(
        total_duration=1.0,
        ee_phase_durations=[[0.35, 0.3, 0.35]] * n_ee,
        ee_in_contact_at_start=[True] * n_ee,
        constraints=[ConstraintName.RANGE_OF_MOTION, ConstraintName.DYNAMIC,
                     ConstraintName.TERRAIN, ConstraintName.FORCE, ConstraintName.CONVEXITY],
    )
    if optimize_durations:
        params.optimize_phase_durations()
    return params


class TestSampling:
    def test_uniform_sample_times(self):
        np.testing.assert_allclose(uniform_sample_times(1.0, 0.3), [0.0, 0.3, 0.6, 0.9, 1.0])
        np.testing.assert_allclose(uniform_sample_times(1.0, 0.25), [0.0, 0.25, 0.5, 0.75, 1.0])

    def test_row_layout(self, formulation_factory):
        formulation = formulation_factory()
        formulation.get_variable_sets()
        kin = formulation.model.kinematic_model
        con = RangeOfMotionBox(formulation.spline_holder, 0, kin.nominal_stance_B[0],
                               kin.max_dev_from_nominal, 0.25)
        assert isinstance(con, TimeDiscretizationConstraint)
        assert con.get_rows() == 5 * 3
        assert con.get_row(2, 1) == 7


class TestValues:
    def test_range_of_motion_standing_still(self, formulation_factory):
        formulation = formulation_factory()
        formulation.get_variable_sets()
        kin = formulation.model.kinematic_model
        con = RangeOfMotionBox(formulation.spline_holder, 0, kin.nominal_stance_B[0],
                               kin.max_dev_from_nominal, 0.08)
        g = con.get_values().reshape(-1, 3)
        bounds = con.get_bounds().reshape(-1, 3, 2)
        np.testing.assert_allclose(g, np.tile(kin.nominal_stance_B[0], (g.shape[0], 1)), atol=1e-9)
        assert np.all(g >= bounds[:, :, 0]) and np.all(g <= bounds[:, :, 1])

    def test_convexity_holds_for_initial_loads(self, formulation_factory):
        model = make_robot_model("hyq")
        params = all_constraints_params(model.n_ee, False)
        # legs in diagonal pairs, never all in the air
        params.ee_phase_durations = [[0.35, 0.3, 0.35], [0.35, 0.65], [0.35, 0.65], [0.35, 0.3, 0.35]]
        params.ee_in_contact_at_start = [True, False, False, True]
        formulation = formulation_factory(robot="hyq", params=params)
        formulation.get_variable_sets()
        con = ConvexityConstraint(formulation.spline_holder)
        assert con.get_rows() == uniform_sample_times(1.0, 0.1).size
        np.testing.assert_allclose(con.get_values(), 1.0)
        np.testing.assert_array_equal(con.get_bounds(), np.ones((con.get_rows(), 2)))

    def test_convexity_skips_flight(self, formulation_factory):
        params = all_constraints_params(1, False)
        formulation = formulation_factory(params=params)
        formulation.get_variable_sets()
        load = formulation.spline_holder.ee_load
        # 0.4, 0.5, 0.6 lie in the swing phase of the only leg
        assert load.get_sample_times().size == uniform_sample_times(1.0, 0.1).size - 3

    def test_force_constraint_at_initial_guess(self, formulation_factory):
        formulation = formulation_factory()
        formulation.get_variable_sets()
        con = ForceConstraint(formulation.spline_holder, formulation.terrain, 1000.0, 0)
        g = con.get_values().reshape(-1, 5)
        bounds = con.get_bounds().reshape(-1, 5, 2)
        # weight on flat ground: normal force m*g, no tangential force
        np.testing.assert_allclose(g[:, 0], 20.0 * 9.80665)
        assert np.all(g[:, 1:] <= 0.0)
        np.testing.assert_array_equal(bounds[:, 0], [[0.0, 1000.0]] * g.shape[0])


@pytest.mark.parametrize("robot", ["monoped", "biped"])
@pytest.mark.parametrize("optimize_durations", [False, True])
@pytest.mark.parametrize("schedule_sum", [0.98, 1.02])
def test_jacobians_match_finite_differences(formulation_factory, jacobians, robot, optimize_durations,
                                           schedule_sum):
    analytic, numeric = jacobians
    model = make_robot_model(robot)
    params = all_constraints_params(model.n_ee, optimize_durations)
    formulation = formulation_factory(robot=robot, params=params, goal_x=0.3)
    problem = formulation.build_problem()

    variables = problem.get_variable_composite()
    rng = np.random.default_rng(7)
    x = variables.get_values()
    x += 0.05 * rng.standard_normal(x.size)
    # schedules off the total duration, as at iterates before convergence
    for var in variables.get_components():
        if var.get_name().startswith("ee_schedule"):
            rows = variables.get_block_range(var.get_name())
            x[rows] *= schedule_sum / x[rows].sum()
    problem.set_variables(x)

    for con in problem.get_constraint_composite().get_components():
        for var in variables.get_components():
            np.testing.assert_allclose(
                analytic(con, var), numeric(con, var), rtol=1e-4, atol=1e-5,
                err_msg=f"d({con.get_name()})/d({var.get_name()})")
