"""
Tests for the composite row partition and the Problem surface handed to IPOPT.
"""
import numpy as np
import pytest

from legopt import (Composite, ConfigurationError, ConstraintSet, DataIntegrityError, Problem,
                    QuadraticSplineCost)
from legopt.composite import make_bounds


class SumConstraint(ConstraintSet):
    """Single row: sum of one variable set."""

    def __init__(self, variables, name="sum", bound=(1.0, 1.0)):
        super().__init__(1, name)
        self._variables = variables
        self._bound = bound

    def get_values(self):
        return np.array([self._variables.get_values().sum()])

    def get_bounds(self):
        return make_bounds(1, self._bound)

    def fill_jacobian_block(self, var_set, jac):
        if var_set == self._variables.get_name():
            jac[0, :] = np.ones(self._variables.get_rows())


class TestComposite:
    def test_ranges_partition_rows(self, simple_variables):
        comp = Composite("vars")
        comp.add_component(simple_variables([1.0, 2.0], "a"))
        comp.add_component(simple_variables([3.0], "b"))
        comp.add_component(simple_variables([4.0, 5.0, 6.0], "c"))

        assert comp.get_rows() == 6
        assert comp.get_block_range("a") == slice(0, 2)
        assert comp.get_block_range("b") == slice(2, 3)
        assert comp.get_block_range("c") == slice(3, 6)
        np.testing.assert_array_equal(comp.get_values(), [1, 2, 3, 4, 5, 6])

    def test_remove_reindexes_following_blocks(self, simple_variables):
        comp = Composite("vars")
        for name, n in (("a", 2), ("b", 1), ("c", 3)):
            comp.add_component(simple_variables(np.zeros(n), name))
        comp.remove_component("b")

        assert comp.get_rows() == 5
        assert comp.get_block_range("c") == slice(2, 5)
        with pytest.raises(DataIntegrityError):
            comp.get_block_range("b")

    def test_reindex_is_idempotent(self, simple_variables):
        comp = Composite("vars")
        comp.add_component(simple_variables([0.0, 0.0], "a"))
        comp.add_component(simple_variables([0.0], "b"))
        before = {c.get_name(): comp.get_block_range(c.get_name()) for c in comp.get_components()}
        comp._reindex()
        comp._reindex()
        after = {c.get_name(): comp.get_block_range(c.get_name()) for c in comp.get_components()}
        assert before == after

    def test_duplicate_name_rejected(self, simple_variables):
        comp = Composite("vars")
        comp.add_component(simple_variables([0.0], "a"))
        with pytest.raises(ConfigurationError):
            comp.add_component(simple_variables([0.0], "a"))

    def test_set_variables_distributes_by_offset(self, simple_variables):
        comp = Composite("vars")
        a = simple_variables([0.0, 0.0], "a")
        b = simple_variables([0.0], "b")
        comp.add_component(a)
        comp.add_component(b)
        comp.set_variables(np.array([1.0, 2.0, 3.0]))
        np.testing.assert_array_equal(a.get_values(), [1.0, 2.0])
        np.testing.assert_array_equal(b.get_values(), [3.0])

    def test_set_variables_wrong_length(self, simple_variables):
        comp = Composite("vars")
        comp.add_component(simple_variables([0.0, 0.0], "a"))
        with pytest.raises(DataIntegrityError):
            comp.set_variables(np.zeros(3))

    def test_cost_composite_sums_into_one_row(self, simple_variables):
        x = simple_variables([1.0, 1.0])
        comp = Composite("costs", is_cost=True)
        comp.add_component(QuadraticSplineCost(x, np.eye(2), np.zeros(2), 1.0, "c1"))
        comp.add_component(QuadraticSplineCost(x, np.eye(2), np.ones(2), 1.0, "c2"))
        assert comp.get_rows() == 1
        np.testing.assert_allclose(comp.get_values(), [2.0 + 4.0])


class TestProblem:
    def test_zero_constraints(self, simple_variables):
        problem = Problem()
        problem.add_variable_set(simple_variables([0.5, -0.5, 2.0]))

        assert problem.get_number_of_optimization_variables() == 3
        assert problem.get_number_of_constraints() == 0
        assert problem.evaluate_constraints(np.zeros(3)).size == 0
        assert problem.evaluate_cost_function(np.zeros(3)) == 0.0
        np.testing.assert_array_equal(problem.evaluate_cost_function_gradient(np.zeros(3)), np.zeros(3))
        rows, cols = problem.jacobianstructure()
        assert rows.size == 0 and cols.size == 0
        assert problem.jacobian(np.zeros(3)).size == 0

    def test_jacobian_layout(self, simple_variables):
        problem = Problem()
        a = simple_variables([0.0, 0.0], "a")
        b = simple_variables([0.0, 0.0, 0.0], "b")
        problem.add_variable_set(a)
        problem.add_variable_set(b)
        problem.add_constraint_set(SumConstraint(b, "sum_b"))
        problem.add_constraint_set(SumConstraint(a, "sum_a", (0.0, np.inf)))

        x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        np.testing.assert_array_equal(problem.evaluate_constraints(x), [12.0, 3.0])
        bounds = problem.get_bounds_on_constraints()
        np.testing.assert_array_equal(bounds, [[1.0, 1.0], [0.0, np.inf]])

        J = problem.get_jacobian_of_constraints().toarray()
        np.testing.assert_array_equal(J, [[0, 0, 1, 1, 1], [1, 1, 0, 0, 0]])
        rows, cols = problem.jacobianstructure()
        np.testing.assert_array_equal(problem.jacobian(x)[rows * 5 + cols], J.ravel())

        block = problem.fill_derivative("sum_a", "a").toarray()
        np.testing.assert_array_equal(block, [[1.0, 1.0]])
        with pytest.raises(DataIntegrityError):
            problem.fill_derivative("missing", "a")

    def test_iterates(self, simple_variables):
        problem = Problem()
        x = simple_variables([0.0, 0.0])
        problem.add_variable_set(x)
        problem.save_current()
        problem.set_variables([1.0, 2.0])
        problem.save_current()

        assert problem.get_iteration_count() == 2
        problem.set_opt_variables(0)
        np.testing.assert_array_equal(x.get_values(), [0.0, 0.0])
        problem.set_opt_variables_final()
        np.testing.assert_array_equal(x.get_values(), [1.0, 2.0])
        with pytest.raises(DataIntegrityError):
            problem.get_opt_variables(5)

    def test_print_current_logs_table(self, simple_variables, caplog):
        problem = Problem()
        x = simple_variables([0.2, 0.2])
        problem.add_variable_set(x)
        problem.add_constraint_set(SumConstraint(x))
        with caplog.at_level("INFO", logger="legopt.problem_class"):
            problem.print_current()
        assert "sum" in caplog.text
