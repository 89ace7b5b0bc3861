"""
Tests for the problem definition model.

Covers construction-time validation (every definitional error is raised before
a swarm exists) and the variable-index table the swarm components rely on.
"""

import numpy as np
import pytest

from swarm_opt.optimisation.problems import (
    Constraint,
    ConstraintKind,
    Domain,
    Objective,
    ObjectiveDirection,
    OptimizationProblem,
    ProblemDefinitionError,
    Variable,
    VariableType,
)


def _continuous(variable_id="x", low=0.0, high=1.0, **kwargs):
    return Variable(variable_id, VariableType.CONTINUOUS, Domain(low, high), **kwargs)


class TestProblemValidation:
    """Definitional errors are detected when the problem is built."""

    def test_min_greater_than_max_rejected(self):
        with pytest.raises(ProblemDefinitionError, match="min > max"):
            OptimizationProblem(id="bad", variables=[_continuous(low=5.0, high=1.0)])
        print("✅ min > max rejected")

    def test_non_finite_bounds_rejected(self):
        with pytest.raises(ProblemDefinitionError, match="finite"):
            OptimizationProblem(id="bad", variables=[_continuous(high=float("inf"))])

    def test_duplicate_variable_ids_rejected(self):
        with pytest.raises(ProblemDefinitionError, match="Duplicate variable id 'x'"):
            OptimizationProblem(id="bad", variables=[_continuous(), _continuous()])

    def test_duplicate_constraint_ids_rejected(self):
        constraints = [
            Constraint("c", ConstraintKind.INEQUALITY, bound=1.0),
            Constraint("c", ConstraintKind.EQUALITY, bound=2.0),
        ]
        with pytest.raises(ProblemDefinitionError, match="Duplicate constraint id"):
            OptimizationProblem(id="bad", variables=[_continuous()], constraints=constraints)

    def test_discrete_requires_positive_step(self):
        for step in (None, 0.0, -1.0):
            variable = Variable("d", VariableType.DISCRETE, Domain(0.0, 10.0, step=step))
            with pytest.raises(ProblemDefinitionError, match="positive step"):
                OptimizationProblem(id="bad", variables=[variable])
        print("✅ Discrete step validation works")

    def test_binary_domain_must_be_zero_one(self):
        variable = Variable("b", VariableType.BINARY, Domain(0, 2))
        with pytest.raises(ProblemDefinitionError, match=r"\[0, 1\]"):
            OptimizationProblem(id="bad", variables=[variable])

    def test_integer_domain_without_whole_number_rejected(self):
        variable = Variable("i", VariableType.INTEGER, Domain(0.2, 0.8))
        with pytest.raises(ProblemDefinitionError, match="no whole number"):
            OptimizationProblem(id="bad", variables=[variable])

    def test_negative_penalty_weight_rejected(self):
        constraint = Constraint("c", ConstraintKind.INEQUALITY, bound=1.0, penalty_weight=-0.5)
        with pytest.raises(ProblemDefinitionError, match="negative penalty weight"):
            OptimizationProblem(id="bad", variables=[_continuous()], constraints=[constraint])

    def test_unknown_variable_reference_rejected(self):
        """Constraints and objectives may only scope variables that exist."""
        constraint = Constraint("c", ConstraintKind.INEQUALITY, bound=1.0, variable_ids=("ghost",))
        with pytest.raises(ProblemDefinitionError, match="unknown variable 'ghost'"):
            OptimizationProblem(id="bad", variables=[_continuous()], constraints=[constraint])

        objective = Objective("o", ObjectiveDirection.MAXIMIZE, variable_ids=("x", "ghost"))
        with pytest.raises(ProblemDefinitionError, match="unknown variable 'ghost'"):
            OptimizationProblem(id="bad", variables=[_continuous()], objectives=[objective])
        print("✅ Unknown variable references rejected")

    def test_definition_error_is_value_error(self):
        assert issubclass(ProblemDefinitionError, ValueError)

    def test_zero_variables_is_valid(self):
        problem = OptimizationProblem(id="empty", variables=[])
        assert problem.n_variables == 0
        assert problem.lower.shape == (0,)


class TestVariableIndex:
    """Per-variable arrays are index-ordered and precomputed."""

    def test_bounds_and_masks(self, mixed_problem):
        assert mixed_problem.variable_ids == ("speed", "slot", "open", "doors")
        np.testing.assert_array_equal(mixed_problem.lower, [0.0, 1.0, 0.0, 1.5])
        np.testing.assert_array_equal(mixed_problem.upper, [10.0, 4.0, 1.0, 7.5])
        np.testing.assert_array_equal(mixed_problem.widths, [10.0, 3.0, 1.0, 6.0])
        np.testing.assert_array_equal(mixed_problem.weights, [1.0, 1.0, 1.0, 2.0])

        np.testing.assert_array_equal(mixed_problem.continuous_mask, [True, False, False, False])
        np.testing.assert_array_equal(mixed_problem.discrete_mask, [False, True, False, False])
        np.testing.assert_array_equal(mixed_problem.binary_mask, [False, False, True, False])
        np.testing.assert_array_equal(mixed_problem.integer_mask, [False, False, False, True])
        print("✅ Variable index table built correctly")

    def test_discrete_and_integer_helpers(self, mixed_problem):
        assert mixed_problem.steps[1] == 0.5
        assert np.isnan(mixed_problem.steps[0])
        assert mixed_problem.max_step_index[1] == 6
        assert mixed_problem.integer_lower[3] == 2.0
        assert mixed_problem.integer_upper[3] == 7.0

    def test_index_of_and_scope_mask(self, mixed_problem):
        assert mixed_problem.index_of("open") == 2
        with pytest.raises(ProblemDefinitionError):
            mixed_problem.index_of("missing")

        np.testing.assert_array_equal(mixed_problem.scope_mask(None), [True] * 4)
        np.testing.assert_array_equal(mixed_problem.scope_mask(("speed", "doors")), [True, False, False, True])

    def test_to_mapping(self, mixed_problem):
        mapping = mixed_problem.to_mapping(np.array([1.0, 2.0, 1.0, 3.0]))
        assert mapping == {"speed": 1.0, "slot": 2.0, "open": 1.0, "doors": 3.0}

    def test_problem_info(self, mixed_problem):
        info = mixed_problem.get_problem_info()
        assert info["id"] == "mixed"
        assert info["name"] == "Mixed variable problem"
        assert info["n_variables"] == 4
        assert info["n_constraints"] == 1
        assert info["n_objectives"] == 2
        assert info["variable_types"] == {"continuous": 1, "discrete": 1, "binary": 1, "integer": 1}

    def test_labels_default_to_id(self):
        constraint = Constraint("cap", ConstraintKind.INEQUALITY, bound=1.0)
        named = Constraint("cap2", ConstraintKind.INEQUALITY, bound=1.0, name="Capacity")
        assert constraint.label == "cap"
        assert named.label == "Capacity"


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
