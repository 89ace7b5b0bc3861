"""
Tests for fitness evaluation.

Validates the linear surrogate measurements, the asymmetric minimize/maximize
reward formulas, one-sided constraint penalties, equality tolerance and the
evaluation error taxonomy.
"""

import numpy as np
import pytest

from swarm_opt.optimisation.problems import (
    Domain,
    EvaluationError,
    FitnessEvaluator,
    Objective,
    ObjectiveDirection,
    OptimizationProblem,
    Variable,
    VariableType,
)


class TestFitnessScoring:
    """Rewards, penalties and measured values for known positions."""

    def test_feasible_position(self, mixed_evaluator):
        evaluation = mixed_evaluator.evaluate(np.array([2.0, 1.5, 1.0, 3.0]))

        # weighted sum: 2 + 1.5 + 1 + 2*3
        assert evaluation.objective_values["throughput"] == pytest.approx(10.5)
        assert evaluation.objective_values["cost"] == pytest.approx(2.0)
        assert evaluation.constraint_values["budget"] == pytest.approx(10.5)

        expected = 10.5 * 100 * 2.0 + 1000.0 / 3.0
        assert evaluation.fitness == pytest.approx(expected)
        assert evaluation.feasible
        assert evaluation.violations == []
        print(f"✅ Feasible evaluation: fitness={evaluation.fitness:.3f}")

    def test_violated_inequality_is_penalized(self, mixed_evaluator):
        evaluation = mixed_evaluator.evaluate([10.0, 4.0, 1.0, 7.0])

        assert evaluation.constraint_values["budget"] == pytest.approx(29.0)
        expected = 29.0 * 100 * 2.0 + 1000.0 / 11.0 - (29.0 - 20.0) * 2.0 * 100
        assert evaluation.fitness == pytest.approx(expected)
        assert not evaluation.feasible
        assert len(evaluation.violations) == 1
        assert evaluation.violations[0].startswith("Inequality constraint budget violated")
        assert "value=29" in evaluation.violations[0]
        assert "bound=20" in evaluation.violations[0]

    def test_equality_tolerance_and_one_sided_penalty(self, make_equality_problem):
        evaluator = FitnessEvaluator(make_equality_problem())

        within = evaluator.evaluate([50.0005])
        assert within.feasible
        assert within.fitness == pytest.approx(50.0005 * 100 - 0.0005 * 10 * 100)

        below = evaluator.evaluate([49.0])
        assert not below.feasible
        assert below.fitness == pytest.approx(4900.0)  # penalty only counts values above the bound
        assert below.violations[0].startswith("Equality constraint target violated")

        above = evaluator.evaluate([51.0])
        assert not above.feasible
        assert above.fitness == pytest.approx(5100.0 - 1.0 * 10 * 100)
        print("✅ Equality tolerance and penalties work")

    def test_fitness_may_be_negative(self, make_equality_problem):
        evaluation = FitnessEvaluator(make_equality_problem()).evaluate([100.0])
        assert evaluation.fitness == pytest.approx(10000.0 - 50.0 * 10 * 100)
        assert evaluation.fitness < 0

    def test_feasible_matches_violations(self, mixed_problem, mixed_evaluator, rng):
        for _ in range(50):
            position = rng.uniform(mixed_problem.lower, mixed_problem.upper)
            evaluation = mixed_evaluator.evaluate(position)
            assert evaluation.feasible == (len(evaluation.violations) == 0)

    def test_zero_variables_scores_zero(self):
        problem = OptimizationProblem(id="empty", variables=[])
        evaluation = FitnessEvaluator(problem).evaluate(np.zeros(0))
        assert evaluation.fitness == 0.0
        assert evaluation.feasible

    def test_objective_weight_and_priority_scale_reward(self):
        problem = OptimizationProblem(
            id="scaled",
            variables=[Variable("x", VariableType.CONTINUOUS, Domain(0.0, 10.0))],
            objectives=[Objective("o", ObjectiveDirection.MAXIMIZE, weight=0.5, priority=3.0)],
        )
        assert FitnessEvaluator(problem).evaluate([2.0]).fitness == pytest.approx(2.0 * 100 * 1.5)


class TestEvaluationErrors:
    """Malformed positions abort evaluation."""

    def test_wrong_arity(self, mixed_evaluator):
        with pytest.raises(EvaluationError, match="shape"):
            mixed_evaluator.evaluate([1.0, 2.0])

    def test_non_numeric(self, mixed_evaluator):
        with pytest.raises(EvaluationError, match="non-numeric"):
            mixed_evaluator.evaluate(["a", 1.0, 0.0, 2.0])

    def test_non_finite(self, mixed_evaluator):
        with pytest.raises(EvaluationError, match="speed"):
            mixed_evaluator.evaluate([np.nan, 1.0, 0.0, 2.0])

    def test_evaluation_error_is_runtime_error(self):
        assert issubclass(EvaluationError, RuntimeError)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
