"""
Fitness evaluation for swarm positions.

Objectives and constraints are measured with a linear surrogate: the weighted
sum of the variables in their scope. The evaluator folds the per-variable
weights and scope masks into two coefficient matrices once, so measuring a
position is a single matrix-vector product per term family.

Scoring:
    - minimize objective reward: ``1000 / (|value| + 1)``
    - maximize objective reward: ``value * 100``
    - each reward scaled by ``objective.weight * objective.priority``
    - constraint penalty: ``max(0, value - bound) * penalty_weight * 100``
    - ``fitness = sum(rewards) - sum(penalties)`` (unbounded below)

The two reward formulas are not on a common scale, so fitness values are only
comparable between positions of the same problem.
"""

import logging
from dataclasses import dataclass, field

import numpy as np

from .base import ConstraintKind, EvaluationError, ObjectiveDirection, OptimizationProblem

logger = logging.getLogger(__name__)

EQUALITY_TOLERANCE = 1e-3


@dataclass
class Evaluation:
    """Scored position: per-term measurements, scalar fitness and feasibility."""

    objective_values: dict[str, float] = field(default_factory=dict)
    constraint_values: dict[str, float] = field(default_factory=dict)
    fitness: float = 0.0
    feasible: bool = True
    violations: list[str] = field(default_factory=list)


class FitnessEvaluator:
    """
    Pure function of (position, problem) returning an :class:`Evaluation`.

    Args:
        problem: Validated problem definition.

    Raises:
        EvaluationError: From :meth:`evaluate` when the position has the wrong
            arity or contains non-numeric / non-finite values.
    """

    def __init__(self, problem: OptimizationProblem):
        self.problem = problem
        n_var = problem.n_variables

        self._objective_coeffs = self._coefficients([o.variable_ids for o in problem.objectives], n_var)
        self._constraint_coeffs = self._coefficients([c.variable_ids for c in problem.constraints], n_var)

        self._minimize = np.array(
            [o.direction == ObjectiveDirection.MINIMIZE for o in problem.objectives], dtype=bool
        )
        self._objective_scale = np.array([o.weight * o.priority for o in problem.objectives], dtype=float)

        self._bounds = np.array([c.bound for c in problem.constraints], dtype=float)
        self._penalty_weights = np.array([c.penalty_weight for c in problem.constraints], dtype=float)
        self._equality = np.array(
            [c.kind == ConstraintKind.EQUALITY for c in problem.constraints], dtype=bool
        )

    def _coefficients(self, scopes: list, n_var: int) -> np.ndarray:
        rows = [self.problem.weights * self.problem.scope_mask(scope) for scope in scopes]
        if not rows:
            return np.zeros((0, n_var))
        return np.vstack(rows)

    def evaluate(self, position) -> Evaluation:
        """Score one position vector (index-ordered, length ``n_variables``)."""
        x = self._as_vector(position)

        objective_values = self._objective_coeffs @ x
        constraint_values = self._constraint_coeffs @ x

        rewards = np.where(
            self._minimize,
            1000.0 / (np.abs(objective_values) + 1.0),
            objective_values * 100.0,
        ) * self._objective_scale
        penalties = np.maximum(0.0, constraint_values - self._bounds) * self._penalty_weights * 100.0

        fitness = float(np.sum(rewards) - np.sum(penalties))
        if not np.isfinite(fitness):
            raise EvaluationError(f"Fitness evaluated to a non-finite value ({fitness})")

        violated = np.where(
            self._equality,
            np.abs(constraint_values - self._bounds) > EQUALITY_TOLERANCE,
            constraint_values > self._bounds,
        )
        violations = [
            self._describe_violation(i, float(constraint_values[i]))
            for i in np.flatnonzero(violated)
        ]

        return Evaluation(
            objective_values={o.id: float(v) for o, v in zip(self.problem.objectives, objective_values, strict=True)},
            constraint_values={c.id: float(v) for c, v in zip(self.problem.constraints, constraint_values, strict=True)},
            fitness=fitness,
            feasible=not violations,
            violations=violations,
        )

    def _as_vector(self, position) -> np.ndarray:
        try:
            x = np.asarray(position, dtype=float)
        except (TypeError, ValueError) as e:
            raise EvaluationError(f"Position contains non-numeric values: {e}") from e

        if x.shape != (self.problem.n_variables,):
            raise EvaluationError(
                f"Position has shape {x.shape}, expected ({self.problem.n_variables},)"
            )
        if not np.all(np.isfinite(x)):
            bad = [self.problem.variable_ids[i] for i in np.flatnonzero(~np.isfinite(x))]
            raise EvaluationError(f"Non-finite value for variable(s) {bad}")
        return x

    def _describe_violation(self, index: int, value: float) -> str:
        constraint = self.problem.constraints[index]
        kind = "Equality" if constraint.kind == ConstraintKind.EQUALITY else "Inequality"
        return f"{kind} constraint {constraint.label} violated (value={value:.6g}, bound={constraint.bound:.6g})"
