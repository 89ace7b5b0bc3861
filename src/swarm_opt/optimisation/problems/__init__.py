"""Problem definition and fitness evaluation."""

from .base import (
    Constraint,
    ConstraintKind,
    Domain,
    EvaluationError,
    Objective,
    ObjectiveDirection,
    OptimizationProblem,
    ProblemDefinitionError,
    Variable,
    VariableType,
)
from .evaluator import Evaluation, FitnessEvaluator

__all__ = [
    "Constraint",
    "ConstraintKind",
    "Domain",
    "Evaluation",
    "EvaluationError",
    "FitnessEvaluator",
    "Objective",
    "ObjectiveDirection",
    "OptimizationProblem",
    "ProblemDefinitionError",
    "Variable",
    "VariableType",
]
