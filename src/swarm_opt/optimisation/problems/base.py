"""
Problem definition for swarm optimization.

This module provides the generic "variables / constraints / objectives" model
that every optimization service reduces its domain to (vehicles, shifts, docks
and slots are all just instances of it). A problem is validated once when it
is built and is immutable afterwards.

The design replaces keyed ``{variable_id: value}`` maps with a stable
variable-index table: every position and velocity is a fixed-arity numpy
vector whose i-th entry belongs to ``problem.variables[i]``. Per-variable
bounds, widths, steps and type masks are precomputed here so the swarm
components never look variables up by id inside the iteration loop.

Example:
    ```python
    problem = OptimizationProblem(
        id="dock-plan",
        variables=[
            Variable("x", VariableType.CONTINUOUS, Domain(0.0, 100.0)),
            Variable("doors", VariableType.INTEGER, Domain(1, 12), weight=2.0),
        ],
        constraints=[
            Constraint("capacity", ConstraintKind.INEQUALITY, bound=80.0, penalty_weight=5.0),
        ],
        objectives=[
            Objective("throughput", ObjectiveDirection.MAXIMIZE),
        ],
    )
    ```
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)


class ProblemDefinitionError(ValueError):
    """Malformed problem or run definition, detected before any iteration runs."""


class EvaluationError(RuntimeError):
    """Fitness evaluation met a value it cannot score; aborts the run."""


class VariableType(str, Enum):
    CONTINUOUS = "continuous"
    DISCRETE = "discrete"
    BINARY = "binary"
    INTEGER = "integer"


class ConstraintKind(str, Enum):
    EQUALITY = "equality"
    INEQUALITY = "inequality"


class ObjectiveDirection(str, Enum):
    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"


@dataclass(frozen=True)
class Domain:
    """Numeric bounds of a variable. ``step`` is only meaningful for discrete variables."""

    min: float
    max: float
    step: float | None = None

    @property
    def width(self) -> float:
        return self.max - self.min


@dataclass(frozen=True)
class Variable:
    """
    One decision variable.

    Attributes:
        id: Unique identifier within the problem.
        type: Continuous, discrete, binary or integer.
        domain: Bounds (and step for discrete variables).
        weight: Coefficient of this variable in every linear objective and
            constraint that includes it.
        name: Optional human-readable name, defaults to ``id``.
    """

    id: str
    type: VariableType
    domain: Domain
    weight: float = 1.0
    name: str | None = None

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class Constraint:
    """
    Equality or inequality bound on a weighted linear sum of variables.

    ``expression`` is kept as a description only. The measured value is always
    the weighted sum of the variables in scope; ``variable_ids`` narrows that
    scope, and ``None`` means every variable of the problem.
    """

    id: str
    kind: ConstraintKind
    bound: float
    penalty_weight: float = 1.0
    name: str | None = None
    expression: str | None = None
    variable_ids: tuple[str, ...] | None = None

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class Objective:
    """Weighted, prioritised objective measured with the same linear sum as constraints."""

    id: str
    direction: ObjectiveDirection
    weight: float = 1.0
    priority: float = 1.0
    name: str | None = None
    expression: str | None = None
    variable_ids: tuple[str, ...] | None = None

    @property
    def label(self) -> str:
        return self.name or self.id


class OptimizationProblem:
    """
    Validated problem definition plus its variable-index table.

    Construction performs every definitional check so that a malformed problem
    is rejected before a swarm is ever built:

    - duplicate variable / constraint / objective ids
    - ``min > max`` or non-finite bounds
    - discrete variables without a positive ``step``
    - binary variables whose domain is not ``[0, 1]``
    - integer variables whose domain holds no whole number
    - negative constraint penalty weights
    - objective or constraint ``variable_ids`` naming an unknown variable

    Attributes:
        variable_ids (tuple[str, ...]): Variable ids in index order.
        lower, upper, widths (np.ndarray): Per-variable bounds and domain widths.
        steps (np.ndarray): Discrete step per variable (``nan`` for other types).
        weights (np.ndarray): Per-variable linear coefficients.
        continuous_mask, discrete_mask, binary_mask, integer_mask (np.ndarray):
            Boolean type masks in index order.
    """

    def __init__(
        self,
        id: str,
        variables: list[Variable],
        constraints: list[Constraint] | None = None,
        objectives: list[Objective] | None = None,
        name: str | None = None,
        description: str = "",
    ):
        self.id = id
        self.name = name or id
        self.description = description
        self.variables = tuple(variables)
        self.constraints = tuple(constraints or ())
        self.objectives = tuple(objectives or ())

        self._validate()
        self._build_index()

        logger.debug(
            "Problem '%s' ready: %d variable(s), %d constraint(s), %d objective(s)",
            self.id, self.n_variables, len(self.constraints), len(self.objectives),
        )

    @property
    def n_variables(self) -> int:
        return len(self.variables)

    def _validate(self) -> None:
        self._check_unique("variable", [v.id for v in self.variables])
        self._check_unique("constraint", [c.id for c in self.constraints])
        self._check_unique("objective", [o.id for o in self.objectives])

        for variable in self.variables:
            self._validate_variable(variable)

        known = {v.id for v in self.variables}
        for constraint in self.constraints:
            if constraint.penalty_weight < 0:
                raise ProblemDefinitionError(
                    f"Constraint '{constraint.id}' has negative penalty weight {constraint.penalty_weight}"
                )
            if not math.isfinite(constraint.bound):
                raise ProblemDefinitionError(f"Constraint '{constraint.id}' bound must be finite")
            self._check_references("Constraint", constraint.id, constraint.variable_ids, known)

        for objective in self.objectives:
            if not (math.isfinite(objective.weight) and math.isfinite(objective.priority)):
                raise ProblemDefinitionError(f"Objective '{objective.id}' weight and priority must be finite")
            self._check_references("Objective", objective.id, objective.variable_ids, known)

    @staticmethod
    def _check_unique(kind: str, ids: list[str]) -> None:
        seen = set()
        for item_id in ids:
            if item_id in seen:
                raise ProblemDefinitionError(f"Duplicate {kind} id '{item_id}'")
            seen.add(item_id)

    @staticmethod
    def _check_references(owner: str, owner_id: str, variable_ids, known: set[str]) -> None:
        if variable_ids is None:
            return
        for variable_id in variable_ids:
            if variable_id not in known:
                raise ProblemDefinitionError(
                    f"{owner} '{owner_id}' references unknown variable '{variable_id}'"
                )

    @staticmethod
    def _validate_variable(variable: Variable) -> None:
        domain = variable.domain
        if not (math.isfinite(domain.min) and math.isfinite(domain.max)):
            raise ProblemDefinitionError(f"Variable '{variable.id}' domain bounds must be finite")
        if domain.min > domain.max:
            raise ProblemDefinitionError(
                f"Variable '{variable.id}' has min > max ({domain.min} > {domain.max})"
            )
        if not math.isfinite(variable.weight):
            raise ProblemDefinitionError(f"Variable '{variable.id}' weight must be finite")

        if variable.type == VariableType.DISCRETE:
            if domain.step is None or not domain.step > 0:
                raise ProblemDefinitionError(
                    f"Discrete variable '{variable.id}' requires a positive step"
                )
        elif variable.type == VariableType.BINARY:
            if domain.min != 0 or domain.max != 1:
                raise ProblemDefinitionError(
                    f"Binary variable '{variable.id}' must have domain [0, 1]"
                )
        elif variable.type == VariableType.INTEGER:
            if math.ceil(domain.min) > math.floor(domain.max):
                raise ProblemDefinitionError(
                    f"Integer variable '{variable.id}' domain contains no whole number"
                )

    def _build_index(self) -> None:
        self.variable_ids = tuple(v.id for v in self.variables)
        self._index = {variable_id: i for i, variable_id in enumerate(self.variable_ids)}

        types = [v.type for v in self.variables]
        self.continuous_mask = np.array([t == VariableType.CONTINUOUS for t in types], dtype=bool)
        self.discrete_mask = np.array([t == VariableType.DISCRETE for t in types], dtype=bool)
        self.binary_mask = np.array([t == VariableType.BINARY for t in types], dtype=bool)
        self.integer_mask = np.array([t == VariableType.INTEGER for t in types], dtype=bool)

        self.lower = np.array([v.domain.min for v in self.variables], dtype=float)
        self.upper = np.array([v.domain.max for v in self.variables], dtype=float)
        self.widths = self.upper - self.lower
        self.steps = np.array(
            [v.domain.step if v.type == VariableType.DISCRETE else np.nan for v in self.variables],
            dtype=float,
        )
        self.weights = np.array([v.weight for v in self.variables], dtype=float)

        # Whole-number bounds for integer snapping
        self.integer_lower = np.ceil(self.lower)
        self.integer_upper = np.floor(self.upper)

        # Highest step index that stays inside the domain for discrete variables
        with np.errstate(invalid="ignore"):
            self.max_step_index = np.where(
                self.discrete_mask,
                np.floor(self.widths / np.where(self.discrete_mask, self.steps, 1.0) + 1e-9),
                0.0,
            )

    def index_of(self, variable_id: str) -> int:
        """Position of a variable in every position/velocity vector."""
        try:
            return self._index[variable_id]
        except KeyError:
            raise ProblemDefinitionError(f"Unknown variable '{variable_id}'") from None

    def scope_mask(self, variable_ids: tuple[str, ...] | None) -> np.ndarray:
        """Boolean mask of variables included in a linear objective/constraint."""
        if variable_ids is None:
            return np.ones(self.n_variables, dtype=bool)
        mask = np.zeros(self.n_variables, dtype=bool)
        for variable_id in variable_ids:
            mask[self.index_of(variable_id)] = True
        return mask

    def to_mapping(self, vector: np.ndarray) -> dict[str, float]:
        """Convert an index-ordered vector back to ``{variable_id: value}``."""
        return {variable_id: float(value) for variable_id, value in zip(self.variable_ids, vector, strict=True)}

    def get_problem_info(self) -> dict:
        """Summary used for logging and result metadata."""
        return {
            "id": self.id,
            "name": self.name,
            "n_variables": self.n_variables,
            "n_constraints": len(self.constraints),
            "n_objectives": len(self.objectives),
            "variable_types": {t.value: int(sum(v.type == t for v in self.variables)) for t in VariableType},
        }

    def __repr__(self) -> str:
        return (
            f"OptimizationProblem(id={self.id!r}, variables={self.n_variables}, "
            f"constraints={len(self.constraints)}, objectives={len(self.objectives)})"
        )
