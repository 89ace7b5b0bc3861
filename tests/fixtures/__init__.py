"""Test fixtures for swarm optimization tests."""

import numpy as np
import pytest

from swarm_opt.optimisation.config import RunParameters
from swarm_opt.optimisation.problems import (
    Constraint,
    ConstraintKind,
    Domain,
    FitnessEvaluator,
    Objective,
    ObjectiveDirection,
    OptimizationProblem,
    Variable,
    VariableType,
)


def assert_type_correct(problem, position):
    """Shared assertion: inside the domain and snapped to the variable type."""
    assert np.all(position >= problem.lower - 1e-12)
    assert np.all(position <= problem.upper + 1e-12)

    binary = position[problem.binary_mask]
    assert set(np.unique(binary)).issubset({0.0, 1.0})

    integer = position[problem.integer_mask]
    np.testing.assert_allclose(integer, np.round(integer))

    mask = problem.discrete_mask
    steps = (position[mask] - problem.lower[mask]) / problem.steps[mask]
    np.testing.assert_allclose(steps, np.round(steps), atol=1e-9)


@pytest.fixture
def maximize_problem():
    """One continuous variable x in [0, 100] with a single maximize objective tied to x."""
    return OptimizationProblem(
        id="maximize-x",
        variables=[Variable("x", VariableType.CONTINUOUS, Domain(0.0, 100.0))],
        objectives=[Objective("value", ObjectiveDirection.MAXIMIZE, weight=1.0)],
    )


@pytest.fixture
def make_equality_problem():
    """Factory for ``x == 50`` with penalty weight 10, for a chosen variable type."""

    def _make(variable_type=VariableType.CONTINUOUS):
        return OptimizationProblem(
            id=f"equality-{variable_type.value}",
            variables=[Variable("x", variable_type, Domain(0.0, 100.0))],
            constraints=[Constraint("target", ConstraintKind.EQUALITY, bound=50.0, penalty_weight=10.0)],
            objectives=[Objective("value", ObjectiveDirection.MAXIMIZE)],
        )

    return _make


@pytest.fixture
def mixed_problem():
    """
    One variable of every type plus an inequality constraint and two objectives.

    VARIABLES:
    - speed: continuous [0, 10]
    - slot: discrete [1, 4] step 0.5
    - open: binary
    - doors: integer [1.5, 7.5] (whole numbers 2..7)
    """
    return OptimizationProblem(
        id="mixed",
        name="Mixed variable problem",
        variables=[
            Variable("speed", VariableType.CONTINUOUS, Domain(0.0, 10.0)),
            Variable("slot", VariableType.DISCRETE, Domain(1.0, 4.0, step=0.5)),
            Variable("open", VariableType.BINARY, Domain(0, 1)),
            Variable("doors", VariableType.INTEGER, Domain(1.5, 7.5), weight=2.0),
        ],
        constraints=[
            Constraint("budget", ConstraintKind.INEQUALITY, bound=20.0, penalty_weight=2.0),
        ],
        objectives=[
            Objective("throughput", ObjectiveDirection.MAXIMIZE, weight=1.0, priority=2.0),
            Objective("cost", ObjectiveDirection.MINIMIZE, variable_ids=("speed",)),
        ],
    )


@pytest.fixture
def flat_problem():
    """Every particle has fitness 0: the only variable has weight 0."""
    return OptimizationProblem(
        id="flat",
        variables=[Variable("x", VariableType.CONTINUOUS, Domain(0.0, 10.0), weight=0.0)],
        objectives=[Objective("value", ObjectiveDirection.MAXIMIZE)],
    )


@pytest.fixture
def mixed_evaluator(mixed_problem):
    return FitnessEvaluator(mixed_problem)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def fast_parameters():
    """Small swarm, short run, convergence stopping disabled."""
    return RunParameters(
        swarm_size=10,
        max_iterations=20,
        max_time_seconds=60.0,
        convergence_threshold=1.5,
    )


@pytest.fixture
def sample_config():
    """Complete configuration dictionary as it would be loaded from YAML."""
    return {
        "problem": {
            "id": "dock-plan",
            "name": "Dock plan",
            "variables": [
                {"id": "x", "type": "continuous", "domain": {"min": 0, "max": 100}},
                {"id": "doors", "type": "integer", "domain": {"min": 1, "max": 12}, "weight": 2.0},
                {"id": "open", "type": "binary"},
            ],
            "constraints": [
                {"id": "capacity", "kind": "inequality", "bound": 80, "penalty_weight": 5,
                 "variable_ids": ["x", "doors"]},
            ],
            "objectives": [
                {"id": "throughput", "direction": "maximize", "weight": 1.0, "priority": 1.0},
            ],
        },
        "optimization": {
            "algorithm": {
                "swarm_size": 12,
                "inertia_weight": 0.6,
                "cognitive_weight": 1.4,
                "social_weight": 1.6,
                "adaptive_inertia": True,
            },
            "termination": {
                "max_iterations": 15,
                "max_time_seconds": 30,
                "convergence_threshold": 1.5,
            },
            "options": {
                "include_adaptive": True,
                "include_local_search": True,
            },
            "monitoring": {"progress_frequency": 5},
            "multi_run": {"enabled": False, "num_runs": 3},
            "seed": 7,
        },
    }
