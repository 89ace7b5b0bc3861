"""
Particle and swarm state.

A :class:`Particle` is one candidate solution; a :class:`Swarm` owns every
particle of a run plus the swarm-wide aggregates. Both are plain mutable
containers with a single writer (the runner that owns them). Positions and
velocities are index-ordered numpy vectors (see
:class:`~swarm_opt.optimisation.problems.base.OptimizationProblem`).

:class:`ParticleFactory` draws type-correct random particles and is used both
to build the initial swarm and to restart it in place after stagnation.
"""

import copy
import logging
from dataclasses import dataclass, field, fields

import numpy as np

from ..problems.base import OptimizationProblem
from ..problems.evaluator import Evaluation, FitnessEvaluator

logger = logging.getLogger(__name__)


@dataclass
class Particle:
    """
    One candidate solution and its best-known state.

    Attributes:
        id: Stable slot identifier (``particle_<index>``), kept across restarts.
        position, velocity: Index-ordered vectors.
        fitness: Fitness of the current position.
        best_position, best_fitness: Personal best; ``best_fitness`` never decreases
            during the particle's lifetime.
        objective_values, constraint_values: Measurements of the current position.
        feasible, violations: Feasibility of the current position;
            ``feasible == (len(violations) == 0)``.
        iterations_since_improvement: Iterations since the personal best last improved.
        improvement_count: Number of personal-best improvements in this lifetime.
        exploration_rate, exploitation_rate: Distance ratios between the current
            position and the global/personal bests.
        iteration: Last iteration that touched this particle.
    """

    id: str
    position: np.ndarray
    velocity: np.ndarray
    fitness: float
    best_position: np.ndarray
    best_fitness: float
    objective_values: dict[str, float] = field(default_factory=dict)
    constraint_values: dict[str, float] = field(default_factory=dict)
    feasible: bool = True
    violations: list[str] = field(default_factory=list)
    iterations_since_improvement: int = 0
    improvement_count: int = 0
    exploration_rate: float = 0.0
    exploitation_rate: float = 0.0
    iteration: int = 0

    def apply_evaluation(self, position: np.ndarray, evaluation: Evaluation) -> None:
        """Move to ``position`` and cache its evaluation. Velocity is left untouched."""
        self.position = position
        self.fitness = evaluation.fitness
        self.objective_values = evaluation.objective_values
        self.constraint_values = evaluation.constraint_values
        self.feasible = evaluation.feasible
        self.violations = evaluation.violations

    def update_personal_best(self) -> bool:
        """Adopt the current position as personal best if it is strictly better."""
        if self.fitness > self.best_fitness:
            self.best_position = self.position.copy()
            self.best_fitness = self.fitness
            self.iterations_since_improvement = 0
            self.improvement_count += 1
            return True
        return False

    def snapshot(self) -> "Particle":
        return copy.deepcopy(self)

    def to_dict(self, variable_ids: tuple[str, ...]) -> dict:
        """JSON-friendly view with positions keyed by variable id."""
        return {
            "id": self.id,
            "position": dict(zip(variable_ids, map(float, self.position), strict=True)),
            "velocity": dict(zip(variable_ids, map(float, self.velocity), strict=True)),
            "fitness": float(self.fitness),
            "best_position": dict(zip(variable_ids, map(float, self.best_position), strict=True)),
            "best_fitness": float(self.best_fitness),
            "objective_values": dict(self.objective_values),
            "constraint_values": dict(self.constraint_values),
            "feasible": self.feasible,
            "violations": list(self.violations),
            "iterations_since_improvement": self.iterations_since_improvement,
            "improvement_count": self.improvement_count,
            "exploration_rate": self.exploration_rate,
            "exploitation_rate": self.exploitation_rate,
            "iteration": self.iteration,
        }


@dataclass
class Swarm:
    """
    Every particle of a run plus aggregates recomputed once per iteration.

    ``global_best_fitness`` always equals ``max(p.best_fitness)`` after
    :meth:`refresh_global_best`. Because personal bests never decrease, the
    global best never decreases either, except across a restart.
    """

    particles: list[Particle]
    global_best_position: np.ndarray = field(default_factory=lambda: np.zeros(0))
    global_best_fitness: float = float("-inf")
    global_best_index: int = -1
    average_fitness: float = 0.0
    diversity: float = 0.0
    convergence: float = 0.0
    stability: float = 0.0

    def __len__(self) -> int:
        return len(self.particles)

    def positions(self) -> np.ndarray:
        return np.array([p.position for p in self.particles], dtype=float)

    def fitnesses(self) -> np.ndarray:
        return np.array([p.fitness for p in self.particles], dtype=float)

    def refresh_global_best(self) -> None:
        """Recompute the global best from the particles' personal bests."""
        best_fitnesses = np.array([p.best_fitness for p in self.particles], dtype=float)
        index = int(np.argmax(best_fitnesses))
        self.global_best_index = index
        self.global_best_fitness = float(best_fitnesses[index])
        self.global_best_position = self.particles[index].best_position.copy()

    def feasible_count(self) -> int:
        return sum(1 for p in self.particles if p.feasible)

    def snapshot(self) -> "Swarm":
        return copy.deepcopy(self)

    def to_dict(self, variable_ids: tuple[str, ...]) -> dict:
        return {
            "particles": [p.to_dict(variable_ids) for p in self.particles],
            "global_best_position": dict(zip(variable_ids, map(float, self.global_best_position), strict=True)),
            "global_best_fitness": float(self.global_best_fitness),
            "average_fitness": self.average_fitness,
            "diversity": self.diversity,
            "convergence": self.convergence,
            "stability": self.stability,
        }


class ParticleFactory:
    """
    Draw random, type-correct particles for a problem.

    Initial positions:
        - continuous: ``U(min, max)``
        - discrete: ``min + k * step`` with ``k`` uniform in ``[0, (max - min) / step]``
        - binary: 0 or 1 with equal probability
        - integer: uniform whole number in ``[min, max]``

    Initial velocities:
        - continuous: ``(U - 0.5) * width * 0.1``
        - discrete: ``(U - 0.5) * step``
        - binary / integer: ``(U - 0.5) * 2``
    """

    def __init__(self, problem: OptimizationProblem, evaluator: FitnessEvaluator):
        self.problem = problem
        self.evaluator = evaluator

    def random_position(self, rng: np.random.Generator) -> np.ndarray:
        problem = self.problem
        position = rng.uniform(problem.lower, problem.upper) if problem.n_variables else np.zeros(0)

        if problem.discrete_mask.any():
            mask = problem.discrete_mask
            index = rng.integers(0, problem.max_step_index[mask].astype(np.int64) + 1)
            position[mask] = problem.lower[mask] + index * problem.steps[mask]

        if problem.binary_mask.any():
            position[problem.binary_mask] = (rng.random(int(problem.binary_mask.sum())) < 0.5).astype(float)

        if problem.integer_mask.any():
            mask = problem.integer_mask
            position[mask] = rng.integers(
                problem.integer_lower[mask].astype(np.int64),
                problem.integer_upper[mask].astype(np.int64) + 1,
            )

        return position

    def random_velocity(self, rng: np.random.Generator) -> np.ndarray:
        problem = self.problem
        scale = np.where(problem.continuous_mask, problem.widths * 0.1, 2.0)
        scale = np.where(problem.discrete_mask, np.nan_to_num(problem.steps), scale)
        return (rng.random(problem.n_variables) - 0.5) * scale

    def create(self, index: int, rng: np.random.Generator) -> Particle:
        """Build a freshly initialised particle for swarm slot ``index``."""
        position = self.random_position(rng)
        velocity = self.random_velocity(rng)
        evaluation = self.evaluator.evaluate(position)

        return Particle(
            id=f"particle_{index}",
            position=position,
            velocity=velocity,
            fitness=evaluation.fitness,
            best_position=position.copy(),
            best_fitness=evaluation.fitness,
            objective_values=evaluation.objective_values,
            constraint_values=evaluation.constraint_values,
            feasible=evaluation.feasible,
            violations=evaluation.violations,
        )

    def create_swarm(self, size: int, rng: np.random.Generator) -> Swarm:
        swarm = Swarm(particles=[self.create(i, rng) for i in range(size)])
        swarm.refresh_global_best()
        return swarm

    def reinitialize(self, swarm: Swarm, rng: np.random.Generator) -> None:
        """Restart every particle in place; previous personal and global bests are discarded."""
        for i, particle in enumerate(swarm.particles):
            fresh = self.create(i, rng)
            for state in fields(Particle):
                if state.name not in ("id", "iteration"):
                    setattr(particle, state.name, getattr(fresh, state.name))
        swarm.refresh_global_best()
