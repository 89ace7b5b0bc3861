"""
Swarm-wide metrics and the convergence/stagnation policy.

All metrics are recomputed from the full particle set once per iteration:

- **diversity**: mean pairwise Euclidean distance between particle positions
- **convergence**: ``1 - var(fitness) / (mean(fitness)**2 + 1)``
- **stability**: same value as convergence, reported under its own name

Convergence and stability share :func:`fitness_concentration`.
"""

import logging

import numpy as np

from .particle import Swarm

logger = logging.getLogger(__name__)

STAGNATION_TOLERANCE = 0.01
STAGNATION_LIMIT = 10


def mean_pairwise_distance(positions: np.ndarray) -> float:
    """Mean Euclidean distance over all unordered particle pairs (0 for fewer than two)."""
    n = len(positions)
    if n < 2:
        return 0.0
    diffs = positions[:, None, :] - positions[None, :, :]
    distances = np.sqrt(np.sum(diffs**2, axis=-1))
    upper = np.triu_indices(n, k=1)
    return float(np.mean(distances[upper]))


def fitness_concentration(fitnesses: np.ndarray) -> float:
    """``1 - variance / (mean**2 + 1)``; 1.0 when every particle has the same fitness."""
    if len(fitnesses) == 0:
        return 1.0
    mean = float(np.mean(fitnesses))
    variance = float(np.var(fitnesses))
    return 1.0 - variance / (mean**2 + 1.0)


def update_swarm_metrics(swarm: Swarm) -> None:
    """Recompute average fitness, diversity, convergence and stability in place."""
    fitnesses = swarm.fitnesses()
    swarm.average_fitness = float(np.mean(fitnesses)) if len(fitnesses) else 0.0
    swarm.diversity = mean_pairwise_distance(swarm.positions())
    swarm.convergence = fitness_concentration(fitnesses)
    swarm.stability = swarm.convergence


def update_exploration_rates(swarm: Swarm) -> None:
    """
    Per-particle telemetry relative to the (already refreshed) global best.

    exploration = d(pos, gbest) / (d(pos, pbest) + 1)
    exploitation = d(pos, pbest) / (d(pos, gbest) + 1)
    """
    for particle in swarm.particles:
        to_global = float(np.linalg.norm(particle.position - swarm.global_best_position))
        to_personal = float(np.linalg.norm(particle.position - particle.best_position))
        particle.exploration_rate = to_global / (to_personal + 1.0)
        particle.exploitation_rate = to_personal / (to_global + 1.0)


class ConvergenceMonitor:
    """
    Stop/restart decisions for the driver.

    The stagnation counter increments on each iteration where the best current
    fitness sits within ``tolerance`` of the average, and resets otherwise.
    A restart is requested once the counter exceeds ``limit``.
    """

    def __init__(
        self,
        convergence_threshold: float,
        tolerance: float = STAGNATION_TOLERANCE,
        limit: int = STAGNATION_LIMIT,
    ):
        self.convergence_threshold = convergence_threshold
        self.tolerance = tolerance
        self.limit = limit
        self.stagnation_counter = 0

    def has_converged(self, swarm: Swarm) -> bool:
        return swarm.convergence > self.convergence_threshold

    def observe_stagnation(self, swarm: Swarm) -> bool:
        """Update the counter from this iteration's fitnesses; True means restart now."""
        fitnesses = swarm.fitnesses()
        best = float(np.max(fitnesses)) if len(fitnesses) else 0.0
        if best - swarm.average_fitness < self.tolerance:
            self.stagnation_counter += 1
        else:
            self.stagnation_counter = 0
        return self.stagnation_counter > self.limit

    def reset(self) -> None:
        self.stagnation_counter = 0
