"""
Single-step hill climbing layered on the swarm search.

With probability ``p`` per particle per iteration, one randomly chosen variable
is nudged by ``U(-0.05, 0.05) * domain_width``, repaired to its domain and
type, and re-evaluated. The candidate replaces the particle's current state only
if its fitness is strictly higher. Velocity is never touched.
"""

import logging

import numpy as np

from ..problems.base import OptimizationProblem
from ..problems.evaluator import FitnessEvaluator
from .particle import Particle
from .updater import repair_position

logger = logging.getLogger(__name__)

PERTURBATION_FRACTION = 0.05


class LocalSearchHybridizer:
    """
    Args:
        problem: Problem definition.
        evaluator: Evaluator used to score perturbed candidates.
        probability: Per-particle trigger probability.
        position_limit: Optional extra ``±limit`` box (same as the updater).
    """

    def __init__(
        self,
        problem: OptimizationProblem,
        evaluator: FitnessEvaluator,
        probability: float = 0.1,
        position_limit: float | None = None,
    ):
        self.problem = problem
        self.evaluator = evaluator
        self.probability = probability
        self.position_limit = position_limit

    def refine(self, particle: Particle, rng: np.random.Generator) -> bool:
        """Try one perturbation; return True if it was accepted."""
        # Drawn for every particle, refined or not
        triggered = rng.random() < self.probability
        if not triggered or self.problem.n_variables == 0:
            return False

        index = int(rng.integers(self.problem.n_variables))
        candidate = particle.position.copy()
        candidate[index] += rng.uniform(-PERTURBATION_FRACTION, PERTURBATION_FRACTION) * self.problem.widths[index]
        repair_position(candidate, None, self.problem, self.position_limit)

        evaluation = self.evaluator.evaluate(candidate)
        if evaluation.fitness > particle.fitness:
            particle.apply_evaluation(candidate, evaluation)
            logger.debug(
                "Local search improved %s on '%s' (fitness %.4f)",
                particle.id, self.problem.variable_ids[index], evaluation.fitness,
            )
            return True
        return False
