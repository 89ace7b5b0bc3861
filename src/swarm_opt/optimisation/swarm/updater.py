"""
Per-iteration particle physics.

For every variable ``v`` of a particle::

    r1, r2 ~ U(0, 1)
    velocity[v] = w * velocity[v]
                  + c1 * r1 * (best_position[v] - position[v])
                  + c2 * r2 * (global_best[v] - position[v])
    velocity[v] = clip(velocity[v], -limit[v], limit[v])
    position[v] = position[v] + velocity[v]

followed by :func:`repair_position`: clamp to the domain (zeroing the velocity
of any variable that hit a wall) and snap to the variable's type.
"""

import logging

import numpy as np

from ..config.config_manager import RunParameters
from ..problems.base import OptimizationProblem
from .particle import Particle

logger = logging.getLogger(__name__)

# Fraction of the domain width used as velocity limit when none is configured
DEFAULT_VELOCITY_FRACTION = 0.2

# Lowest default limit for binary and integer variables; discrete ones use their step
SNAPPED_MIN_VELOCITY = 1.0


def position_bounds(problem: OptimizationProblem, position_limit: float | None = None):
    """Effective lower/upper bounds: the domain, optionally narrowed to ``±position_limit``."""
    lower, upper = problem.lower, problem.upper
    if position_limit is None:
        return lower, upper

    narrowed_lower = np.maximum(lower, -position_limit)
    narrowed_upper = np.minimum(upper, position_limit)
    # A limit that misses the domain entirely leaves that variable's domain as is
    disjoint = narrowed_lower > narrowed_upper
    return np.where(disjoint, lower, narrowed_lower), np.where(disjoint, upper, narrowed_upper)


def snap_to_type(position: np.ndarray, problem: OptimizationProblem) -> np.ndarray:
    """Round discrete/integer/binary entries to their type-correct values (in place)."""
    if problem.discrete_mask.any():
        mask = problem.discrete_mask
        index = np.rint((position[mask] - problem.lower[mask]) / problem.steps[mask])
        index = np.clip(index, 0, problem.max_step_index[mask])
        position[mask] = problem.lower[mask] + index * problem.steps[mask]

    if problem.integer_mask.any():
        mask = problem.integer_mask
        position[mask] = np.clip(np.rint(position[mask]), problem.integer_lower[mask], problem.integer_upper[mask])

    if problem.binary_mask.any():
        mask = problem.binary_mask
        position[mask] = np.where(position[mask] > 0.5, 1.0, 0.0)

    return position


def repair_position(
    position: np.ndarray,
    velocity: np.ndarray | None,
    problem: OptimizationProblem,
    position_limit: float | None = None,
) -> np.ndarray:
    """
    Bring a raw position back inside its domain and type.

    Variables clamped at a bound get their velocity zeroed (when a velocity is
    given) so they do not keep pushing against the wall. Modifies ``position``
    and ``velocity`` in place and returns the position.
    """
    lower, upper = position_bounds(problem, position_limit)
    hit = (position < lower) | (position > upper)
    np.clip(position, lower, upper, out=position)
    if velocity is not None:
        velocity[hit] = 0.0
    return snap_to_type(position, problem)


class VelocityPositionUpdater:
    """
    Applies the velocity/position update to one particle at a time.

    Weights are read from ``params`` on every call, so changes made by the
    adaptive controller between iterations take effect on the next update.

    Args:
        problem: Problem whose domains bound the positions.
        params: Run parameters (read for weights and limits on each update).
    """

    def __init__(self, problem: OptimizationProblem, params: RunParameters):
        self.problem = problem
        self.params = params

    def velocity_limits(self) -> np.ndarray:
        if self.params.velocity_limit is not None:
            return np.full(self.problem.n_variables, float(self.params.velocity_limit))
        # A limit below the snapping distance would round every move back
        problem = self.problem
        floor = np.where(
            problem.binary_mask | problem.integer_mask,
            SNAPPED_MIN_VELOCITY,
            np.where(problem.discrete_mask, problem.steps, 0.0),
        )
        return np.maximum(problem.widths * DEFAULT_VELOCITY_FRACTION, floor)

    def move(self, particle: Particle, global_best_position: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        """
        Update ``particle.velocity`` and return the repaired candidate position.

        The particle's position is not modified here; the caller applies the
        returned position together with its evaluation. ``global_best_position``
        must be the swarm best frozen at the start of the iteration.
        """
        params = self.params
        n_var = self.problem.n_variables
        r1 = rng.random(n_var)
        r2 = rng.random(n_var)

        cognitive = params.cognitive_weight * r1 * (particle.best_position - particle.position)
        social = params.social_weight * r2 * (global_best_position - particle.position)
        velocity = params.inertia_weight * particle.velocity + cognitive + social

        limits = self.velocity_limits()
        velocity = np.clip(velocity, -limits, limits)

        position = particle.position + velocity
        repair_position(position, velocity, self.problem, params.position_limit)

        particle.velocity = velocity
        return position
