"""
Adaptive inertia / cognitive / social weights.

Two optional policies adjust the run's weights between iterations:

1. **Iteration schedule** (``adaptive_inertia`` / ``adaptive_weights`` flags)::

       inertia(t)   = inertia0   * (1 - t / T)
       cognitive(t) = cognitive0 * (1 - t / T)
       social(t)    = social0    * (t / T)

2. **Reactive policy** (``include_adaptive`` option), applied after the
   schedule on whatever values it produced:

   - diversity < 0.1: inertia * 0.9 (floor 0.1)
   - diversity > 0.5: inertia * 1.1 (ceiling 0.9)
   - convergence > 0.8: cognitive * 0.9 (floor 0.1), social * 1.1 (ceiling 4.0)
   - convergence < 0.3: cognitive * 1.1 (ceiling 4.0), social * 0.9 (floor 0.1)

The controller mutates the run's own copy of :class:`RunParameters`; the
updater reads the new weights on the next iteration.
"""

import logging

from ..config.config_manager import RunParameters
from .particle import Swarm

logger = logging.getLogger(__name__)

LOW_DIVERSITY = 0.1
HIGH_DIVERSITY = 0.5
HIGH_CONVERGENCE = 0.8
LOW_CONVERGENCE = 0.3

INERTIA_FLOOR, INERTIA_CEILING = 0.1, 0.9
WEIGHT_FLOOR, WEIGHT_CEILING = 0.1, 4.0


class AdaptiveParameterController:
    """
    Args:
        params: The run's mutable parameter copy. Initial weights are captured here.
        reactive: Enable the diversity/convergence-reactive policy.
    """

    def __init__(self, params: RunParameters, reactive: bool = False):
        self.params = params
        self.reactive = reactive
        self.inertia0 = params.inertia_weight
        self.cognitive0 = params.cognitive_weight
        self.social0 = params.social_weight

    @property
    def enabled(self) -> bool:
        return self.reactive or self.params.adaptive_inertia or self.params.adaptive_weights

    def start(self) -> None:
        """Apply the schedule for iteration 0."""
        self.apply_schedule(0)

    def apply_schedule(self, t: int) -> None:
        params = self.params
        progress = min(t / params.max_iterations, 1.0)
        if params.adaptive_inertia:
            params.inertia_weight = self.inertia0 * (1.0 - progress)
        if params.adaptive_weights:
            params.cognitive_weight = self.cognitive0 * (1.0 - progress)
            params.social_weight = self.social0 * progress

    def apply_reactive(self, swarm: Swarm) -> None:
        params = self.params

        if swarm.diversity < LOW_DIVERSITY:
            params.inertia_weight = max(INERTIA_FLOOR, params.inertia_weight * 0.9)
        elif swarm.diversity > HIGH_DIVERSITY:
            params.inertia_weight = min(INERTIA_CEILING, params.inertia_weight * 1.1)

        if swarm.convergence > HIGH_CONVERGENCE:
            params.cognitive_weight = max(WEIGHT_FLOOR, params.cognitive_weight * 0.9)
            params.social_weight = min(WEIGHT_CEILING, params.social_weight * 1.1)
        elif swarm.convergence < LOW_CONVERGENCE:
            params.cognitive_weight = min(WEIGHT_CEILING, params.cognitive_weight * 1.1)
            params.social_weight = max(WEIGHT_FLOOR, params.social_weight * 0.9)

    def update(self, swarm: Swarm, next_iteration: int) -> None:
        """Set the weights used by ``next_iteration``."""
        self.apply_schedule(next_iteration)
        if self.reactive:
            self.apply_reactive(swarm)

        logger.debug(
            "Weights for iteration %d: w=%.4f c1=%.4f c2=%.4f",
            next_iteration,
            self.params.inertia_weight,
            self.params.cognitive_weight,
            self.params.social_weight,
        )

    def current_weights(self) -> dict[str, float]:
        return {
            "inertia": self.params.inertia_weight,
            "cognitive": self.params.cognitive_weight,
            "social": self.params.social_weight,
        }
