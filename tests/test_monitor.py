"""
Tests for swarm metrics and the convergence/stagnation monitor.
"""

import numpy as np
import pytest

from swarm_opt.optimisation.swarm import ConvergenceMonitor, Particle, Swarm
from swarm_opt.optimisation.swarm.monitor import (
    fitness_concentration,
    mean_pairwise_distance,
    update_exploration_rates,
    update_swarm_metrics,
)


def make_swarm(positions, fitnesses):
    particles = [
        Particle(
            id=f"particle_{i}",
            position=np.asarray(pos, dtype=float),
            velocity=np.zeros(len(pos)),
            fitness=fit,
            best_position=np.asarray(pos, dtype=float),
            best_fitness=fit,
        )
        for i, (pos, fit) in enumerate(zip(positions, fitnesses))
    ]
    swarm = Swarm(particles=particles)
    swarm.refresh_global_best()
    update_swarm_metrics(swarm)
    return swarm


class TestSwarmMetrics:
    def test_mean_pairwise_distance(self):
        positions = np.array([[0.0, 0.0], [3.0, 4.0], [0.0, 0.0]])
        assert mean_pairwise_distance(positions) == pytest.approx(10.0 / 3.0)

    def test_single_particle_has_zero_diversity(self):
        assert mean_pairwise_distance(np.array([[1.0, 2.0]])) == 0.0

    def test_fitness_concentration(self):
        assert fitness_concentration(np.array([2.0, 2.0, 2.0])) == pytest.approx(1.0)
        # mean 1, variance 1
        assert fitness_concentration(np.array([0.0, 2.0])) == pytest.approx(0.5)
        assert fitness_concentration(np.array([])) == 1.0

    def test_update_swarm_metrics(self):
        swarm = make_swarm([[0.0], [2.0]], [0.0, 2.0])

        assert swarm.average_fitness == pytest.approx(1.0)
        assert swarm.diversity == pytest.approx(2.0)
        assert swarm.convergence == pytest.approx(0.5)
        assert swarm.stability == swarm.convergence
        print(f"✅ Metrics: diversity={swarm.diversity}, convergence={swarm.convergence}")

    def test_exploration_rates(self):
        swarm = make_swarm([[0.0, 0.0], [3.0, 4.0]], [1.0, 0.0])
        update_exploration_rates(swarm)

        far = swarm.particles[1]
        assert far.exploration_rate == pytest.approx(5.0)
        assert far.exploitation_rate == pytest.approx(0.0)


class TestConvergenceMonitor:
    def test_convergence_is_strictly_above_threshold(self):
        swarm = make_swarm([[0.0], [1.0]], [5.0, 5.0])
        assert ConvergenceMonitor(0.99).has_converged(swarm)
        assert not ConvergenceMonitor(1.0).has_converged(swarm)

    def test_restart_after_eleven_stagnant_iterations(self):
        monitor = ConvergenceMonitor(convergence_threshold=1.0)
        flat = make_swarm([[0.0], [1.0], [2.0]], [3.0, 3.0, 3.0])

        decisions = [monitor.observe_stagnation(flat) for _ in range(11)]

        assert decisions[:10] == [False] * 10
        assert decisions[10] is True
        assert monitor.stagnation_counter == 11
        print("✅ Restart requested once the counter exceeds 10")

    def test_progress_resets_counter(self):
        monitor = ConvergenceMonitor(convergence_threshold=1.0)
        flat = make_swarm([[0.0], [1.0]], [3.0, 3.0])
        spread = make_swarm([[0.0], [1.0]], [0.0, 10.0])

        for _ in range(5):
            monitor.observe_stagnation(flat)
        assert not monitor.observe_stagnation(spread)
        assert monitor.stagnation_counter == 0

    def test_within_tolerance_counts_as_stagnant(self):
        monitor = ConvergenceMonitor(convergence_threshold=1.0)
        nearly_flat = make_swarm([[0.0], [1.0]], [1.0, 1.015])  # best - mean = 0.0075
        monitor.observe_stagnation(nearly_flat)
        assert monitor.stagnation_counter == 1

    def test_reset(self):
        monitor = ConvergenceMonitor(convergence_threshold=1.0)
        flat = make_swarm([[0.0]], [0.0])
        monitor.observe_stagnation(flat)
        monitor.reset()
        assert monitor.stagnation_counter == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
