"""
PSO Runner for swarm optimization.

This module provides the optimization driver: it owns the iteration loop, the
wall-clock budget and the hand-off of the finished result. It handles:

- Swarm construction and the per-iteration update / evaluate / refine pass
- Adaptive weights, convergence stopping and stagnation-triggered restarts
- Cooperative cancellation and optional thread-pool fitness evaluation
- Result assembly (summary, performance metrics, tiered recommendations)
- Single and multi-run optimization with statistical analysis
- Delivery to the result sink and event publisher

Run lifecycle::

    INITIALIZING -> ITERATING -> {CONVERGED | EXHAUSTED} -> FINALIZING -> DONE

Each iteration keeps a read-before-any-write view of the swarm: every particle
moves against the global best frozen at the start of the iteration, all
candidates are evaluated, and only then are personal/global bests, swarm
metrics, adaptive weights and the stop/restart decisions updated.

Usage:
```python
from swarm_opt.optimisation.config import OptimizationConfigManager
from swarm_opt.optimisation.runners import PSORunner

config_manager = OptimizationConfigManager('pso_config.yaml')
problem = config_manager.create_problem()

runner = PSORunner.from_config_manager(config_manager)
result = runner.optimize(problem)

print(f"Best fitness: {result.best_fitness}")
print(f"Best position: {result.best_position}")
print(f"Stopped because: {result.termination_reason}")
```
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any

import numpy as np
from pymoo.core.callback import Callback

from ..config.config_manager import (
    MonitoringConfig,
    MultiRunConfig,
    OptimizationConfigManager,
    OptimizationOptions,
    RunParameters,
)
from ..problems.base import EvaluationError, OptimizationProblem, ProblemDefinitionError
from ..problems.evaluator import FitnessEvaluator
from ..swarm.adaptive import AdaptiveParameterController
from ..swarm.local_search import LocalSearchHybridizer
from ..swarm.monitor import ConvergenceMonitor, update_exploration_rates, update_swarm_metrics
from ..swarm.particle import Particle, ParticleFactory, Swarm
from ..swarm.updater import VelocityPositionUpdater
from .sinks import EventPublisher, ResultSink

logger = logging.getLogger(__name__)

EVENT_TOPIC = "particle.swarm.optimized"

CONVERGED = "converged"
MAX_ITERATIONS = "max_iterations"
TIME_BUDGET = "time_budget"
CANCELLED = "cancelled"


class RunState(str, Enum):
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass(frozen=True)
class OptimizationResult:
    """
    Complete result of a single PSO run.

    Created once when the run finishes and never modified afterwards. It is
    what the runner hands to the result sink and what multi-run analysis is
    built from.

    RESULT CATEGORIES:

    **Core Solution Data:**
    - ``best_particle``: snapshot of the best particle seen during the whole run
    - ``swarm``: snapshot of the final swarm (reflects any late restart)

    **Run Information:**
    - ``termination_reason``: converged, max_iterations, time_budget or cancelled
    - ``iterations_completed``, ``optimization_time``, ``restarts``
    - ``optimization_history``: one entry per iteration (when history is saved)
    - ``algorithm_config``: parameters and options used, plus the final weights

    **Quality Assessment:**
    - ``summary``: total_iterations, total_time, final_fitness, average_fitness,
      improvement_rate, convergence_rate, diversity, stability
    - ``performance``: convergence, stability, diversity, efficiency, quality
    - ``recommendations``: ``immediate`` / ``short_term`` / ``long_term`` advice

    Example Usage:
        ```python
        result = runner.optimize(problem)

        if result.best_particle.feasible:
            print("✅ Best solution satisfies all constraints")
        else:
            for violation in result.best_particle.violations:
                print(f"❌ {violation}")

        fitness = [entry['global_best_fitness'] for entry in result.optimization_history]
        ```
    """

    problem_id: str
    best_particle: Particle
    swarm: Swarm
    summary: dict[str, Any]
    performance: dict[str, float]
    recommendations: dict[str, list[str]]
    termination_reason: str
    optimization_time: float
    iterations_completed: int
    variable_ids: tuple[str, ...] = ()
    restarts: int = 0

    optimization_history: list[dict[str, Any]] = field(default_factory=list)
    algorithm_config: dict[str, Any] = field(default_factory=dict)
    convergence_info: dict[str, Any] = field(default_factory=dict)
    performance_stats: dict[str, Any] = field(default_factory=dict)
    best_feasible_solutions: list[dict[str, Any]] = field(default_factory=list)

    @property
    def best_fitness(self) -> float:
        return self.best_particle.best_fitness

    @property
    def best_position(self) -> dict[str, float]:
        """Best position found, keyed by variable id."""
        return dict(zip(self.variable_ids, map(float, self.best_particle.best_position), strict=True))

    @property
    def feasible(self) -> bool:
        return self.best_particle.feasible

    @property
    def converged(self) -> bool:
        return self.termination_reason == CONVERGED

    def event_payload(self) -> dict[str, Any]:
        """Compact payload published after a run."""
        return {
            "problem_id": self.problem_id,
            "best_fitness": float(self.best_fitness),
            "best_position": self.best_position,
            "feasible": self.feasible,
            "termination_reason": self.termination_reason,
            "iterations": self.iterations_completed,
            "optimization_time": self.optimization_time,
            "performance": dict(self.performance),
        }

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation of the full result."""
        return {
            "problem_id": self.problem_id,
            "termination_reason": self.termination_reason,
            "optimization_time": self.optimization_time,
            "iterations_completed": self.iterations_completed,
            "restarts": self.restarts,
            "best_particle": self.best_particle.to_dict(self.variable_ids),
            "swarm": self.swarm.to_dict(self.variable_ids),
            "summary": dict(self.summary),
            "performance": dict(self.performance),
            "recommendations": {k: list(v) for k, v in self.recommendations.items()},
            "optimization_history": [dict(entry) for entry in self.optimization_history],
            "algorithm_config": dict(self.algorithm_config),
            "convergence_info": dict(self.convergence_info),
            "performance_stats": {
                k: (list(v) if isinstance(v, list) else v) for k, v in self.performance_stats.items()
            },
            "best_feasible_solutions": [
                {**solution, "position": dict(zip(self.variable_ids, map(float, solution["position"]), strict=True))}
                for solution in self.best_feasible_solutions
            ],
        }


@dataclass
class MultiRunResult:
    """
    Statistical results from multiple independent PSO runs.

    Only the best run is kept in full; every run contributes a lightweight
    summary and its tracked feasible solutions.

    STATISTICAL SUMMARY STRUCTURE:
    - 'fitness_mean', 'fitness_std', 'fitness_min', 'fitness_max', 'fitness_median'
    - 'time_mean', 'time_std', 'time_total'
    - 'iterations_mean', 'iterations_std'
    - 'feasibility_rate', 'convergence_rate', 'success_rate'

    Attributes:
        best_result: Run with the highest best fitness.
        run_summaries: run_id, seed, fitness, feasible, iterations, time,
            termination_reason, restarts, best_feasible_solutions_count.
        statistical_summary: Aggregates computed from the run summaries.
        total_time: Wall-clock time for all runs combined.
        num_runs_completed: Number of runs that finished.
        best_feasible_solutions_per_run: ``[run_idx][solution_idx]`` tracked solutions.
    """

    best_result: OptimizationResult
    run_summaries: list[dict]
    statistical_summary: dict[str, Any]
    total_time: float
    num_runs_completed: int

    best_feasible_solutions_per_run: list[list[dict]] = field(default_factory=list)


class SwarmRun:
    """
    Mutable state of one optimization run.

    One instance exists per :meth:`PSORunner.optimize` call and is the single
    writer of its swarm. Callbacks receive it after every iteration.
    """

    def __init__(self, problem: OptimizationProblem, params: RunParameters, seed: int | None):
        self.problem = problem
        self.params = params
        self.seed = seed
        self.state = RunState.INITIALIZING
        self.start_time = time.time()
        self.iteration = 0
        self.swarm: Swarm | None = None
        self.best_particle: Particle | None = None
        self.history: list[dict[str, Any]] = []
        self.restarts = 0
        self.improvements = 0
        self.termination_reason: str | None = None

    @property
    def elapsed(self) -> float:
        return time.time() - self.start_time

    def record_best(self) -> None:
        """Keep a snapshot of the best particle seen over the whole run."""
        swarm = self.swarm
        if self.best_particle is None or swarm.global_best_fitness > self.best_particle.best_fitness:
            self.best_particle = swarm.particles[swarm.global_best_index].snapshot()


class PSORuntimeCallback(Callback):
    """
    Callback tracking runtime information during optimization.

    Extends pymoo's Callback so it can be combined with any other pymoo-style
    callback. The runner calls it with the :class:`SwarmRun` after every
    iteration.

    TRACKING CAPABILITIES:
    - **Iteration timing**: cumulative wall-clock time at the end of each iteration
    - **Feasible solutions**: best N unique feasible positions seen during the run

    Attributes:
        start_time (float | None): Run start timestamp, taken from the run on first call.
        iteration_times (list[float]): Cumulative elapsed time at the end of each iteration.
        feasible_tracker (BestFeasibleSolutionsTracker): Top feasible positions.
    """

    def __init__(self, track_best_n: int = 5):
        super().__init__()
        self.start_time = None
        self.iteration_times = []
        self.feasible_tracker = BestFeasibleSolutionsTracker(track_best_n)

    def initialize(self, run: SwarmRun):
        self.start_time = run.start_time

    def notify(self, run: SwarmRun):
        self.iteration_times.append(time.time() - self.start_time)

        particles = run.swarm.particles
        self.feasible_tracker.add_iteration_solutions(
            positions=[p.position for p in particles],
            fitnesses=[p.fitness for p in particles],
            iterations=[run.iteration] * len(particles),
            feasibles=[p.feasible for p in particles],
            violations=[len(p.violations) for p in particles],
        )


class CallbackCollection(Callback):
    """
    Wrapper to handle multiple callbacks.

    The run loop invokes a single callback; this wrapper forwards to every
    wrapped callback in order, going through each callback's own
    ``__call__`` so their ``initialize`` hooks fire on first use.
    """

    def __init__(self, callbacks):
        super().__init__()
        self.callbacks = callbacks or []

    def notify(self, run):
        """Call all callbacks in sequence."""
        for callback in self.callbacks:
            callback(run)

    def __len__(self):
        return len(self.callbacks)

    def __iter__(self):
        return iter(self.callbacks)

    def __getitem__(self, index):
        return self.callbacks[index]


class BestFeasibleSolutionsTracker:
    """
    Tracks the best N unique feasible positions during a single optimization run.
    Maintains a list sorted by fitness, highest first.
    """

    def __init__(self, max_solutions: int = 5):
        self.max_solutions = max_solutions
        self.best_solutions = []

    def add_iteration_solutions(self, positions, fitnesses, iterations, feasibles, violations):
        """
        Add up to max_solutions feasible positions from the current iteration,
        ensuring uniqueness and keeping only the best N overall.
        """
        candidates = []
        for i in range(len(fitnesses)):
            if not feasibles[i] or not np.isfinite(fitnesses[i]):
                continue
            candidates.append({
                "position": np.array(positions[i], dtype=float),
                "fitness": float(fitnesses[i]),
                "iteration_found": iterations[i],
                "feasible": True,
                "violations": violations[i],
            })

        candidates.sort(key=lambda x: x["fitness"], reverse=True)

        for new_sol in candidates[: self.max_solutions]:
            is_duplicate = any(
                existing["fitness"] == new_sol["fitness"]
                and np.array_equal(existing["position"], new_sol["position"])
                for existing in self.best_solutions
            )
            if not is_duplicate:
                self.best_solutions.append(new_sol)

        self.best_solutions.sort(key=lambda x: x["fitness"], reverse=True)
        del self.best_solutions[self.max_solutions:]

    def get_best_solutions(self) -> list[dict]:
        """Get copy of best feasible solutions list."""
        return [{**sol, "position": sol["position"].copy()} for sol in self.best_solutions]

    def get_count(self) -> int:
        return len(self.best_solutions)


class PSORunner:
    """
    PSO optimization driver.

    The runner itself holds configuration and collaborators only. All per-run
    state lives in a :class:`SwarmRun`, so independent ``optimize`` calls
    (even concurrent ones on different problems) share nothing mutable.

    KEY CAPABILITIES:
    - **Single optimization**: one seeded run with full result analysis
    - **Multi-run optimization**: independent seeded runs with statistics
    - **Adaptive weights**: iteration schedule and diversity/convergence reaction
    - **Local search**: single-step hill climbing layered on the swarm
    - **Cancellation**: cooperative ``threading.Event`` checked every iteration
    - **Result delivery**: best-effort save + publish after the run

    Attributes:
        parameters (RunParameters): Template parameters; each run works on a copy.
        options (OptimizationOptions): Optional behaviours.
        monitoring (MonitoringConfig): Progress logging and history settings.
        multi_run (MultiRunConfig): Defaults for :meth:`optimize_multi_run`.
        result_sink (ResultSink | None): Receives every delivered result.
        event_publisher (EventPublisher | None): Receives the completion event.

    Example Usage:
        ```python
        runner = PSORunner(RunParameters(swarm_size=30, max_iterations=200))
        result = runner.optimize(problem, seed=42)

        multi_result = runner.optimize_multi_run(problem, num_runs=10, base_seed=0)
        stats = multi_result.statistical_summary
        print(f"Mean ± std: {stats['fitness_mean']:.4f} ± {stats['fitness_std']:.4f}")
        ```

    Error Handling:
        - **Definition errors** (``ProblemDefinitionError``): raised before any iteration
        - **Evaluation errors** (``EvaluationError``): abort the run, no partial result
        - **Other failures**: wrapped in ``RuntimeError`` with elapsed-time context
        - **Sink / publish failures**: logged, never raised
    """

    def __init__(
        self,
        parameters: RunParameters,
        options: OptimizationOptions | None = None,
        monitoring: MonitoringConfig | None = None,
        multi_run: MultiRunConfig | None = None,
        result_sink: ResultSink | None = None,
        event_publisher: EventPublisher | None = None,
    ):
        self.parameters = parameters
        self.options = options or OptimizationOptions()
        self.monitoring = monitoring or MonitoringConfig()
        self.multi_run = multi_run or MultiRunConfig()
        self.result_sink = result_sink
        self.event_publisher = event_publisher

        if self.parameters.topology != "global":
            logger.warning(
                f"⚠️ Topology '{self.parameters.topology}' is not implemented, using the global best"
            )

    @classmethod
    def from_config_manager(
        cls,
        config_manager: OptimizationConfigManager,
        result_sink: ResultSink | None = None,
        event_publisher: EventPublisher | None = None,
    ) -> "PSORunner":
        """Build a runner from every section of a loaded configuration."""
        return cls(
            parameters=config_manager.get_run_parameters(),
            options=config_manager.get_options(),
            monitoring=config_manager.get_monitoring_config(),
            multi_run=config_manager.get_multi_run_config(),
            result_sink=result_sink,
            event_publisher=event_publisher,
        )

    def optimize(
        self,
        problem: OptimizationProblem,
        seed: int | None = None,
        cancel_event: threading.Event | None = None,
        callbacks: list[Callback] | None = None,
        track_best_n: int = 5,
    ) -> OptimizationResult:
        """
        Run a single PSO optimization and deliver the result.

        Args:
            problem: Validated problem definition.
            seed: Seed for this run. Defaults to ``parameters.seed``.
            cancel_event: Set it from any thread to stop the run after the
                current iteration. A cancelled run still returns a complete result.
            callbacks: Extra pymoo-style callbacks called with the
                :class:`SwarmRun` after every iteration.
            track_best_n: Number of best feasible positions to keep.

        Returns:
            OptimizationResult: Complete, immutable result.

        Raises:
            EvaluationError: If fitness evaluation fails (no partial result).
            RuntimeError: If the run fails for any other reason.
        """
        result = self._optimize(problem, seed, cancel_event, callbacks, track_best_n)
        self._deliver(result)
        return result

    def _optimize(self, problem, seed, cancel_event, callbacks, track_best_n) -> OptimizationResult:
        logger.info("🚀 STARTING PSO OPTIMIZATION")

        params = replace(self.parameters)
        run_seed = seed if seed is not None else params.seed
        run = SwarmRun(problem, params, run_seed)

        runtime_callback = PSORuntimeCallback(track_best_n=track_best_n)
        callback_wrapper = CallbackCollection([runtime_callback, *(callbacks or [])])

        try:
            self._print_optimization_summary(problem, params)
            self._run(run, cancel_event, callback_wrapper)
            return self._finalize(run, runtime_callback)
        except (EvaluationError, ProblemDefinitionError) as e:
            logger.error(f"❌ PSO optimization aborted after {run.elapsed:.1f}s: {e}")
            raise
        except Exception as e:
            raise RuntimeError(f"PSO optimization failed after {run.elapsed:.1f}s: {str(e)}") from e

    def _run(self, run: SwarmRun, cancel_event: threading.Event | None, callback: Callback) -> None:
        problem, params = run.problem, run.params
        rng = np.random.default_rng(run.seed)

        evaluator = FitnessEvaluator(problem)
        factory = ParticleFactory(problem, evaluator)
        updater = VelocityPositionUpdater(problem, params)
        controller = AdaptiveParameterController(params, reactive=self.options.include_adaptive)
        monitor = ConvergenceMonitor(params.convergence_threshold)
        local_search = None
        if self.options.include_local_search:
            local_search = LocalSearchHybridizer(
                problem, evaluator, self.options.local_search_probability, params.position_limit
            )

        # INITIALIZING
        run.swarm = factory.create_swarm(params.swarm_size, rng)
        update_swarm_metrics(run.swarm)
        update_exploration_rates(run.swarm)
        run.record_best()
        controller.start()

        run.state = RunState.ITERATING
        pool = ThreadPoolExecutor(max_workers=self.options.max_workers) if self.options.include_parallel else nullcontext()
        with pool as executor:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    run.termination_reason = CANCELLED
                    logger.info(f"🛑 Run cancelled after {run.iteration} iteration(s)")
                    break
                if run.iteration >= params.max_iterations:
                    run.termination_reason = MAX_ITERATIONS
                    break
                if run.elapsed >= params.max_time_seconds:
                    run.termination_reason = TIME_BUDGET
                    logger.info(f"⏰ Time budget of {params.max_time_seconds}s reached")
                    break

                run.iteration += 1
                accepted = self._iterate(run, updater, evaluator, local_search, rng, executor)

                swarm = run.swarm
                swarm.refresh_global_best()
                update_swarm_metrics(swarm)
                update_exploration_rates(swarm)
                run.record_best()

                weights = controller.current_weights()
                controller.update(swarm, run.iteration)

                converged = monitor.has_converged(swarm)
                restarted = False
                if not converged and monitor.observe_stagnation(swarm):
                    logger.info(
                        f"🔁 Stagnation for {monitor.stagnation_counter} iterations, "
                        f"restarting swarm at iteration {run.iteration}"
                    )
                    factory.reinitialize(swarm, rng)
                    update_swarm_metrics(swarm)
                    update_exploration_rates(swarm)
                    monitor.reset()
                    run.record_best()
                    run.restarts += 1
                    restarted = True

                if self.monitoring.save_history:
                    run.history.append(self._history_entry(run, weights, monitor, restarted, accepted))
                self._log_progress(run)

                callback(run)

                if converged:
                    run.termination_reason = CONVERGED
                    logger.info(
                        f"🎯 Converged at iteration {run.iteration} "
                        f"(convergence {swarm.convergence:.4f} > {params.convergence_threshold})"
                    )
                    break

        run.state = RunState.CONVERGED if run.termination_reason == CONVERGED else RunState.EXHAUSTED

    def _iterate(self, run, updater, evaluator, local_search, rng, executor) -> int:
        """
        One update pass over the swarm. Returns the number of accepted local-search moves.

        Moves all read the global best frozen at the start of the pass; personal
        bests are only written once every candidate has been evaluated.
        """
        swarm = run.swarm
        global_best = swarm.global_best_position.copy()

        candidates = [updater.move(particle, global_best, rng) for particle in swarm.particles]
        if executor is not None:
            evaluations = list(executor.map(evaluator.evaluate, candidates))
        else:
            evaluations = [evaluator.evaluate(position) for position in candidates]

        cap = self.options.max_local_search
        accepted = 0
        for particle, position, evaluation in zip(swarm.particles, candidates, evaluations, strict=True):
            particle.apply_evaluation(position, evaluation)
            particle.iteration = run.iteration
            if particle.update_personal_best():
                run.improvements += 1
            else:
                particle.iterations_since_improvement += 1

            if local_search is not None and (cap is None or accepted < cap):
                if local_search.refine(particle, rng):
                    accepted += 1
                    if particle.update_personal_best():
                        run.improvements += 1

            if self.monitoring.detailed_logging:
                logger.debug(
                    f"   {particle.id}: fitness={particle.fitness:.4f} best={particle.best_fitness:.4f} "
                    f"feasible={particle.feasible} stale={particle.iterations_since_improvement}"
                )

        return accepted

    @staticmethod
    def _history_entry(run, weights, monitor, restarted, accepted) -> dict[str, Any]:
        swarm = run.swarm
        return {
            "iteration": run.iteration,
            "global_best_fitness": float(swarm.global_best_fitness),
            "average_fitness": swarm.average_fitness,
            "diversity": swarm.diversity,
            "convergence": swarm.convergence,
            "stability": swarm.stability,
            "inertia_weight": weights["inertia"],
            "cognitive_weight": weights["cognitive"],
            "social_weight": weights["social"],
            "feasible_count": swarm.feasible_count(),
            "stagnation_counter": monitor.stagnation_counter,
            "restarted": restarted,
            "local_search_accepted": accepted,
            "elapsed": run.elapsed,
        }

    def _log_progress(self, run: SwarmRun) -> None:
        if run.iteration % self.monitoring.progress_frequency != 0:
            return
        swarm = run.swarm
        logger.info(
            f"   Iter {run.iteration}: best={swarm.global_best_fitness:.4f} "
            f"avg={swarm.average_fitness:.4f} div={swarm.diversity:.4f} "
            f"conv={swarm.convergence:.4f} feasible={swarm.feasible_count()}/{len(swarm)}"
        )

    def _print_optimization_summary(self, problem: OptimizationProblem, params: RunParameters) -> None:
        """Log the key run parameters and the problem size."""
        logger.info("📋 OPTIMIZATION CONFIGURATION:")
        logger.info(f"   Problem: {problem.id} ({problem.n_variables} variables, "
                    f"{len(problem.constraints)} constraints, {len(problem.objectives)} objectives)")
        logger.info(f"   Swarm size: {params.swarm_size}")
        logger.info(f"   Weights: w={params.inertia_weight:.2f}, c1={params.cognitive_weight:.2f}, "
                    f"c2={params.social_weight:.2f}")
        schedule = [name for name, on in (("inertia", params.adaptive_inertia),
                                          ("weights", params.adaptive_weights)) if on]
        if schedule or self.options.include_adaptive:
            logger.info(f"   Adaptation: schedule={schedule or 'off'}, "
                        f"reactive={'on' if self.options.include_adaptive else 'off'}")
        logger.info(f"   Max iterations: {params.max_iterations}, max time: {params.max_time_seconds}s")

    def _finalize(self, run: SwarmRun, callback: PSORuntimeCallback) -> OptimizationResult:
        run.state = RunState.FINALIZING
        swarm = run.swarm
        problem = run.problem
        optimization_time = run.elapsed

        summary = self._generate_summary(run, optimization_time)
        performance = self._generate_performance_metrics(run)
        recommendations = self._generate_recommendations(performance)

        algorithm_config = {
            **asdict(self.parameters),
            "seed": run.seed,
            "final_weights": {
                "inertia": run.params.inertia_weight,
                "cognitive": run.params.cognitive_weight,
                "social": run.params.social_weight,
            },
            "options": asdict(self.options),
        }

        best_feasible_solutions = callback.feasible_tracker.get_best_solutions()

        result = OptimizationResult(
            problem_id=problem.id,
            best_particle=run.best_particle.snapshot(),
            swarm=swarm.snapshot(),
            summary=summary,
            performance=performance,
            recommendations=recommendations,
            termination_reason=run.termination_reason,
            optimization_time=optimization_time,
            iterations_completed=run.iteration,
            variable_ids=problem.variable_ids,
            restarts=run.restarts,
            optimization_history=run.history,
            algorithm_config=algorithm_config,
            convergence_info=self._analyze_convergence(run),
            performance_stats=self._generate_performance_stats(callback, optimization_time, run.iteration),
            best_feasible_solutions=best_feasible_solutions,
        )

        run.state = RunState.DONE

        logger.info("✅ OPTIMIZATION COMPLETED")
        logger.info(f"   Best fitness: {result.best_fitness:.6f}")
        logger.info(f"   Iterations: {run.iteration} ({run.termination_reason})")
        logger.info(f"   Time: {optimization_time:.2f}s")
        if run.restarts:
            logger.info(f"   Restarts: {run.restarts}")
        logger.info(f"   Best feasible solutions tracked: {len(best_feasible_solutions)}")
        if result.feasible:
            logger.info("   ✅ All constraints satisfied")
        else:
            logger.info(f"   ⚠️  Constraint violations: {len(result.best_particle.violations)}")

        return result

    @staticmethod
    def _ratio(numerator: float, denominator: float) -> float:
        return float(numerator / denominator) if denominator != 0 else 0.0

    def _generate_summary(self, run: SwarmRun, optimization_time: float) -> dict[str, Any]:
        swarm = run.swarm
        return {
            "total_iterations": run.iteration,
            "total_time": optimization_time,
            "final_fitness": float(run.best_particle.best_fitness),
            "average_fitness": swarm.average_fitness,
            "improvement_rate": self._ratio(run.improvements, run.iteration * len(swarm)),
            "convergence_rate": swarm.convergence,
            "diversity": swarm.diversity,
            "stability": swarm.stability,
            "restarts": run.restarts,
            "feasible_particles": swarm.feasible_count(),
        }

    def _generate_performance_metrics(self, run: SwarmRun) -> dict[str, float]:
        """
        Scalar quality indicators of the final swarm.

        efficiency = best / (average + 1)
        quality = best / (n_objectives * 1000 + 1)
        """
        swarm = run.swarm
        best = float(run.best_particle.best_fitness)
        return {
            "convergence": swarm.convergence,
            "stability": swarm.stability,
            "diversity": swarm.diversity,
            "efficiency": self._ratio(best, swarm.average_fitness + 1.0),
            "quality": self._ratio(best, len(run.problem.objectives) * 1000.0 + 1.0),
        }

    @staticmethod
    def _generate_recommendations(performance: dict[str, float]) -> dict[str, list[str]]:
        immediate = []
        short_term = []

        if performance["convergence"] < 0.8:
            immediate.append("Low convergence - increase swarm size or adjust parameters")
        if performance["stability"] < 0.7:
            immediate.append("Low stability - adjust inertia weight")

        if performance["diversity"] < 0.5:
            short_term.append("Low diversity - increase cognitive weight")
        if performance["efficiency"] < 0.6:
            short_term.append("Low efficiency - optimize objective weights")
        if performance["quality"] < 0.8:
            short_term.append("Low quality - improve constraint handling")

        long_term = [
            "Implement hybrid optimization algorithms",
            "Develop adaptive parameter tuning",
            "Create multi-objective optimization framework",
        ]
        return {"immediate": immediate, "short_term": short_term, "long_term": long_term}

    def _generate_performance_stats(self, callback: PSORuntimeCallback,
                                    total_time: float, num_iterations: int) -> dict[str, Any]:
        return {
            "total_time": total_time,
            "num_iterations": num_iterations,
            "avg_time_per_iteration": total_time / max(1, num_iterations),
            "iterations_per_second": num_iterations / max(0.001, total_time),
            "iteration_times": list(callback.iteration_times),
        }

    def _analyze_convergence(self, run: SwarmRun) -> dict[str, Any]:
        """
        Convergence diagnostics from the recorded history.

        ``recent_improvement`` is the change in global best fitness over the
        last five recorded iterations (restarts excluded).
        """
        info = {
            "converged": run.termination_reason == CONVERGED,
            "reason": run.termination_reason,
            "final_iteration": run.iteration,
            "final_fitness": float(run.best_particle.best_fitness),
            "final_convergence": run.swarm.convergence,
        }

        recent = run.history[-5:]
        if len(recent) >= 2:
            deltas = [
                b["global_best_fitness"] - a["global_best_fitness"]
                for a, b in zip(recent, recent[1:])
                if not b["restarted"]
            ]
            info["recent_improvement"] = float(sum(deltas))
        return info

    def _deliver(self, result: OptimizationResult) -> None:
        """Save then publish. Failures are logged and never affect the result."""
        if self.result_sink is not None:
            try:
                self.result_sink.save(result)
            except Exception as e:
                logger.warning(f"⚠️ Failed to save result for '{result.problem_id}': {e}")

        if self.event_publisher is not None:
            try:
                self.event_publisher.publish(EVENT_TOPIC, result.event_payload())
            except Exception as e:
                logger.warning(f"⚠️ Failed to publish '{EVENT_TOPIC}' for '{result.problem_id}': {e}")

    def optimize_multi_run(
        self,
        problem: OptimizationProblem,
        num_runs: int | None = None,
        base_seed: int | None = None,
        track_best_n: int = 5,
    ) -> MultiRunResult:
        """
        Run multiple independent PSO optimizations.

        Run ``i`` uses seed ``base_seed + i`` so the whole batch is reproducible.
        Only the best result (highest best fitness) is delivered to the result
        sink and event publisher.

        Args:
            problem: Problem shared by every run.
            num_runs: Number of runs. Defaults to ``multi_run.num_runs``.
            base_seed: First seed. Defaults to ``multi_run.base_seed``, then
                ``parameters.seed``; None gives unseeded runs.
            track_best_n: Feasible positions tracked per run.

        Returns:
            MultiRunResult: Best run in full plus per-run summaries and statistics.

        Raises:
            ValueError: If num_runs < 1.
            EvaluationError / RuntimeError: From the first failing run; the batch stops.
        """
        runs_to_perform = num_runs if num_runs is not None else self.multi_run.num_runs
        if runs_to_perform < 1:
            raise ValueError("Number of runs must be at least 1")

        if base_seed is None:
            base_seed = self.multi_run.base_seed if self.multi_run.base_seed is not None else self.parameters.seed

        logger.info(f"🔄 STARTING MULTI-RUN PSO OPTIMIZATION ({runs_to_perform} runs)")
        start_time = time.time()

        run_summaries = []
        best_feasible_solutions_per_run = []
        overall_best_result = None

        for run_idx in range(runs_to_perform):
            seed = base_seed + run_idx if base_seed is not None else None
            logger.info(f"🏃 RUN {run_idx + 1}/{runs_to_perform} (seed={seed})")

            result = self._optimize(problem, seed, None, None, track_best_n)

            run_summaries.append({
                "run_id": run_idx + 1,
                "seed": seed,
                "fitness": float(result.best_fitness),
                "feasible": result.feasible,
                "iterations": result.iterations_completed,
                "time": result.optimization_time,
                "termination_reason": result.termination_reason,
                "restarts": result.restarts,
                "best_feasible_solutions_count": len(result.best_feasible_solutions),
            })
            best_feasible_solutions_per_run.append(result.best_feasible_solutions)

            if overall_best_result is None or result.best_fitness > overall_best_result.best_fitness:
                overall_best_result = result

            logger.info(f"✅ Run {run_idx + 1} completed: fitness = {result.best_fitness:.6f}")

        total_time = time.time() - start_time
        statistical_summary = self._generate_statistical_summary_from_summaries(run_summaries)

        logger.info("🎯 MULTI-RUN OPTIMIZATION COMPLETED")
        logger.info(f"   Runs: {len(run_summaries)}/{runs_to_perform}")
        logger.info(f"   Total time: {total_time:.1f}s")
        logger.info(f"   Best fitness: {overall_best_result.best_fitness:.6f}")
        logger.info(f"   Mean fitness: {statistical_summary['fitness_mean']:.6f}")
        logger.info(f"   Std fitness: {statistical_summary['fitness_std']:.6f}")

        self._deliver(overall_best_result)

        return MultiRunResult(
            best_result=overall_best_result,
            run_summaries=run_summaries,
            statistical_summary=statistical_summary,
            total_time=total_time,
            num_runs_completed=len(run_summaries),
            best_feasible_solutions_per_run=best_feasible_solutions_per_run,
        )

    def _generate_statistical_summary_from_summaries(self, run_summaries: list[dict]) -> dict[str, Any]:
        """Generate statistical summary from lightweight run summaries."""
        if not run_summaries:
            return {}

        fitnesses = [summary["fitness"] for summary in run_summaries]
        times = [summary["time"] for summary in run_summaries]
        iterations = [summary["iterations"] for summary in run_summaries]
        feasible_count = sum(1 for summary in run_summaries if summary["feasible"])
        converged_count = sum(1 for summary in run_summaries if summary["termination_reason"] == CONVERGED)

        return {
            "num_runs": len(run_summaries),
            "fitness_mean": float(np.mean(fitnesses)),
            "fitness_std": float(np.std(fitnesses)),
            "fitness_min": float(np.min(fitnesses)),
            "fitness_max": float(np.max(fitnesses)),
            "fitness_median": float(np.median(fitnesses)),
            "time_mean": float(np.mean(times)),
            "time_std": float(np.std(times)),
            "time_total": float(np.sum(times)),
            "iterations_mean": float(np.mean(iterations)),
            "iterations_std": float(np.std(iterations)),
            "success_rate": 1.0,
            "feasibility_rate": feasible_count / len(run_summaries),
            "convergence_rate": converged_count / len(run_summaries),
        }
