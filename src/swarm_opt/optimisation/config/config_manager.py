"""
Configuration data classes and management for swarm optimization.

This module defines the structured configuration for a PSO run and loads it
from YAML (or a plain dictionary) with validation. Every dataclass validates
itself in ``__post_init__`` so an invalid run definition is rejected before a
swarm is ever built.

The configuration system covers:
- The problem definition (variables, constraints, objectives)
- PSO run parameters (swarm size, weights, clamp limits, adaptive flags)
- Termination criteria (iterations, wall-clock budget, convergence threshold)
- Optional algorithm behaviours (reactive adaptation, local search, parallel evaluation)
- Progress monitoring and logging options
- Multi-run statistical analysis

Example YAML Configuration:
```yaml
problem:
  id: "dock-plan"
  variables:
    - id: "x"
      type: "continuous"
      domain: {min: 0, max: 100}
  constraints:
    - id: "target"
      kind: "equality"
      bound: 50
      penalty_weight: 10
  objectives:
    - id: "throughput"
      direction: "maximize"

optimization:
  algorithm:
    swarm_size: 30
    inertia_weight: 0.7
    cognitive_weight: 1.5
    social_weight: 1.5
    adaptive_inertia: true
  termination:
    max_iterations: 200
    max_time_seconds: 30
    convergence_threshold: 0.99
  options:
    include_adaptive: true
    include_local_search: true
  monitoring:
    progress_frequency: 10
  multi_run:
    enabled: true
    num_runs: 5
  seed: 42
```

Usage:
```python
config_manager = OptimizationConfigManager('config.yaml')
problem = config_manager.create_problem()
runner = PSORunner.from_config_manager(config_manager)
result = runner.optimize(problem)
```
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..problems.base import (
    Constraint,
    ConstraintKind,
    Domain,
    Objective,
    ObjectiveDirection,
    OptimizationProblem,
    ProblemDefinitionError,
    Variable,
    VariableType,
)

logger = logging.getLogger(__name__)

VALID_TOPOLOGIES = ["global", "ring", "star", "wheel", "random"]


@dataclass
class RunParameters:
    """
    Particle Swarm Optimization run parameters.

    The runner works on its own copy of this object; the adaptive controller
    mutates the weights of that copy between iterations and the updater reads
    them on every velocity update.

    Attributes:
    ===========

    swarm_size : int (REQUIRED)
        Number of particles. Must be at least 1.

    max_iterations : int (REQUIRED)
        Iteration budget. Must be at least 1.

    max_time_seconds : float, default=60.0
        Wall-clock budget, checked once per iteration (never slept on).

    convergence_threshold : float, default=0.99
        The run stops once swarm convergence exceeds this value.
        - 0 stops after the first iteration for any non-degenerate swarm
        - Values above 1.0 effectively disable convergence stopping

    inertia_weight : float, default=0.7
        Inertia (w), range [0.0, 2.0]. Initial value when a schedule is active.

    cognitive_weight : float, default=1.5
        Attraction to the personal best (c1), range [0.0, 5.0].

    social_weight : float, default=1.5
        Attraction to the global best (c2), range [0.0, 5.0].

    velocity_limit : float | None, default=None
        Symmetric velocity clamp. None clamps each variable to 20% of its domain width.

    position_limit : float | None, default=None
        Optional ``±limit`` box applied on top of each variable's domain.

    adaptive_inertia : bool, default=False
        Linearly decay inertia to zero over ``max_iterations``.

    adaptive_weights : bool, default=False
        Linearly shift influence from the cognitive to the social term.

    topology : str, default="global"
        Neighbourhood topology. Only "global" (one shared best) is implemented;
        other values are accepted and treated as global.

    neighborhood_size : int, default=3
        Kept for non-global topologies.

    seed : int | None, default=None
        Seed for the run's random generator.
    """

    swarm_size: int  # REQUIRED - no default
    max_iterations: int  # REQUIRED - no default
    max_time_seconds: float = 60.0
    convergence_threshold: float = 0.99
    inertia_weight: float = 0.7
    cognitive_weight: float = 1.5
    social_weight: float = 1.5
    velocity_limit: float | None = None
    position_limit: float | None = None
    adaptive_inertia: bool = False
    adaptive_weights: bool = False
    topology: str = "global"
    neighborhood_size: int = 3
    seed: int | None = None

    def __post_init__(self):
        """Validate run parameters."""
        if self.swarm_size < 1:
            raise ProblemDefinitionError("Swarm size must be at least 1")

        if self.max_iterations < 1:
            raise ValueError("Max iterations must be positive")

        if not self.max_time_seconds > 0:
            raise ValueError("Max time must be positive")

        if not math.isfinite(self.convergence_threshold):
            raise ValueError("Convergence threshold must be finite")

        if not 0.0 <= self.inertia_weight <= 2.0:
            raise ValueError("Inertia weight should be in range [0.0, 2.0]")

        if not 0.0 <= self.cognitive_weight <= 5.0:
            raise ValueError("Cognitive weight should be in range [0.0, 5.0]")

        if not 0.0 <= self.social_weight <= 5.0:
            raise ValueError("Social weight should be in range [0.0, 5.0]")

        if self.velocity_limit is not None and not self.velocity_limit > 0:
            raise ValueError("Velocity limit must be positive when specified")

        if self.position_limit is not None and not self.position_limit > 0:
            raise ValueError("Position limit must be positive when specified")

        if self.topology not in VALID_TOPOLOGIES:
            raise ValueError(f"Topology must be one of {VALID_TOPOLOGIES}")

        if self.neighborhood_size < 1:
            raise ValueError("Neighborhood size must be positive")


@dataclass
class OptimizationOptions:
    """
    Optional behaviours of a run.

    Only ``include_adaptive``, ``include_local_search`` and ``include_parallel``
    change what the runner does. The remaining flags are accepted so callers can
    pass the full option set, and are reported in the algorithm config.

    Attributes:
        include_adaptive: Enable the diversity/convergence-reactive weight policy.
        include_local_search: Enable single-step hill climbing on particles.
        local_search_probability: Per-particle trigger probability, range [0, 1].
        max_local_search: Cap on accepted refinements per iteration (None = no cap).
        include_parallel: Evaluate particle fitness on a thread pool.
        max_workers: Thread pool size (None = executor default).
        include_real_time, include_hybrid, include_tabu, include_multi_objective,
        max_tabu_size: Accepted, no effect on the search.
    """

    include_adaptive: bool = False
    include_local_search: bool = False
    local_search_probability: float = 0.1
    max_local_search: int | None = None
    include_parallel: bool = False
    max_workers: int | None = None
    include_real_time: bool = False
    include_hybrid: bool = False
    include_tabu: bool = False
    include_multi_objective: bool = False
    max_tabu_size: int = 100

    def __post_init__(self):
        """Validate option values."""
        if not 0.0 <= self.local_search_probability <= 1.0:
            raise ValueError("Local search probability must be in range [0.0, 1.0]")

        if self.max_local_search is not None and self.max_local_search < 0:
            raise ValueError("Max local search cannot be negative")

        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("Max workers must be positive when specified")

        if self.max_tabu_size < 1:
            raise ValueError("Max tabu size must be positive")


@dataclass
class MonitoringConfig:
    """
    Progress monitoring and logging configuration.

    Attributes:
        progress_frequency: Log a progress line every N iterations.
        save_history: Keep one history entry per iteration in the result.
        detailed_logging: Add per-particle debug lines every iteration.
        log_level: One of DEBUG, INFO, WARNING, ERROR.
    """

    progress_frequency: int = 10
    save_history: bool = True
    detailed_logging: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate monitoring configuration."""
        if self.progress_frequency < 1:
            raise ValueError("Progress frequency must be positive")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if self.log_level not in valid_log_levels:
            raise ValueError(f"Log level must be one of {valid_log_levels}")


@dataclass
class MultiRunConfig:
    """
    Multi-run statistical analysis configuration.

    Runs the same problem several times with seeds ``base_seed + i`` and
    summarises the spread of final fitness values.

    Attributes:
        enabled: Run several independent optimizations instead of one.
        num_runs: Number of runs, range [2, 100] when enabled.
        base_seed: First seed. None draws unseeded runs.
    """

    enabled: bool = False
    num_runs: int = 5
    base_seed: int | None = None

    def __post_init__(self):
        """Validate multi-run configuration."""
        if self.enabled:
            if self.num_runs < 2:
                raise ValueError("Number of runs must be at least 2 for multi-run analysis")

            if self.num_runs > 100:
                raise ValueError("Number of runs should not exceed 100 (time/resource limits)")


class OptimizationConfigManager:
    """
    Configuration manager for swarm optimization.

    Loads a YAML file or dictionary, validates the required sections and
    builds the structured configuration objects.

    Configuration Structure:
        ```yaml
        problem:
          id: ...
          variables: [...]      # id, type, domain {min, max, step}, weight
          constraints: [...]    # id, kind, bound, penalty_weight, variable_ids
          objectives: [...]     # id, direction, weight, priority, variable_ids

        optimization:
          algorithm: {...}      # swarm_size + PSO weights and limits
          termination: {...}    # max_iterations + time budget, convergence
          options: {...}        # adaptive / local search / parallel
          monitoring: {...}     # progress reporting
          multi_run: {...}      # statistical analysis
          seed: 42

        output:
          results_dir: "results"
        ```

    Usage Pattern:
        ```python
        config_manager = OptimizationConfigManager('optimization_config.yaml')
        params = config_manager.get_run_parameters()
        problem = config_manager.create_problem()
        ```
    """

    def __init__(self, config_path: str | None = None, config_dict: dict | None = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to YAML configuration file
            config_dict: Configuration dictionary (alternative to file)

        Raises:
            FileNotFoundError: If config_path doesn't exist
            ValueError: If both or neither config sources are provided,
                or if configuration validation fails
            yaml.YAMLError: If YAML file is malformed
        """
        if config_path and config_dict:
            raise ValueError("Provide either config_path or config_dict, not both")

        if not config_path and not config_dict:
            raise ValueError(
                "Configuration is required. Provide either:\n"
                "  - config_path: Path to YAML configuration file\n"
                "  - config_dict: Configuration dictionary\n"
                "Example: OptimizationConfigManager('my_config.yaml')"
            )

        if config_path:
            self.config = self._load_yaml_config(config_path)
            logger.info("📋 Using loaded configuration file")
        else:
            self.config = config_dict
            logger.info("📋 Using provided configuration dictionary")

        self._validate_config()
        self._setup_structured_configs()

    def _load_yaml_config(self, config_path: str) -> dict[str, Any]:
        """Load configuration from YAML file with error handling."""
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file) as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(config, dict):
            raise ValueError(f"Configuration must be a dictionary, got {type(config)}")

        logger.info(f"📂 Loaded configuration from {config_path}")
        return config

    def _validate_config(self):
        """Validate configuration structure and required fields."""
        required_sections = ["problem", "optimization"]
        for section in required_sections:
            if section not in self.config:
                raise ValueError(f"Missing required configuration section: '{section}'")

        problem_config = self.config["problem"]
        if not isinstance(problem_config, dict) or "variables" not in problem_config:
            raise ValueError("Missing 'variables' in problem configuration")

        opt_config = self.config["optimization"]
        required_opt_sections = ["algorithm", "termination"]
        for section in required_opt_sections:
            if section not in opt_config:
                raise ValueError(f"Missing required optimization section: '{section}'")

        alg_config = opt_config["algorithm"]
        if alg_config.get("type", "PSO") != "PSO":
            raise ValueError("Only PSO algorithm supported currently")

    def _setup_structured_configs(self):
        """Setup structured configuration objects with validation."""
        opt_config = self.config["optimization"]
        alg_config = opt_config["algorithm"]
        term_config = opt_config["termination"]

        if "swarm_size" not in alg_config:
            raise ValueError(
                "Missing required parameter 'swarm_size' in algorithm configuration.\n"
                "Example:\n"
                "optimization:\n"
                "  algorithm:\n"
                "    swarm_size: 30"
            )

        if "max_iterations" not in term_config:
            raise ValueError(
                "Missing required parameter 'max_iterations' in termination configuration.\n"
                "Example:\n"
                "optimization:\n"
                "  termination:\n"
                "    max_iterations: 100"
            )

        self.run_parameters = RunParameters(
            swarm_size=alg_config["swarm_size"],  # REQUIRED
            max_iterations=term_config["max_iterations"],  # REQUIRED
            max_time_seconds=self._time_budget_seconds(term_config),
            convergence_threshold=term_config.get("convergence_threshold", 0.99),
            inertia_weight=alg_config.get("inertia_weight", 0.7),
            cognitive_weight=alg_config.get("cognitive_weight", 1.5),
            social_weight=alg_config.get("social_weight", 1.5),
            velocity_limit=alg_config.get("velocity_limit"),
            position_limit=alg_config.get("position_limit"),
            adaptive_inertia=alg_config.get("adaptive_inertia", False),
            adaptive_weights=alg_config.get("adaptive_weights", False),
            topology=alg_config.get("topology", "global"),
            neighborhood_size=alg_config.get("neighborhood_size", 3),
            seed=opt_config.get("seed"),
        )

        options_config = opt_config.get("options") or {}
        try:
            self.options = OptimizationOptions(**options_config)
        except TypeError as e:
            raise ValueError(f"Invalid entry in optimization options: {e}") from e

        mon_config = opt_config.get("monitoring") or {}
        self.monitoring_config = MonitoringConfig(
            progress_frequency=mon_config.get("progress_frequency", 10),
            save_history=mon_config.get("save_history", True),
            detailed_logging=mon_config.get("detailed_logging", False),
            log_level=mon_config.get("log_level", "INFO"),
        )

        multi_config = opt_config.get("multi_run") or {}
        self.multi_run_config = MultiRunConfig(
            enabled=multi_config.get("enabled", False),
            num_runs=multi_config.get("num_runs", 5),
            base_seed=multi_config.get("base_seed", opt_config.get("seed")),
        )

    @staticmethod
    def _time_budget_seconds(term_config: dict) -> float:
        if "max_time_seconds" in term_config:
            return float(term_config["max_time_seconds"])
        if "max_time_minutes" in term_config:
            return float(term_config["max_time_minutes"]) * 60.0
        return 60.0

    def get_run_parameters(self) -> RunParameters:
        """Get PSO run parameters."""
        return self.run_parameters

    def get_options(self) -> OptimizationOptions:
        """Get optional algorithm behaviours."""
        return self.options

    def get_monitoring_config(self) -> MonitoringConfig:
        """Get monitoring and logging configuration."""
        return self.monitoring_config

    def get_multi_run_config(self) -> MultiRunConfig:
        """Get multi-run analysis configuration."""
        return self.multi_run_config

    def get_problem_config(self) -> dict[str, Any]:
        """Get problem configuration (variables, constraints, objectives)."""
        return self.config["problem"]

    def get_output_config(self) -> dict[str, Any]:
        return self.config.get("output") or {}

    def get_logging_config(self) -> dict[str, Any]:
        return self.config.get("logging") or {}

    def get_full_config(self) -> dict[str, Any]:
        """Get complete configuration dictionary."""
        return self.config.copy()

    def create_problem(self) -> OptimizationProblem:
        """
        Build the validated problem definition from the ``problem`` section.

        Raises:
            ProblemDefinitionError: On missing fields, unknown enum values, or any
                check performed by :class:`OptimizationProblem`.
        """
        problem_config = self.config["problem"]

        variables = [self._build_variable(v) for v in problem_config.get("variables") or []]
        constraints = [self._build_constraint(c) for c in problem_config.get("constraints") or []]
        objectives = [self._build_objective(o) for o in problem_config.get("objectives") or []]

        return OptimizationProblem(
            id=problem_config.get("id", "problem"),
            name=problem_config.get("name"),
            description=problem_config.get("description", ""),
            variables=variables,
            constraints=constraints,
            objectives=objectives,
        )

    @staticmethod
    def _require(entry: dict, key: str, owner: str):
        if key not in entry:
            raise ProblemDefinitionError(f"Missing '{key}' in {owner} definition: {entry}")
        return entry[key]

    @staticmethod
    def _parse_enum(enum_cls, value, owner_id: str):
        try:
            return enum_cls(value)
        except ValueError:
            valid = [member.value for member in enum_cls]
            raise ProblemDefinitionError(
                f"'{owner_id}': invalid value '{value}', expected one of {valid}"
            ) from None

    @staticmethod
    def _scope(entry: dict) -> tuple[str, ...] | None:
        variable_ids = entry.get("variable_ids")
        return tuple(variable_ids) if variable_ids is not None else None

    def _build_variable(self, entry: dict) -> Variable:
        variable_id = self._require(entry, "id", "variable")
        variable_type = self._parse_enum(VariableType, entry.get("type", "continuous"), variable_id)

        domain_config = entry.get("domain") or {}
        if variable_type == VariableType.BINARY:
            domain_config = {"min": 0, "max": 1, **domain_config}

        domain = Domain(
            min=float(self._require(domain_config, "min", f"variable '{variable_id}' domain")),
            max=float(self._require(domain_config, "max", f"variable '{variable_id}' domain")),
            step=domain_config.get("step"),
        )
        return Variable(
            id=variable_id,
            type=variable_type,
            domain=domain,
            weight=float(entry.get("weight", 1.0)),
            name=entry.get("name"),
        )

    def _build_constraint(self, entry: dict) -> Constraint:
        constraint_id = self._require(entry, "id", "constraint")
        return Constraint(
            id=constraint_id,
            kind=self._parse_enum(ConstraintKind, entry.get("kind", "inequality"), constraint_id),
            bound=float(self._require(entry, "bound", "constraint")),
            penalty_weight=float(entry.get("penalty_weight", 1.0)),
            name=entry.get("name"),
            expression=entry.get("expression"),
            variable_ids=self._scope(entry),
        )

    def _build_objective(self, entry: dict) -> Objective:
        objective_id = self._require(entry, "id", "objective")
        return Objective(
            id=objective_id,
            direction=self._parse_enum(ObjectiveDirection, entry.get("direction", "maximize"), objective_id),
            weight=float(entry.get("weight", 1.0)),
            priority=float(entry.get("priority", 1.0)),
            name=entry.get("name"),
            expression=entry.get("expression"),
            variable_ids=self._scope(entry),
        )

    def print_summary(self):
        """Print configuration summary for verification."""
        problem_config = self.config["problem"]
        params = self.run_parameters

        print("\n📋 OPTIMIZATION CONFIGURATION SUMMARY:")

        print("   🎯 Problem Configuration:")
        print(f"      Id: {problem_config.get('id', 'problem')}")
        print(f"      Variables: {len(problem_config.get('variables') or [])}")
        print(f"      Constraints: {len(problem_config.get('constraints') or [])}")
        print(f"      Objectives: {len(problem_config.get('objectives') or [])}")

        print("   🔄 Algorithm Configuration:")
        print("      Type: PSO")
        print(f"      Swarm size: {params.swarm_size}")
        print(f"      Inertia weight: {params.inertia_weight} ({'scheduled' if params.adaptive_inertia else 'fixed'})")
        print(f"      Cognitive/Social weights: {params.cognitive_weight}/{params.social_weight}")
        print(f"      Weight schedule: {'Enabled' if params.adaptive_weights else 'Disabled'}")
        print(f"      Topology: {params.topology}")
        if params.velocity_limit is not None:
            print(f"      Velocity limit: ±{params.velocity_limit}")
        else:
            print("      Velocity limit: 20% of domain width")

        print("   🧩 Options:")
        print(f"      Reactive adaptation: {'Enabled' if self.options.include_adaptive else 'Disabled'}")
        if self.options.include_local_search:
            print(f"      Local search: Enabled (p={self.options.local_search_probability})")
        else:
            print("      Local search: Disabled")
        print(f"      Parallel evaluation: {'Enabled' if self.options.include_parallel else 'Disabled'}")

        print("   ⏰ Termination Configuration:")
        print(f"      Max iterations: {params.max_iterations}")
        print(f"      Max time: {params.max_time_seconds} seconds")
        print(f"      Convergence threshold: {params.convergence_threshold}")

        print("   📊 Monitoring Configuration:")
        print(f"      Progress frequency: {self.monitoring_config.progress_frequency}")
        print(f"      Save history: {self.monitoring_config.save_history}")
        print(f"      Log level: {self.monitoring_config.log_level}")

        print("   🔢 Multi-run Configuration:")
        print(f"      Enabled: {self.multi_run_config.enabled}")
        if self.multi_run_config.enabled:
            print(f"      Statistical runs: {self.multi_run_config.num_runs}")
