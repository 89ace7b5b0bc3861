"""Console script for swarm_opt."""

import logging
from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from swarm_opt.logging import setup_logger
from swarm_opt.optimisation.config import OptimizationConfigManager
from swarm_opt.optimisation.runners import JsonResultSink, LoggingEventPublisher, PSORunner

app = typer.Typer(help="Particle swarm optimization from a YAML configuration.")
console = Console()

logger = logging.getLogger("swarm_opt.cli")


def _load_manager(config_path: Path) -> OptimizationConfigManager:
    try:
        return OptimizationConfigManager(config_path=str(config_path))
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]❌ Invalid configuration:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e


def _result_table(result) -> Table:
    table = Table(title=f"Optimization result: {result.problem_id}")
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    table.add_row("Best fitness", f"{result.best_fitness:.6f}")
    table.add_row("Feasible", "✅" if result.feasible else "❌")
    table.add_row("Termination", result.termination_reason)
    table.add_row("Iterations", str(result.iterations_completed))
    table.add_row("Restarts", str(result.restarts))
    table.add_row("Time (s)", f"{result.optimization_time:.2f}")
    for name, value in result.performance.items():
        table.add_row(name.capitalize(), f"{value:.4f}")
    for variable_id, value in result.best_position.items():
        table.add_row(f"  {variable_id}", f"{value:.6g}")
    return table


@app.command()
def run(
    config_path: Path = typer.Argument(..., help="YAML configuration file"),
    seed: int | None = typer.Option(None, help="Override the configured seed"),
    results_dir: Path | None = typer.Option(None, help="Write the result as JSON to this directory"),
    multi_run: bool = typer.Option(False, "--multi-run", help="Run the configured multi-run analysis"),
):
    """Run a PSO optimization described by CONFIG_PATH."""
    config_manager = _load_manager(config_path)

    log_cfg = config_manager.get_logging_config()
    setup_logger(
        name="swarm_opt",
        log_dir=log_cfg.get("log_dir"),
        log_file=log_cfg.get("log_file", "run.log"),
        console_level=log_cfg.get("console_level", config_manager.get_monitoring_config().log_level),
        file_level=log_cfg.get("file_level", "DEBUG"),
    )
    logger.info("🚀 Starting swarm optimization run")

    output_dir = results_dir or config_manager.get_output_config().get("results_dir")
    runner = PSORunner.from_config_manager(
        config_manager,
        result_sink=JsonResultSink(output_dir) if output_dir else None,
        event_publisher=LoggingEventPublisher(),
    )

    try:
        problem = config_manager.create_problem()
        if multi_run or config_manager.get_multi_run_config().enabled:
            multi_result = runner.optimize_multi_run(problem, base_seed=seed)
            result = multi_result.best_result
            stats = multi_result.statistical_summary
            console.print(
                f"🔢 {multi_result.num_runs_completed} runs: "
                f"mean={stats['fitness_mean']:.4f} std={stats['fitness_std']:.4f}"
            )
        else:
            result = runner.optimize(problem, seed=seed)
    except (ValueError, RuntimeError) as e:
        console.print(f"[red]❌ Optimization failed:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    console.print(_result_table(result))
    for violation in result.best_particle.violations:
        console.print(f"[yellow]⚠️ {escape(violation)}[/yellow]")


@app.command()
def validate(config_path: Path = typer.Argument(..., help="YAML configuration file")):
    """Check a configuration and its problem definition without running."""
    config_manager = _load_manager(config_path)
    try:
        problem = config_manager.create_problem()
    except ValueError as e:
        console.print(f"[red]❌ Invalid problem:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    config_manager.print_summary()
    console.print(f"✅ {problem!r} is valid")


if __name__ == "__main__":
    app()
