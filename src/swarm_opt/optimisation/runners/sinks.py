"""
Result delivery collaborators.

After a run finishes, the runner hands the result to a :class:`ResultSink`
(``save(result)``) and then announces it through an :class:`EventPublisher`
(``publish(topic, payload)``). Both are best effort: the runner logs and
swallows any exception they raise.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .pso_runner import OptimizationResult

logger = logging.getLogger(__name__)


class ResultSink(Protocol):
    def save(self, result: "OptimizationResult") -> None: ...


class EventPublisher(Protocol):
    def publish(self, topic: str, payload: dict[str, Any]) -> None: ...


class JsonResultSink:
    """
    Writes each result as ``<problem_id>_<timestamp>.json`` under ``results_dir``.

    Args:
        results_dir: Output directory, created on first save.
        indent: JSON indentation.
    """

    def __init__(self, results_dir: str | Path = "results", indent: int = 2):
        self.results_dir = Path(results_dir)
        self.indent = indent
        self.saved_paths: list[Path] = []

    def save(self, result: "OptimizationResult") -> Path:
        self.results_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        output_file = self.results_dir / f"{result.problem_id}_{timestamp}.json"

        export_data = {
            "result_metadata": {
                "created_at": datetime.now().isoformat(),
                "problem_id": result.problem_id,
            },
            **result.to_dict(),
        }

        try:
            with open(output_file, "w") as f:
                json.dump(export_data, f, indent=self.indent)
        except OSError as e:
            raise OSError(f"Failed to write result file {output_file}: {e}") from e

        self.saved_paths.append(output_file)
        logger.info(f"💾 Saved optimization result to {output_file}")
        return output_file


class LoggingEventPublisher:
    """Publishes events as log records; keeps the published events for inspection."""

    def __init__(self, level: int = logging.INFO):
        self.level = level
        self.events: list[tuple[str, dict[str, Any]]] = []

    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        self.events.append((topic, payload))
        logger.log(
            self.level,
            f"📣 {topic}: problem={payload.get('problem_id')} "
            f"fitness={payload.get('best_fitness')} reason={payload.get('termination_reason')}",
        )
