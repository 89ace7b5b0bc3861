"""
Tests for the swarm-opt command line interface.
"""

import logging
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from swarm_opt.cli import app
from swarm_opt.logging import setup_logger

runner = CliRunner()


@pytest.fixture
def config_file(sample_config, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(sample_config))
    return path


class TestRunCommand:
    @patch("swarm_opt.cli.setup_logger")
    def test_run_writes_result(self, mock_logger, config_file, tmp_path):
        out_dir = tmp_path / "out"
        result = runner.invoke(app, ["run", str(config_file), "--results-dir", str(out_dir), "--seed", "3"])

        assert result.exit_code == 0, result.output
        assert "Best fitness" in result.output
        assert len(list(out_dir.glob("dock-plan_*.json"))) == 1
        mock_logger.assert_called_once()
        print("✅ CLI run completed")

    @patch("swarm_opt.cli.setup_logger")
    def test_multi_run_flag(self, mock_logger, config_file):
        result = runner.invoke(app, ["run", str(config_file), "--multi-run"])

        assert result.exit_code == 0, result.output
        assert "3 runs" in result.output

    @patch("swarm_opt.cli.setup_logger")
    def test_invalid_config_exits(self, mock_logger, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({"problem": {"variables": []}}))

        result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        mock_logger.assert_not_called()

    def test_missing_file_exits(self, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1


class TestValidateCommand:
    def test_valid_config(self, config_file):
        result = runner.invoke(app, ["validate", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "is valid" in result.output
        assert "OPTIMIZATION CONFIGURATION SUMMARY" in result.output

    def test_invalid_problem(self, sample_config, tmp_path):
        sample_config["problem"]["variables"][0]["type"] = "complex"
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump(sample_config))

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Invalid problem" in result.output


class TestSetupLogger:
    def test_console_and_file_handlers(self, tmp_path):
        logger = setup_logger(name="swarm_opt.test_cli", log_dir=str(tmp_path / "logs"), console_level="WARNING")

        assert len(logger.handlers) == 2
        assert logger.handlers[0].level == logging.WARNING
        logger.debug("debug line")
        for handler in logger.handlers:
            handler.flush()
        assert "debug line" in (tmp_path / "logs" / "run.log").read_text()

        # Second call reuses the existing handlers
        assert len(setup_logger(name="swarm_opt.test_cli").handlers) == 2
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
