"""
Configuration management for swarm optimization.

This module provides the run parameters, optional behaviours, monitoring and
multi-run settings for PSO, and loads them (together with the problem
definition) from YAML or a dictionary.
"""

from .config_manager import (
    MonitoringConfig,
    MultiRunConfig,
    OptimizationConfigManager,
    OptimizationOptions,
    RunParameters,
)

__all__ = [
    "RunParameters",
    "OptimizationOptions",
    "MonitoringConfig",
    "MultiRunConfig",
    "OptimizationConfigManager",
]
