"""
Optimization runners for swarm optimization.

This module provides the PSO driver that turns a problem definition and run
parameters into a complete optimization result, plus the collaborators the
result is delivered to.
"""

from .pso_runner import MultiRunResult, OptimizationResult, PSORunner, RunState
from .sinks import JsonResultSink, LoggingEventPublisher

__all__ = [
    'PSORunner',
    'OptimizationResult',
    'MultiRunResult',
    'RunState',
    'JsonResultSink',
    'LoggingEventPublisher',
]
