"""
Swarm components used by the PSO runner.

Particles and swarm state, the velocity/position physics, adaptive weights,
local search and the convergence/stagnation monitor.
"""

from .adaptive import AdaptiveParameterController
from .local_search import LocalSearchHybridizer
from .monitor import ConvergenceMonitor
from .particle import Particle, ParticleFactory, Swarm
from .updater import VelocityPositionUpdater

__all__ = [
    "AdaptiveParameterController",
    "ConvergenceMonitor",
    "LocalSearchHybridizer",
    "Particle",
    "ParticleFactory",
    "Swarm",
    "VelocityPositionUpdater",
]
