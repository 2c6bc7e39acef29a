"""Supervisor for an RL Swarm training job running in a screen/tmux session."""

__version__ = "0.1.0"

from swarm_supervisor.classifier import classify
from swarm_supervisor.config import SupervisionConfig
from swarm_supervisor.health import HealthMonitor
from swarm_supervisor.restart import RestartController

__all__ = [
    "HealthMonitor",
    "RestartController",
    "SupervisionConfig",
    "classify",
    "__version__",
]
