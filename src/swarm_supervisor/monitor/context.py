"""Monitor runtime context."""

from __future__ import annotations

from dataclasses import dataclass, field

from swarm_supervisor.common.processes import ProcessRegistry, PsProcessRegistry
from swarm_supervisor.common.session import SessionManager, create_session_manager
from swarm_supervisor.config import SupervisionConfig
from swarm_supervisor.health import HealthMonitor
from swarm_supervisor.restart import RestartController


@dataclass
class MonitorContext:
    """Runtime context for the monitor loop.

    Holds the configuration and the collaborators built from it. Session
    manager and process registry default to the real backends and can be
    replaced with fakes.
    """

    config: SupervisionConfig
    sessions: SessionManager | None = None
    processes: ProcessRegistry | None = None

    # Loop state
    iteration: int = 0
    running: bool = True
    restart_cycles: int = 0

    health: HealthMonitor = field(init=False, repr=False)
    restarter: RestartController = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.sessions is None:
            self.sessions = create_session_manager(self.config)
        if self.processes is None:
            self.processes = PsProcessRegistry()
        self.health = HealthMonitor(self.config, self.sessions, self.processes)
        self.restarter = RestartController(
            self.config,
            self.sessions,
            self.processes,
            health=self.health,
            should_continue=lambda: self.running,
        )
