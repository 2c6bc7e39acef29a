"""Common utilities for swarm-supervisor."""

from swarm_supervisor.common.processes import ProcessHandle, ProcessRegistry, PsProcessRegistry
from swarm_supervisor.common.session import (
    ScreenSessionManager,
    SessionHandle,
    SessionManager,
    TmuxSessionManager,
    create_session_manager,
)

__all__ = [
    "ProcessHandle",
    "ProcessRegistry",
    "PsProcessRegistry",
    "ScreenSessionManager",
    "SessionHandle",
    "SessionManager",
    "TmuxSessionManager",
    "create_session_manager",
]
