"""Monitor exit codes."""

from __future__ import annotations

from enum import IntEnum


class MonitorExitCode(IntEnum):
    """Exit codes for the supervisor process."""

    SUCCESS = 0  # Graceful shutdown or completed manual action
    STARTUP_FAILED = 1  # Missing dependency, directory, script or bad argument
    RESTARTS_EXHAUSTED = 2  # Every attempt of a restart cycle failed
    ERROR = 4  # Unhandled error
