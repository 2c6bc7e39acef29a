"""Custom exceptions for job supervision."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from swarm_supervisor.models import RestartAttempt


class SupervisorError(Exception):
    """Base exception for supervisor errors."""


class StartupError(SupervisorError):
    """A startup precondition failed (missing tool, directory or script)."""


class ConfigError(StartupError):
    """Supervision configuration is invalid."""


class ProbeError(SupervisorError):
    """A single health probe could not produce an answer."""


class SessionCreateError(SupervisorError):
    """The multiplexer could not create the session."""

    def __init__(self, session_name: str, message: str) -> None:
        self.session_name = session_name
        super().__init__(f"Cannot create session '{session_name}': {message}")


class LaunchError(SupervisorError):
    """The job did not come up during one restart attempt."""

    def __init__(self, attempt: int, reason: str) -> None:
        self.attempt = attempt
        self.reason = reason
        super().__init__(f"Attempt {attempt} failed: {reason}")


class ExhaustedRetriesError(SupervisorError):
    """Every attempt of a restart cycle failed."""

    def __init__(self, attempts: list[RestartAttempt]) -> None:
        self.attempts = attempts
        super().__init__(f"Job failed to restart after {len(attempts)} attempt(s)")


class RestartInterrupted(SupervisorError):
    """A shutdown was requested while a restart cycle was running."""
