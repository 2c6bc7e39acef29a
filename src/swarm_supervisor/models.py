"""Value types shared by the supervisor components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class HealthStatus(str, Enum):
    """Job health derived from one poll."""

    RUNNING = "running"
    STALLED = "stalled"
    STOPPED = "stopped"


class FailureClass(str, Enum):
    """Likely cause of a job stop, inferred from pane output."""

    DIMENSION_MISMATCH = "dimension_mismatch"
    P2P_CONNECTION = "p2p_connection"
    MEMORY_EXHAUSTED = "memory_exhausted"
    GENERIC = "generic_error"
    UNKNOWN = "unknown"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class RestartAttempt:
    """One launch attempt inside a restart cycle."""

    attempt: int
    outcome: AttemptOutcome
    timestamp: str = field(default_factory=_utc_timestamp)
    reason: str = ""

    @property
    def succeeded(self) -> bool:
        return self.outcome is AttemptOutcome.SUCCESS


@dataclass
class RestartResult:
    """Attempts made by a restart cycle.

    ``interrupted`` is set when a shutdown request ended the cycle early.
    """

    attempts: list[RestartAttempt] = field(default_factory=list)
    interrupted: bool = False

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def succeeded(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].succeeded


@dataclass(frozen=True)
class MemoryUsage:
    used_percent: int = 0
    over_threshold: bool = False
