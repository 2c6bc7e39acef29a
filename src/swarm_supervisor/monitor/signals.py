"""PID file and OS signal handling for the monitor."""

from __future__ import annotations

import os
import signal
from typing import TYPE_CHECKING, Any

from swarm_supervisor.common.logging import log_info

if TYPE_CHECKING:
    from swarm_supervisor.monitor.context import MonitorContext


def check_existing_pid(ctx: MonitorContext) -> tuple[bool, int | None]:
    """Check if another monitor process is running.

    Returns (is_running, pid) where is_running is True if another monitor
    is running and pid is its process ID.
    """
    pid_file = ctx.config.pid_file
    if not pid_file.exists():
        return False, None

    try:
        existing_pid = int(pid_file.read_text().strip())
        if existing_pid == os.getpid():
            return False, None
        # Check if process is running
        os.kill(existing_pid, 0)
        return True, existing_pid
    except ProcessLookupError:
        log_info("Removing stale PID file")
        pid_file.unlink(missing_ok=True)
        return False, None
    except PermissionError:
        # Process exists but belongs to another user
        return True, existing_pid
    except ValueError:
        # Invalid PID file
        pid_file.unlink(missing_ok=True)
        return False, None


def write_pid_file(ctx: MonitorContext) -> None:
    """Write the current process ID to the PID file."""
    ctx.config.pid_file.parent.mkdir(parents=True, exist_ok=True)
    ctx.config.pid_file.write_text(str(os.getpid()))


def remove_pid_file(ctx: MonitorContext) -> None:
    try:
        ctx.config.pid_file.unlink(missing_ok=True)
    except OSError:
        pass


def install_signal_handlers(ctx: MonitorContext) -> None:
    """Stop the loop on SIGINT/SIGTERM at the next sleep tick."""

    def signal_handler(signum: int, frame: Any) -> None:
        ctx.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
