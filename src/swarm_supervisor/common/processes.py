"""Process table queries for the supervised job.

``ProcessRegistry`` is the seam between supervision logic and the OS: the
health monitor and restart controller only ever ask it for processes whose
command line matches a pattern, and to terminate them.
"""

from __future__ import annotations

import os
import re
import signal
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable

from swarm_supervisor.errors import ProbeError


PS_TIMEOUT = 10  # seconds


@dataclass(frozen=True)
class ProcessHandle:
    """Snapshot of one process table entry."""

    pid: int
    cpu_percent: float
    command: str


def matches_any(command: str, patterns: Iterable[str]) -> bool:
    """Check if a command line matches any pattern (``pgrep -f`` semantics)."""
    for pattern in patterns:
        try:
            if re.search(pattern, command):
                return True
        except re.error:
            if pattern in command:
                return True
    return False


class ProcessRegistry(ABC):
    """Finds and terminates processes by command-line pattern."""

    @abstractmethod
    def find_matching(self, patterns: Iterable[str]) -> list[ProcessHandle]:
        """Return processes whose command line matches any of ``patterns``.

        Raises ProbeError if the process table cannot be read.
        """

    @abstractmethod
    def terminate(self, handle: ProcessHandle) -> bool:
        """Send SIGTERM. Returns False only if the signal could not be delivered."""

    def terminate_matching(self, patterns: Iterable[str]) -> int:
        """Terminate every matching process. Returns how many were signalled."""
        count = 0
        for handle in self.find_matching(patterns):
            if self.terminate(handle):
                count += 1
        return count


class PsProcessRegistry(ProcessRegistry):
    """Registry backed by ``ps -eo pid=,pcpu=,args=``."""

    def _list_processes(self) -> list[ProcessHandle]:
        try:
            result = subprocess.run(
                ["ps", "-eo", "pid=,pcpu=,args="],
                capture_output=True,
                text=True,
                check=False,
                timeout=PS_TIMEOUT,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise ProbeError(f"ps failed: {e}") from e
        if result.returncode != 0:
            raise ProbeError(f"ps exited {result.returncode}: {result.stderr.strip()}")
        return parse_ps_output(result.stdout)

    def find_matching(self, patterns: Iterable[str]) -> list[ProcessHandle]:
        patterns = list(patterns)
        own_pid = os.getpid()
        return [
            proc
            for proc in self._list_processes()
            if proc.pid != own_pid and matches_any(proc.command, patterns)
        ]

    def terminate(self, handle: ProcessHandle) -> bool:
        try:
            os.kill(handle.pid, signal.SIGTERM)
            return True
        except ProcessLookupError:
            # Already gone
            return True
        except PermissionError:
            return False


def parse_ps_output(output: str) -> list[ProcessHandle]:
    """Parse ``pid pcpu args`` lines, skipping anything malformed."""
    processes: list[ProcessHandle] = []
    for line in output.splitlines():
        parts = line.split(None, 2)
        if len(parts) < 3:
            continue
        try:
            pid = int(parts[0])
            cpu = float(parts[1])
        except ValueError:
            continue
        processes.append(ProcessHandle(pid=pid, cpu_percent=cpu, command=parts[2]))
    return processes
