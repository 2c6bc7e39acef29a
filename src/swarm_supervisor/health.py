"""Health probes for the supervised job.

Every probe degrades to its most conservative answer on failure (not
running, not active, no memory pressure) and logs a warning, so a broken
``ps`` or an unreadable ``/proc`` never takes down the monitor loop.
"""

from __future__ import annotations

import pathlib
import time

from swarm_supervisor.common.logging import log_warning
from swarm_supervisor.common.processes import ProcessHandle, ProcessRegistry
from swarm_supervisor.common.session import SessionManager
from swarm_supervisor.config import SupervisionConfig
from swarm_supervisor.errors import ProbeError
from swarm_supervisor.models import HealthStatus, MemoryUsage


MEMINFO_PATH = pathlib.Path("/proc/meminfo")


def read_memory_percent(meminfo_path: pathlib.Path = MEMINFO_PATH) -> int:
    """Return used memory as an integer percentage of total.

    Used memory is MemTotal - MemAvailable, matching the "used" column of
    modern ``free``. Kernels without MemAvailable fall back to
    MemFree + Buffers + Cached.
    """
    try:
        text = meminfo_path.read_text()
    except OSError as e:
        raise ProbeError(f"cannot read {meminfo_path}: {e}") from e

    values: dict[str, int] = {}
    for line in text.splitlines():
        key, _, rest = line.partition(":")
        fields = rest.split()
        if fields and fields[0].isdigit():
            values[key.strip()] = int(fields[0])

    total = values.get("MemTotal", 0)
    if total <= 0:
        raise ProbeError(f"no MemTotal in {meminfo_path}")
    if "MemAvailable" in values:
        available = values["MemAvailable"]
    else:
        available = (
            values.get("MemFree", 0) + values.get("Buffers", 0) + values.get("Cached", 0)
        )
    used = max(total - available, 0)
    return int(round(used / total * 100))


class HealthMonitor:
    """Answers "is the job alive, and is it doing anything?"."""

    def __init__(
        self,
        config: SupervisionConfig,
        sessions: SessionManager,
        processes: ProcessRegistry,
        meminfo_path: pathlib.Path = MEMINFO_PATH,
    ) -> None:
        self.config = config
        self.sessions = sessions
        self.processes = processes
        self.meminfo_path = meminfo_path

    def _find_job_processes(self) -> list[ProcessHandle]:
        try:
            return self.processes.find_matching(self.config.process_patterns)
        except ProbeError as e:
            log_warning(f"Process probe failed: {e}")
            return []

    def is_process_running(self) -> bool:
        """Check if any process matches one of the job patterns."""
        return bool(self._find_job_processes())

    def is_process_active(self) -> bool:
        """Check if the job is running and doing work.

        A matching process counts as active when it uses CPU above the
        configured epsilon, or when the session's pane output changed within
        the staleness threshold. Zero CPU with stale output means hung.
        """
        return self._is_active(self._find_job_processes())

    def status(self) -> HealthStatus:
        # One process snapshot so a job exiting mid-check reads as stopped
        procs = self._find_job_processes()
        if not procs:
            return HealthStatus.STOPPED
        if not self._is_active(procs):
            return HealthStatus.STALLED
        return HealthStatus.RUNNING

    def _is_active(self, procs: list[ProcessHandle]) -> bool:
        if not procs:
            return False
        if any(p.cpu_percent > self.config.cpu_active_threshold for p in procs):
            return True
        self.record_output()
        return self.output_age() < self.config.stale_threshold

    def check_memory_pressure(self) -> MemoryUsage:
        """Return used memory percent and whether it exceeds the threshold."""
        try:
            used = read_memory_percent(self.meminfo_path)
        except ProbeError as e:
            log_warning(f"Memory probe failed: {e}")
            return MemoryUsage(0, False)
        return MemoryUsage(used, used > self.config.memory_threshold)

    def capture_output(self) -> str:
        """Capture the session pane, or "" when there is no session."""
        if not self.sessions.exists():
            return ""
        return self.sessions.capture_output(self.sessions.handle())

    def record_output(self) -> str:
        """Capture the pane and mirror it into the capture file.

        The file is only rewritten when the text changed, so its mtime is
        the last time new output was observed.
        """
        text = self.capture_output()
        if not text:
            return text
        path = self.config.capture_file
        try:
            if path.exists() and path.read_text(encoding="utf-8", errors="replace") == text:
                return text
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            log_warning(f"Cannot update capture file {path}: {e}")
        return text

    def output_age(self) -> float:
        """Seconds since the pane output last changed (inf if never seen)."""
        try:
            mtime = self.config.capture_file.stat().st_mtime
        except OSError:
            return float("inf")
        return max(time.time() - mtime, 0.0)
