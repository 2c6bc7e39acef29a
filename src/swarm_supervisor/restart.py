"""Bounded-retry restart of the supervised job.

One restart cycle is::

    cleanup -> attempt 1 .. attempt N -> success | ExhaustedRetriesError

Cleanup runs once per cycle. Each attempt resets the session, regenerates
the peer identity from the second attempt on, submits the launch command
and polls for the job process for a fixed window.

When a stop check is given, every wait inside the cycle wakes once per
second to consult it, and a requested shutdown ends the cycle early.
"""

from __future__ import annotations

import os
import pathlib
import time
from typing import Callable

from swarm_supervisor.common.logging import log_error, log_info, log_success, log_warning
from swarm_supervisor.common.processes import ProcessRegistry
from swarm_supervisor.common.session import SessionHandle, SessionManager
from swarm_supervisor.config import SupervisionConfig
from swarm_supervisor.errors import (
    ExhaustedRetriesError,
    LaunchError,
    ProbeError,
    RestartInterrupted,
    SessionCreateError,
)
from swarm_supervisor.health import HealthMonitor
from swarm_supervisor.launch import LaunchStrategy, build_launch_command, create_launch_strategy
from swarm_supervisor.models import AttemptOutcome, FailureClass, RestartAttempt, RestartResult


DROP_CACHES_PATH = pathlib.Path("/proc/sys/vm/drop_caches")


class RestartController:
    """Runs restart cycles for one supervised job."""

    def __init__(
        self,
        config: SupervisionConfig,
        sessions: SessionManager,
        processes: ProcessRegistry,
        health: HealthMonitor | None = None,
        launcher: LaunchStrategy | None = None,
        should_continue: Callable[[], bool] | None = None,
    ) -> None:
        self.config = config
        self.sessions = sessions
        self.processes = processes
        self.health = health or HealthMonitor(config, sessions, processes)
        self.launcher = launcher or create_launch_strategy(config.launch_strategy)
        self.should_continue = should_continue

    def run(self, failure: FailureClass | None = None) -> RestartResult:
        """Run one restart cycle.

        Returns the attempts made when the job came back, or an interrupted
        result when shutdown was requested. Raises ExhaustedRetriesError
        once every attempt has failed.
        """
        max_attempts = self.config.max_restart_attempts
        log_warning("Job stopped, preparing restart...")
        attempts: list[RestartAttempt] = []
        try:
            self.cleanup()
            for attempt in range(1, max_attempts + 1):
                self._check_stop()
                log_info(f"Restart attempt {attempt}/{max_attempts}")
                try:
                    self._start_attempt(attempt, failure)
                except LaunchError as e:
                    log_error(f"Restart attempt {attempt} failed: {e.reason}")
                    attempts.append(
                        RestartAttempt(attempt, AttemptOutcome.FAILURE, reason=e.reason)
                    )
                    if attempt < max_attempts:
                        log_info(f"Waiting {self.config.restart_delay}s before retrying...")
                        self._pause(self.config.restart_delay)
                    continue

                attempts.append(RestartAttempt(attempt, AttemptOutcome.SUCCESS))
                log_success(f"Job restarted successfully (attempt {attempt})")
                return RestartResult(attempts)
        except RestartInterrupted:
            log_warning(f"Restart cycle interrupted after {len(attempts)} attempt(s)")
            return RestartResult(attempts, interrupted=True)

        log_error("Maximum restart attempts reached")
        raise ExhaustedRetriesError(attempts)

    def cleanup(self) -> None:
        """Kill stray job and helper processes, drop the session and caches."""
        log_info("Cleaning up processes and memory...")
        self._terminate_all()
        self.reset_session()
        self.drop_caches()
        self._pause(self.config.cleanup_settle_delay)
        log_info("Cleanup complete")

    def stop_all(self) -> None:
        """Stop the job, its helpers and the session without restarting."""
        log_info("Stopping all related processes...")
        self._terminate_all()
        if self.sessions.exists():
            self.sessions.destroy(self.sessions.handle())
        log_success("All processes stopped")

    def reset_session(self) -> None:
        """Destroy any existing session so the next launch starts clean."""
        if not self.sessions.exists():
            return
        log_info(f"Removing existing session: {self.sessions.name}")
        self.sessions.destroy(self.sessions.handle())
        self._pause(self.config.session_reset_delay)

    def reset_identity(self) -> None:
        """Delete the peer identity so the job generates a fresh one."""
        log_info("Removing identity file to generate a new peer identity")
        try:
            self.config.identity_path.unlink(missing_ok=True)
        except OSError as e:
            log_warning(f"Cannot remove {self.config.identity_path}: {e}")
        temp_dir = self.config.identity_temp_path
        if not temp_dir.is_dir():
            return
        for path in temp_dir.glob("*.json"):
            try:
                path.unlink()
            except OSError as e:
                log_warning(f"Cannot remove {path}: {e}")

    def drop_caches(self) -> None:
        """Ask the kernel to drop page caches. Best effort."""
        if not self.config.drop_caches:
            return
        try:
            os.sync()
            DROP_CACHES_PATH.write_text("3\n")
        except OSError as e:
            log_info(f"Cache drop skipped: {e}")

    def _terminate_all(self) -> None:
        patterns = (*self.config.process_patterns, *self.config.helper_patterns)
        try:
            count = self.processes.terminate_matching(patterns)
        except ProbeError as e:
            log_warning(f"Cannot list processes for cleanup: {e}")
            return
        if count:
            log_info(f"Terminated {count} process(es)")

    def _check_memory(self, attempt: int) -> None:
        usage = self.health.check_memory_pressure()
        if not usage.over_threshold:
            return
        log_warning(f"Memory usage high before restart: {usage.used_percent}%")
        self.drop_caches()
        usage = self.health.check_memory_pressure()
        if usage.over_threshold:
            raise LaunchError(
                attempt,
                f"memory usage {usage.used_percent}% above "
                f"{self.config.memory_threshold}% threshold",
            )

    def _start_attempt(self, attempt: int, failure: FailureClass | None) -> None:
        self._check_memory(attempt)
        self.reset_session()

        if attempt > 1 or failure is FailureClass.P2P_CONNECTION:
            self.reset_identity()

        command = build_launch_command(self.config)
        try:
            self.config.logs_dir.mkdir(parents=True, exist_ok=True)
            handle = self.launcher.launch(self.sessions, command)
        except (OSError, SessionCreateError) as e:
            raise LaunchError(attempt, str(e)) from e
        log_info("Launch command submitted, waiting for the job to start")

        self._pause(self.config.launch_settle_delay)
        for _ in range(self.config.confirm_polls):
            if self.health.is_process_running():
                return
            if not self.sessions.exists():
                raise LaunchError(attempt, "session exited during startup")
            self._pause(self.config.confirm_interval)

        self._log_diagnostics(handle)
        raise LaunchError(
            attempt, f"job process not detected after {self.config.confirm_polls} polls"
        )

    def _log_diagnostics(self, handle: SessionHandle) -> None:
        text = self.sessions.capture_output(handle)
        if not text.strip():
            log_info("No session output available for diagnosis")
            return
        lines = text.rstrip().splitlines()[-self.config.diagnostic_lines:]
        log_info(f"Session output (last {len(lines)} lines):")
        for line in lines:
            log_info(f"  {line}")

    def _check_stop(self) -> None:
        if self.should_continue is not None and not self.should_continue():
            raise RestartInterrupted("shutdown requested")

    def _pause(self, seconds: float, tick: float = 1.0) -> None:
        """Sleep for seconds, raising RestartInterrupted on a shutdown request."""
        if self.should_continue is None:
            time.sleep(seconds)
            return
        elapsed = 0.0
        while elapsed < seconds:
            self._check_stop()
            step = min(tick, seconds - elapsed)
            time.sleep(step)
            elapsed += step
        self._check_stop()
