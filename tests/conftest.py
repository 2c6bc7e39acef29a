"""Shared fixtures: in-memory session manager and process registry."""

from __future__ import annotations

import pathlib
from typing import Iterable

import pytest

from swarm_supervisor.common import logging as supervisor_logging
from swarm_supervisor.common.processes import ProcessHandle, ProcessRegistry, matches_any
from swarm_supervisor.common.session import SessionHandle, SessionManager
from swarm_supervisor.config import SupervisionConfig
from swarm_supervisor.errors import ProbeError, SessionCreateError
from swarm_supervisor.health import HealthMonitor
from swarm_supervisor.monitor.context import MonitorContext
from swarm_supervisor.restart import RestartController


MEMINFO_LOW = """\
MemTotal:       16000000 kB
MemFree:         6000000 kB
MemAvailable:   12000000 kB
Buffers:          100000 kB
Cached:          4000000 kB
"""


class FakeSessionManager(SessionManager):
    """Session manager that keeps its state in memory."""

    executable = "fake-mux"

    def __init__(self, name: str = "gensyn") -> None:
        super().__init__(name)
        self.alive = False
        self.available = True
        self.fail_create = False
        self.output = ""
        self.created: list[str | None] = []
        self.sent: list[str] = []
        self.destroy_calls = 0

    def is_available(self) -> bool:
        return self.available

    def exists(self) -> bool:
        return self.alive

    def create(self, command: str | None = None) -> SessionHandle:
        if self.fail_create:
            raise SessionCreateError(self.name, "multiplexer unavailable")
        self.alive = True
        self.created.append(command)
        return self.handle()

    def send_command(self, handle: SessionHandle, text: str) -> bool:
        self.sent.append(text)
        return self.alive

    def capture_output(self, handle: SessionHandle) -> str:
        return self.output if self.alive else ""

    def destroy(self, handle: SessionHandle) -> None:
        self.destroy_calls += 1
        self.alive = False


class FakeProcessRegistry(ProcessRegistry):
    """Process table held in a list."""

    def __init__(self, processes: Iterable[ProcessHandle] = ()) -> None:
        self.processes = list(processes)
        self.terminated: list[ProcessHandle] = []
        self.fail = False

    def find_matching(self, patterns: Iterable[str]) -> list[ProcessHandle]:
        if self.fail:
            raise ProbeError("ps unavailable")
        patterns = list(patterns)
        return [p for p in self.processes if matches_any(p.command, patterns)]

    def terminate(self, handle: ProcessHandle) -> bool:
        self.processes.remove(handle)
        self.terminated.append(handle)
        return True


@pytest.fixture(autouse=True)
def no_log_file():
    """Keep tests from writing to a previously configured log file."""
    supervisor_logging.set_log_file(None)
    yield
    supervisor_logging.set_log_file(None)


@pytest.fixture
def work_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """A job working directory with an executable launch script."""
    script = tmp_path / "run_rl_swarm.sh"
    script.write_text("#!/bin/bash\n")
    script.chmod(0o755)
    return tmp_path


@pytest.fixture
def config(work_dir: pathlib.Path) -> SupervisionConfig:
    return SupervisionConfig(
        work_dir=work_dir,
        max_restart_attempts=3,
        restart_delay=30,
        check_interval=60,
        confirm_polls=12,
        confirm_interval=10,
        launch_settle_delay=30,
        cleanup_settle_delay=10,
        session_reset_delay=2,
        drop_caches=False,
    )


@pytest.fixture
def meminfo(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "meminfo"
    path.write_text(MEMINFO_LOW)
    return path


@pytest.fixture
def sessions() -> FakeSessionManager:
    return FakeSessionManager()


@pytest.fixture
def processes() -> FakeProcessRegistry:
    return FakeProcessRegistry()


@pytest.fixture
def job_process() -> ProcessHandle:
    return ProcessHandle(
        pid=4242,
        cpu_percent=55.0,
        command="python -m rgym_exp.runner.swarm_launcher --config-path x",
    )


@pytest.fixture
def health(config, sessions, processes, meminfo) -> HealthMonitor:
    return HealthMonitor(config, sessions, processes, meminfo_path=meminfo)


@pytest.fixture
def controller(config, sessions, processes, health) -> RestartController:
    return RestartController(config, sessions, processes, health=health)


@pytest.fixture
def ctx(config, sessions, processes, meminfo) -> MonitorContext:
    context = MonitorContext(config=config, sessions=sessions, processes=processes)
    context.health.meminfo_path = meminfo
    return context
