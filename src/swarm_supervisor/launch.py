"""How the launch command reaches the session.

Two launchers have been used in production: one starts the session with the
command directly, the other opens an idle shell and types the command into
it (useful when the launch script expects an interactive terminal).
"""

from __future__ import annotations

import shlex
import time
from abc import ABC, abstractmethod

from swarm_supervisor.common.logging import log_info, log_warning
from swarm_supervisor.common.session import SessionHandle, SessionManager
from swarm_supervisor.config import SupervisionConfig
from swarm_supervisor.errors import SessionCreateError


# Time for an idle shell to print its prompt before keystrokes arrive
SHELL_READY_DELAY = 2  # seconds


def build_launch_command(config: SupervisionConfig) -> str:
    """Build the shell command that starts the job from its working directory."""
    work_dir = shlex.quote(str(config.work_dir))
    script = f"./{shlex.quote(config.script_name)}"
    venv = config.resolved_venv_path
    if venv.is_dir():
        log_info(f"Using virtual environment: {venv}")
        activate = shlex.quote(str(venv / "bin" / "activate"))
        return f"source {activate} && cd {work_dir} && {script}"
    log_warning(f"Virtual environment not found at {venv}, using system Python")
    return f"cd {work_dir} && {script}"


class LaunchStrategy(ABC):
    name: str = ""

    @abstractmethod
    def launch(self, sessions: SessionManager, command: str) -> SessionHandle:
        """Start ``command`` in the session and return its handle.

        Raises SessionCreateError if the session cannot be created.
        """


class DirectLaunch(LaunchStrategy):
    """Create the session with the launch command as its program."""

    name = "direct"

    def launch(self, sessions: SessionManager, command: str) -> SessionHandle:
        log_info(f"Creating session '{sessions.name}' running the launch command")
        return sessions.create(command)


class SendKeysLaunch(LaunchStrategy):
    """Type the launch command into an idle shell session."""

    name = "send-keys"

    def launch(self, sessions: SessionManager, command: str) -> SessionHandle:
        if sessions.exists():
            handle = sessions.handle()
        else:
            log_info(f"Creating idle shell session '{sessions.name}'")
            handle = sessions.create(None)
            time.sleep(SHELL_READY_DELAY)
        log_info(f"Sending launch command to session '{handle.name}'")
        if not sessions.send_command(handle, command):
            raise SessionCreateError(handle.name, "could not send the launch command")
        return handle


def create_launch_strategy(name: str) -> LaunchStrategy:
    if name == SendKeysLaunch.name:
        return SendKeysLaunch()
    return DirectLaunch()
