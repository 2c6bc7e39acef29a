"""Terminal multiplexer sessions hosting the supervised job.

Wraps the external session manager (GNU screen or tmux) behind one small
interface: create, destroy, check-exists, send input and capture the
visible pane. Every call is a short subprocess with a fixed timeout.
"""

from __future__ import annotations

import os
import pathlib
import re
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from swarm_supervisor.errors import SessionCreateError

if TYPE_CHECKING:
    from swarm_supervisor.config import SupervisionConfig


# Upper bound for any single multiplexer invocation
SESSION_COMMAND_TIMEOUT = 10  # seconds


@dataclass(frozen=True)
class SessionHandle:
    """Opaque reference to a named multiplexer session."""

    name: str


class SessionManager(ABC):
    """Manages the single named session of a supervised job."""

    executable: str = ""

    def __init__(self, name: str) -> None:
        self.name = name

    def handle(self) -> SessionHandle:
        return SessionHandle(self.name)

    def is_available(self) -> bool:
        """Check if the multiplexer executable is on PATH."""
        return shutil.which(self.executable) is not None

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [self.executable, *args],
            capture_output=True,
            text=True,
            check=False,
            timeout=SESSION_COMMAND_TIMEOUT,
        )

    def _run_create(self, *args: str) -> SessionHandle:
        try:
            result = self._run(*args)
        except (OSError, subprocess.SubprocessError) as e:
            raise SessionCreateError(self.name, str(e)) from e
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise SessionCreateError(
                self.name, detail or f"{self.executable} exited {result.returncode}"
            )
        return self.handle()

    @abstractmethod
    def exists(self) -> bool:
        """Check if the session is registered with the multiplexer."""

    @abstractmethod
    def create(self, command: str | None = None) -> SessionHandle:
        """Create a detached session running ``command`` (a shell if None).

        Raises SessionCreateError if the multiplexer cannot create it.
        """

    @abstractmethod
    def send_command(self, handle: SessionHandle, text: str) -> bool:
        """Type ``text`` followed by Enter into the session's active pane."""

    @abstractmethod
    def capture_output(self, handle: SessionHandle) -> str:
        """Snapshot the visible pane text, or "" on failure."""

    @abstractmethod
    def destroy(self, handle: SessionHandle) -> None:
        """Terminate the session. A missing session is not an error."""


class TmuxSessionManager(SessionManager):
    """Session backed by tmux."""

    executable = "tmux"

    def __init__(self, name: str, server_name: str | None = None) -> None:
        super().__init__(name)
        self.server_name = server_name

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        if self.server_name:
            args = ("-L", self.server_name, *args)
        return super()._run(*args)

    def exists(self) -> bool:
        try:
            result = self._run("has-session", "-t", self.name)
            return result.returncode == 0
        except Exception:
            return False

    def create(self, command: str | None = None) -> SessionHandle:
        args = ["new-session", "-d", "-s", self.name]
        if command is not None:
            args += ["bash", "-c", command]
        return self._run_create(*args)

    def send_command(self, handle: SessionHandle, text: str) -> bool:
        try:
            result = self._run("send-keys", "-t", handle.name, text, "C-m")
            return result.returncode == 0
        except Exception:
            return False

    def capture_output(self, handle: SessionHandle) -> str:
        try:
            result = self._run("capture-pane", "-t", handle.name, "-p")
            return result.stdout if result.returncode == 0 else ""
        except Exception:
            return ""

    def destroy(self, handle: SessionHandle) -> None:
        try:
            self._run("kill-session", "-t", handle.name)
        except Exception:
            pass


class ScreenSessionManager(SessionManager):
    """Session backed by GNU screen.

    screen has no way to print a pane to stdout, so captures go through
    ``hardcopy`` into a temporary file under ``capture_dir``.
    """

    executable = "screen"

    def __init__(self, name: str, capture_dir: pathlib.Path | None = None) -> None:
        super().__init__(name)
        self.capture_dir = capture_dir

    def exists(self) -> bool:
        try:
            # screen -list exits non-zero even when sessions exist
            result = self._run("-list")
        except Exception:
            return False
        pattern = re.compile(rf"^\s*\d+\.{re.escape(self.name)}\s", re.MULTILINE)
        return bool(pattern.search(result.stdout or ""))

    def create(self, command: str | None = None) -> SessionHandle:
        args = ["-dmS", self.name]
        if command is not None:
            args += ["bash", "-c", command]
        return self._run_create(*args)

    def send_command(self, handle: SessionHandle, text: str) -> bool:
        try:
            result = self._run("-S", handle.name, "-p", "0", "-X", "stuff", text + "\n")
            return result.returncode == 0
        except Exception:
            return False

    def capture_output(self, handle: SessionHandle) -> str:
        try:
            if self.capture_dir is not None:
                self.capture_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                prefix=".hardcopy-", suffix=".txt", dir=self.capture_dir
            )
            os.close(fd)
        except OSError:
            return ""
        path = pathlib.Path(tmp)
        try:
            result = self._run("-S", handle.name, "-p", "0", "-X", "hardcopy", str(path))
            if result.returncode != 0:
                return ""
            return path.read_text(encoding="utf-8", errors="replace")
        except Exception:
            return ""
        finally:
            path.unlink(missing_ok=True)

    def destroy(self, handle: SessionHandle) -> None:
        try:
            self._run("-S", handle.name, "-X", "quit")
        except Exception:
            pass


def create_session_manager(config: SupervisionConfig) -> SessionManager:
    """Build the session manager selected by ``config.session_backend``."""
    if config.session_backend == "tmux":
        return TmuxSessionManager(config.session_name)
    return ScreenSessionManager(config.session_name, capture_dir=config.logs_dir)
