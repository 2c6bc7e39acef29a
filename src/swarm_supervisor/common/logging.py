"""Supervisor logging: colored stderr output plus an optional log file."""

from __future__ import annotations

import io
import os
import pathlib
import re
import sys
from datetime import datetime, timezone

# ANSI color codes, only emitted when stderr is a tty.
_RED = "\033[0;31m"
_GREEN = "\033[0;32m"
_YELLOW = "\033[0;33m"
_BLUE = "\033[0;34m"
_BOLD_RED = "\033[1;31m"
_RESET = "\033[0m"

# Regex pattern to match ANSI escape sequences
# Matches: ESC [ ... (letter) and ESC ] ... (BEL or ESC \)
_ANSI_ESCAPE_PATTERN = re.compile(
    r"""
    \x1b  # ESC character
    (?:
        \[  # CSI sequences: ESC [
        [?0-9;]*  # parameters (including ? for private modes)
        [A-Za-z]  # final character
        |
        \]  # OSC sequences: ESC ]
        .*?  # payload
        (?:\x07|\x1b\\)  # terminated by BEL or ESC-backslash
        |
        [()][0-9AB]  # Character set selection: ESC ( or ESC )
        |
        [=>]  # Keypad modes: ESC = or ESC >
    )
    """,
    re.VERBOSE,
)

_log_file: pathlib.Path | None = None


def set_log_file(path: pathlib.Path | str | None) -> None:
    """Mirror every log line into ``path`` (append mode).

    Lines are dropped while the parent directory does not exist. Passing
    None disables the file sink.
    """
    global _log_file
    if path is None:
        _log_file = None
        return
    _log_file = pathlib.Path(path)


def get_log_file() -> pathlib.Path | None:
    return _log_file


def _use_color() -> bool:
    try:
        return os.isatty(sys.stderr.fileno())
    except (OSError, ValueError, io.UnsupportedOperation):
        return False


def _timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("[%Y-%m-%dT%H:%M:%SZ]")


def _write_file(line: str) -> None:
    if _log_file is None:
        return
    try:
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(strip_ansi(line) + "\n")
    except OSError:
        pass


def _emit(color: str, label: str, message: str) -> None:
    ts = _timestamp()
    plain = f"{ts} [{label}] {message}"
    if _use_color():
        line = f"{color}{ts} [{label}]{_RESET} {message}"
    else:
        line = plain
    print(line, file=sys.stderr, flush=True)
    _write_file(plain)


def log_info(message: str) -> None:
    """Log an informational message."""
    _emit(_BLUE, "INFO", message)


def log_warning(message: str) -> None:
    """Log a warning message."""
    _emit(_YELLOW, "WARN", message)


def log_error(message: str) -> None:
    """Log an error message."""
    _emit(_RED, "ERROR", message)


def log_success(message: str) -> None:
    """Log a success message."""
    _emit(_GREEN, "OK", message)


def log_fatal(message: str) -> None:
    """Log a condition that ends the supervisor."""
    _emit(_BOLD_RED, "FATAL", message)


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text.

    Strips terminal control sequences including:
    - CSI sequences (colors, cursor movement, etc.): ESC [ ... m
    - OSC sequences (window titles, etc.): ESC ] ... BEL
    - Character set selection: ESC ( B, ESC ) 0, etc.
    - Keypad modes: ESC =, ESC >

    Args:
        text: Text potentially containing ANSI escape sequences.

    Returns:
        Text with all ANSI escape sequences removed.

    Example:
        >>> strip_ansi("\\x1b[31mred text\\x1b[0m")
        'red text'
    """
    return _ANSI_ESCAPE_PATTERN.sub("", text)
