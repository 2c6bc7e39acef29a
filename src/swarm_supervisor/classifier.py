"""Failure classification from captured pane output.

Signatures are checked top to bottom and the first match wins, so a
traceback that also mentions a P2P daemon failure is reported as
``P2P_CONNECTION`` rather than a generic error. Patterns are matched per
line, like ``grep``.
"""

from __future__ import annotations

import re

from swarm_supervisor.common.logging import strip_ansi
from swarm_supervisor.models import FailureClass


SIGNATURES: tuple[tuple[FailureClass, re.Pattern[str]], ...] = (
    (FailureClass.DIMENSION_MISMATCH, re.compile(r"expected sequence of length.*at dim")),
    (FailureClass.P2P_CONNECTION, re.compile(r"P2PDaemonError|Daemon failed to start")),
    (FailureClass.MEMORY_EXHAUSTED, re.compile(r"out of memory|OOM|MemoryError")),
    (FailureClass.GENERIC, re.compile(r"Error|Exception|Traceback")),
)

_HINTS = {
    FailureClass.DIMENSION_MISMATCH: "Dimension mismatch - the training config may need adjusting",
    FailureClass.P2P_CONNECTION: "P2P connection failure - the peer identity will be regenerated",
    FailureClass.MEMORY_EXHAUSTED: "Out of memory - memory will be cleaned up before restart",
    FailureClass.GENERIC: "Generic error - performing a standard restart",
    FailureClass.UNKNOWN: "No known error signature found - performing a standard restart",
}


def classify(text: str) -> FailureClass:
    """Return the failure class of the first signature found in ``text``."""
    if not text:
        return FailureClass.UNKNOWN
    cleaned = strip_ansi(text)
    for failure, pattern in SIGNATURES:
        if pattern.search(cleaned):
            return failure
    return FailureClass.UNKNOWN


def describe(failure: FailureClass) -> str:
    """Operator-facing hint for a failure class."""
    return _HINTS[failure]
