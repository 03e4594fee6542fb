"""Error taxonomy and classification for structured error handling.

Classifies exceptions by category to enable:
- Structured logging (which errors abort the run vs degrade it)
- Informative user messages (bad input vs bad record)
- CLI exit codes
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class TraceAuditError(Exception):
    """Base class for all traceaudit errors."""


class MalformedTraceError(TraceAuditError):
    """The input is not valid JSON or has no trace-event shape.

    Fatal: raised before any detector runs.
    """

    def __init__(self, reason: str, *, offset: int | None = None) -> None:
        self.reason = reason
        self.offset = offset
        msg = reason if offset is None else f"{reason} (at byte {offset})"
        super().__init__(msg)


class DetectorFailure(TraceAuditError):
    """A single event carried a payload a detector could not use.

    Non-fatal: the detector skips the event and counts it.
    """

    def __init__(self, event_name: str, reason: str) -> None:
        self.event_name = event_name
        self.reason = reason
        super().__init__(f"{event_name}: {reason}")


class UnmatchedSpanWarning(TraceAuditError, Warning):
    """A Begin without a matching End, or vice versa.

    Recorded in parse diagnostics, never raised.
    """

    def __init__(
        self,
        name: str,
        kind: str,
        timestamp_us: int,
        thread: Any = None,
    ) -> None:
        self.name = name
        self.kind = kind  # "begin" or "end"
        self.timestamp_us = timestamp_us
        self.thread = thread
        super().__init__(
            f"unmatched {kind} for {name!r} at {timestamp_us}us"
        )


class ErrorClass(Enum):
    FATAL = "fatal"  # input unusable, abort the run
    DEGRADED = "degraded"  # partial loss, keep going
    UNKNOWN = "unknown"  # unclassified


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an error to determine handling strategy."""
    if isinstance(error, MalformedTraceError):
        return ErrorClass.FATAL
    if isinstance(error, (DetectorFailure, UnmatchedSpanWarning)):
        return ErrorClass.DEGRADED
    if isinstance(error, (OSError, UnicodeDecodeError)):
        return ErrorClass.FATAL
    return ErrorClass.UNKNOWN


def is_fatal(error: BaseException) -> bool:
    """Return True if the error must abort the run."""
    return classify_error(error) is ErrorClass.FATAL
