"""Error taxonomy shared by the parser, detectors, and CLI."""

from traceaudit.resilience.errors import (
    DetectorFailure,
    ErrorClass,
    MalformedTraceError,
    TraceAuditError,
    UnmatchedSpanWarning,
    classify_error,
    is_fatal,
)

__all__ = [
    "DetectorFailure",
    "ErrorClass",
    "MalformedTraceError",
    "TraceAuditError",
    "UnmatchedSpanWarning",
    "classify_error",
    "is_fatal",
]
