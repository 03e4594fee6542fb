"""Trace ingestion: streaming JSON reader, span pairing, metadata."""

from traceaudit.ingestion.parser import (
    TraceParser,
    decode_event,
    has_event_shape,
    parse_trace,
)
from traceaudit.ingestion.reader import TraceReader
from traceaudit.ingestion.schemas import (
    ParseDiagnostics,
    ParsedTrace,
    ParseSummary,
    ProcessInfo,
    TraceEvent,
    TraceEvents,
    TraceMetadata,
)

__all__ = [
    "ParseDiagnostics",
    "ParseSummary",
    "ParsedTrace",
    "ProcessInfo",
    "TraceEvent",
    "TraceEvents",
    "TraceMetadata",
    "TraceParser",
    "TraceReader",
    "decode_event",
    "has_event_shape",
    "parse_trace",
]
