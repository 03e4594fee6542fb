"""Decode raw trace elements into typed, span-paired TraceEvents."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import IO, Any, TypeAlias

from traceaudit.constants import (
    CATEGORY_FIELDS,
    DEFAULT_READ_CHUNK_BYTES,
    DEFAULT_SNIFF_LIMIT,
    REQUIRED_EVENT_FIELDS,
    Phase,
)
from traceaudit.ingestion.metadata import MetadataCollector
from traceaudit.ingestion.reader import TraceReader
from traceaudit.ingestion.schemas import (
    ParseDiagnostics,
    ParsedTrace,
    TraceEvent,
    TraceEvents,
)
from traceaudit.ingestion.spans import SpanMatcher
from traceaudit.resilience.errors import MalformedTraceError

logger = logging.getLogger(__name__)

EventFilter: TypeAlias = Callable[[TraceEvent], bool]


def has_event_shape(raw: Any) -> bool:
    """True if ``raw`` carries name, cat/category, ph and ts."""
    if not isinstance(raw, Mapping):
        return False
    if not all(f in raw for f in REQUIRED_EVENT_FIELDS):
        return False
    return any(f in raw for f in CATEGORY_FIELDS)


def _micros(value: Any) -> int | None:
    """Coerce a ts/dur value to non-negative integer µs."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value or value < 0:  # NaN or negative
        return None
    return int(value)


def _identity(value: Any) -> int | str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return value
    return None


def _span_id(raw: Mapping[str, Any]) -> str | None:
    span = raw.get("id")
    if span is None:
        id2 = raw.get("id2")
        if isinstance(id2, Mapping):
            span = id2.get("local", id2.get("global"))
    if span is None:
        return None
    scope = raw.get("scope")
    return f"{scope}:{span}" if scope else str(span)


def decode_event(raw: Mapping[str, Any]) -> TraceEvent | None:
    """Build a TraceEvent from a raw element; None if unusable."""
    name = raw.get("name")
    phase = raw.get("ph")
    category = raw.get("cat", raw.get("category", ""))
    timestamp = _micros(raw.get("ts"))
    if (
        not isinstance(name, str)
        or not isinstance(phase, str)
        or timestamp is None
    ):
        return None
    args = raw.get("args")
    return TraceEvent(
        name=name,
        category=category if isinstance(category, str) else "",
        phase=Phase.from_code(phase),
        timestamp_us=timestamp,
        duration_us=_micros(raw.get("dur")),
        pid=_identity(raw.get("pid")),
        tid=_identity(raw.get("tid")),
        span_id=_span_id(raw),
        thread_duration_us=_micros(raw.get("tdur")),
        args=MappingProxyType(args) if isinstance(args, dict) else (
            MappingProxyType({})
        ),
    )


class TraceParser:
    """Parse a trace file into a time-ordered event sequence.

    :meth:`iter_events` is lazy and streams; :meth:`parse` materialises
    the whole trace so detectors only ever see a finished sequence.
    """

    def __init__(
        self,
        source: Path | str | IO[str],
        *,
        chunk_size: int = DEFAULT_READ_CHUNK_BYTES,
        sniff_limit: int = DEFAULT_SNIFF_LIMIT,
    ) -> None:
        self._reader = TraceReader(source, chunk_size=chunk_size)
        self._sniff_limit = sniff_limit
        self.diagnostics = ParseDiagnostics()
        self._metadata = MetadataCollector()

    @property
    def document_metadata(self) -> dict[str, Any]:
        return self._reader.metadata

    def iter_events(self) -> Iterator[TraceEvent]:
        """Yield events lazily; span pairs are emitted at their End.

        Raises MalformedTraceError if no element within the first
        ``sniff_limit`` has event shape, or if the trace is empty.
        """
        diag = self.diagnostics
        matcher = SpanMatcher()
        valid = 0
        for raw in self._reader:
            diag.records_read += 1
            event = decode_event(raw) if has_event_shape(raw) else None
            if event is None:
                diag.skipped_records += 1
                if valid == 0 and diag.records_read >= self._sniff_limit:
                    raise MalformedTraceError(
                        "no trace events with name, cat, ph and ts in "
                        f"the first {self._sniff_limit} elements"
                    )
                continue
            valid += 1
            self._metadata.observe(event)
            emitted = matcher.feed(event)
            if emitted is not None:
                yield emitted

        if diag.records_read == 0:
            raise MalformedTraceError("trace contains no events")
        if valid == 0:
            raise MalformedTraceError(
                "trace contains no events with name, cat, ph and ts"
            )
        yield from matcher.finish()
        diag.unmatched_spans.extend(matcher.unmatched)
        if diag.skipped_records:
            logger.info(
                "event=records_skipped count=%d", diag.skipped_records
            )

    def parse(self, keep: EventFilter | None = None) -> ParsedTrace:
        """Materialise the trace, optionally dropping unneeded events."""
        kept: list[TraceEvent] = [
            e for e in self.iter_events() if keep is None or keep(e)
        ]
        metadata = self._metadata.finish(self._reader.metadata)
        kept.sort(key=lambda e: e.timestamp_us)
        events = TraceEvents(
            events=tuple(kept),
            start_us=metadata.start_us,
            end_us=metadata.end_us,
        )
        logger.info(
            "event=trace_parsed records=%d kept=%d unmatched=%d",
            self.diagnostics.records_read,
            len(kept),
            self.diagnostics.unmatched_count,
        )
        return ParsedTrace(
            events=events,
            metadata=metadata,
            diagnostics=self.diagnostics,
        )


def parse_trace(
    source: Path | str | IO[str],
    *,
    keep: EventFilter | None = None,
    chunk_size: int = DEFAULT_READ_CHUNK_BYTES,
    sniff_limit: int = DEFAULT_SNIFF_LIMIT,
) -> ParsedTrace:
    """Convenience wrapper: build a TraceParser and parse."""
    parser = TraceParser(
        source, chunk_size=chunk_size, sniff_limit=sniff_limit
    )
    return parser.parse(keep=keep)
