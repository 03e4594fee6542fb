"""Typed records produced by the trace parser."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from traceaudit.constants import UNKNOWN_SITE, Phase
from traceaudit.resilience.errors import UnmatchedSpanWarning

_EMPTY_ARGS: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class TraceEvent:
    """One decoded trace event.

    ``duration_us`` is None for events without a known duration
    (instants, counters, unmatched Begin events).
    """

    name: str
    category: str
    phase: Phase
    timestamp_us: int
    duration_us: int | None = None
    pid: int | str | None = None
    tid: int | str | None = None
    span_id: str | None = None
    thread_duration_us: int | None = None
    args: Mapping[str, Any] = field(default_factory=lambda: _EMPTY_ARGS)

    @property
    def end_us(self) -> int:
        return self.timestamp_us + (self.duration_us or 0)

    def arg(self, *path: str) -> Any:
        """Walk nested ``args`` dicts; None when any step is missing."""
        node: Any = self.args
        for key in path:
            if not isinstance(node, Mapping):
                return None
            node = node.get(key)
            if node is None:
                return None
        return node


@dataclass(frozen=True)
class TraceEvents(Sequence[TraceEvent]):
    """Immutable, time-ordered event sequence plus the trace extent.

    The extent covers every parsed event, including ones filtered out
    before detection, so rate windows align to the real trace bounds.
    """

    events: tuple[TraceEvent, ...] = ()
    start_us: int = 0
    end_us: int = 0

    def named(self, *names: str) -> Iterator[TraceEvent]:
        wanted = frozenset(names)
        return (e for e in self.events if e.name in wanted)

    def __getitem__(self, index):  # type: ignore[override]
        return self.events[index]

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[TraceEvent]:
        return iter(self.events)

    @classmethod
    def of(cls, events: Sequence[TraceEvent]) -> TraceEvents:
        """Build from events, sorting and deriving the extent."""
        ordered = tuple(sorted(events, key=lambda e: e.timestamp_us))
        if not ordered:
            return cls()
        return cls(
            events=ordered,
            start_us=ordered[0].timestamp_us,
            end_us=max(e.end_us for e in ordered),
        )


class ProcessInfo(BaseModel):
    """A process named by a ``process_name`` metadata event."""

    model_config = ConfigDict(frozen=True)

    pid: int | str
    name: str


class TraceMetadata(BaseModel):
    """Descriptive facts about the trace as a whole."""

    model_config = ConfigDict(frozen=True)

    site_url: str = UNKNOWN_SITE
    start_us: int = 0
    end_us: int = 0
    event_count: int = 0
    processes: tuple[ProcessInfo, ...] = ()
    source: str | None = None

    @property
    def duration_us(self) -> int:
        return max(0, self.end_us - self.start_us)


@dataclass
class ParseDiagnostics:
    """Non-fatal problems seen while parsing."""

    records_read: int = 0
    skipped_records: int = 0
    unmatched_spans: list[UnmatchedSpanWarning] = field(
        default_factory=lambda: list[UnmatchedSpanWarning]()
    )

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched_spans)


@dataclass(frozen=True)
class ParsedTrace:
    """Fully materialised parse result handed to the detectors."""

    events: TraceEvents
    metadata: TraceMetadata
    diagnostics: ParseDiagnostics


class ParseSummary(BaseModel):
    """Serialisable view of ParseDiagnostics for reports."""

    records_read: int = 0
    skipped_records: int = 0
    unmatched_spans: int = 0
    unmatched_examples: list[str] = Field(
        default_factory=lambda: list[str]()
    )

    @classmethod
    def from_diagnostics(
        cls, diag: ParseDiagnostics, limit: int = 5
    ) -> ParseSummary:
        return cls(
            records_read=diag.records_read,
            skipped_records=diag.skipped_records,
            unmatched_spans=diag.unmatched_count,
            unmatched_examples=[
                str(w) for w in diag.unmatched_spans[:limit]
            ],
        )
