"""Shared test fixtures — trace-event factories and trace files."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

import pytest

from traceaudit.constants import Phase
from traceaudit.ingestion.schemas import TraceEvent, TraceEvents

DEFAULT_CAT = "devtools.timeline"


def raw_event(
    name: str,
    ts: int,
    dur: int | None = None,
    *,
    ph: str = "X",
    cat: str = DEFAULT_CAT,
    pid: int = 1,
    tid: int = 1,
    args: Mapping[str, Any] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a raw trace-event dict as Chrome writes it."""
    event: dict[str, Any] = {
        "name": name,
        "cat": cat,
        "ph": ph,
        "ts": ts,
        "pid": pid,
        "tid": tid,
        "args": dict(args or {}),
    }
    if dur is not None:
        event["dur"] = dur
    event.update(extra)
    return event


def make_event(
    name: str,
    ts: int,
    dur: int | None = None,
    *,
    phase: Phase = Phase.COMPLETE,
    args: Mapping[str, Any] | None = None,
    tid: int = 1,
) -> TraceEvent:
    """Build a decoded TraceEvent for detector tests."""
    return TraceEvent(
        name=name,
        category=DEFAULT_CAT,
        phase=phase,
        timestamp_us=ts,
        duration_us=dur,
        pid=1,
        tid=tid,
        args=args or {},
    )


def events_of(*events: TraceEvent, start: int | None = None,
              end: int | None = None) -> TraceEvents:
    """TraceEvents over ``events``; extent overridable."""
    seq = TraceEvents.of(events)
    if start is None and end is None:
        return seq
    return TraceEvents(
        events=seq.events,
        start_us=seq.start_us if start is None else start,
        end_us=seq.end_us if end is None else end,
    )


def write_trace(
    path: Path,
    events: Iterable[Mapping[str, Any]],
    *,
    bare: bool = False,
    **document: Any,
) -> Path:
    """Write a trace file in object (default) or bare-array shape."""
    items = list(events)
    payload: Any = items if bare else {"traceEvents": items, **document}
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def trace_file(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture: ``trace_file(events, name=..., **document)``."""

    def _write(
        events: Iterable[Mapping[str, Any]],
        name: str = "trace.json",
        **kwargs: Any,
    ) -> Path:
        return write_trace(tmp_path / name, events, **kwargs)

    return _write


@pytest.fixture
def busy_trace_events() -> list[dict[str, Any]]:
    """A small trace that trips several categories at once."""
    return [
        raw_event(
            "process_name", 0, ph="M", cat="__metadata",
            args={"name": "Renderer"},
        ),
        raw_event(
            "TracingStartedInBrowser", 1_000_000, ph="I",
            args={"data": {"frames": [
                {"frame": "F1", "url": "https://example.com/"},
            ]}},
        ),
        raw_event("RunTask", 1_000_000, 250_000),
        raw_event("MajorGC", 1_100_000, 60_000,
                  args={"usedHeapSizeBefore": 9_000_000,
                        "usedHeapSizeAfter": 4_000_000}),
        raw_event("Paint", 1_200_000, 20_000,
                  args={"data": {"frame": "F1", "nodeId": 7}}),
        raw_event(
            "ResourceReceiveResponse", 1_300_000, ph="I",
            args={"data": {"statusCode": 503, "url": "https://example.com/api",
                           "requestId": "r1"}},
        ),
        raw_event("RunTask", 2_900_000, 10_000),
    ]
