"""Garbage-collection pauses."""

from __future__ import annotations

from traceaudit.analysis.detectors.base import EventDetector, above
from traceaudit.analysis.detectors.payloads import GCArgs, read_evidence
from traceaudit.analysis.schemas import Finding
from traceaudit.constants import (
    MAJOR_GC_CRITICAL_US,
    MAJOR_GC_EVENTS,
    MAJOR_GC_WARNING_US,
    MINOR_GC_EVENTS,
    MINOR_GC_WARNING_US,
    Category,
)
from traceaudit.ingestion.schemas import TraceEvent


class GCPressureDetector(EventDetector):
    """Major GC over 10ms warns, over 50ms is critical; minor GC over
    5ms warns and never escalates."""

    category = Category.GC_PRESSURE
    event_names = MAJOR_GC_EVENTS | MINOR_GC_EVENTS

    def inspect(self, event: TraceEvent) -> Finding | None:
        duration = event.duration_us or 0
        major = event.name in MAJOR_GC_EVENTS
        if major:
            severity = above(duration, MAJOR_GC_WARNING_US, MAJOR_GC_CRITICAL_US)
        else:
            severity = above(duration, MINOR_GC_WARNING_US)
        if severity is None:
            return None
        heap = read_evidence(event, GCArgs) or GCArgs()
        reclaimed = (
            heap.heap_before - heap.heap_after
            if heap.heap_before is not None and heap.heap_after is not None
            else None
        )
        return self.finding(
            event,
            severity,
            float(duration),
            kind="major" if major else "minor",
            heap_before=heap.heap_before,
            heap_after=heap.heap_after,
            reclaimed_bytes=reclaimed,
        )
