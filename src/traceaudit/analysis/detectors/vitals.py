"""Core Web Vitals: cumulative layout shift and interaction latency."""

from __future__ import annotations

from traceaudit.analysis.detectors.base import EventDetector, above
from traceaudit.analysis.detectors.payloads import (
    EventTimingArgs,
    LayoutShiftArgs,
    read_payload,
)
from traceaudit.analysis.schemas import DetectorResult, Finding
from traceaudit.constants import (
    CLS_CRITICAL_SCORE,
    CLS_WARNING_SCORE,
    EVENT_TIMING,
    INP_CRITICAL_US,
    INP_WARNING_US,
    LAYOUT_SHIFT,
    MICROS_PER_MILLI,
    Category,
)
from traceaudit.ingestion.schemas import TraceEvent, TraceEvents
from traceaudit.resilience.errors import DetectorFailure


class CLSDetector(EventDetector):
    """Running total of unexpected layout-shift scores over the trace.

    Shifts within the input-exclusion window (``had_recent_input``)
    never contribute. The total is never reset or windowed; one finding
    carries it as the metric.
    """

    category = Category.CLS
    event_names = frozenset({LAYOUT_SHIFT})
    requires_duration = False

    def detect(self, events: TraceEvents) -> DetectorResult:
        cumulative = 0.0
        shifts = 0
        first_ts: int | None = None
        last_ts = 0
        largest = (0.0, 0)
        skipped = 0
        for event in self.candidates(events):
            try:
                shift = read_payload(event, LayoutShiftArgs, "data")
            except DetectorFailure:
                skipped += 1
                continue
            if shift.had_recent_input:
                continue
            cumulative += shift.score
            shifts += 1
            if first_ts is None:
                first_ts = event.timestamp_us
            last_ts = event.timestamp_us
            if shift.score > largest[0]:
                largest = (shift.score, event.timestamp_us)

        severity = above(cumulative, CLS_WARNING_SCORE, CLS_CRITICAL_SCORE)
        if severity is None or first_ts is None:
            return self.result((), skipped)
        finding = Finding(
            category=self.category,
            severity=severity,
            timestamp_us=first_ts,
            duration_us=last_ts - first_ts,
            metric=cumulative,
            detail={
                "shift_count": shifts,
                "largest_shift": largest[0],
                "largest_shift_ts_us": largest[1],
            },
        )
        return self.result((finding,), skipped)


class INPDetector(EventDetector):
    """Slow interactions; the worst one is the page's INP."""

    category = Category.INP
    event_names = frozenset({EVENT_TIMING})
    requires_duration = False

    def inspect(self, event: TraceEvent) -> Finding | None:
        timing = read_payload(event, EventTimingArgs, "data")
        duration = event.duration_us
        if duration is None and timing.duration_ms is not None:
            duration = int(timing.duration_ms * MICROS_PER_MILLI)
        if duration is None:
            return None
        severity = above(duration, INP_WARNING_US, INP_CRITICAL_US)
        if severity is None:
            return None
        return Finding(
            category=self.category,
            severity=severity,
            timestamp_us=event.timestamp_us,
            duration_us=duration,
            metric=float(duration),
            detail={
                k: v
                for k, v in {
                    "interaction_type": timing.type,
                    "interaction_id": timing.interaction_id,
                }.items()
                if v is not None
            },
        )
