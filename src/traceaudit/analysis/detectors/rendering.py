"""Rendering pipeline: thrashing, forced reflow, rAF, style, paint."""

from __future__ import annotations

from typing import Any

from traceaudit.analysis.detectors.base import (
    DurationDetector,
    EventDetector,
    above,
    worst,
)
from traceaudit.analysis.detectors.payloads import (
    StyleRecalcArgs,
    read_evidence,
    stack_trace_of,
)
from traceaudit.analysis.detectors.windows import (
    RateWindow,
    count_per_window,
)
from traceaudit.analysis.schemas import DetectorResult, Finding
from traceaudit.constants import (
    DEFAULT_RATE_WINDOW_US,
    FORCED_REFLOW_CRITICAL_COUNT,
    FORCED_REFLOW_CRITICAL_US,
    INVALIDATION_EVENTS,
    LAYOUT,
    LAYOUT_THRASH_CRITICAL_RATE,
    LAYOUT_THRASH_WARNING_RATE,
    MICROS_PER_MILLI,
    PAINT,
    PAINT_CRITICAL_US,
    PAINT_WARNING_US,
    RAF_CRITICAL_RATE,
    RAF_WARNING_RATE,
    REQUEST_ANIMATION_FRAME,
    SHORT_WINDOW_MIN_OCCURRENCES,
    STYLE_RECALC_CRITICAL_ELEMENTS,
    STYLE_RECALC_CRITICAL_US,
    STYLE_RECALC_WARNING_ELEMENTS,
    STYLE_RECALC_WARNING_US,
    UPDATE_LAYOUT_TREE,
    Category,
    Severity,
)
from traceaudit.ingestion.schemas import TraceEvent, TraceEvents
from traceaudit.resilience.errors import DetectorFailure


class _RateDetector(EventDetector):
    """Flag fixed windows whose occurrence rate crosses thresholds."""

    warning_rate: float
    critical_rate: float

    def __init__(self, window_us: int = DEFAULT_RATE_WINDOW_US) -> None:
        self.window_us = window_us

    def occurrences(self, events: TraceEvents) -> list[int]:
        raise NotImplementedError

    def detect(self, events: TraceEvents) -> DetectorResult:
        windows = count_per_window(
            self.occurrences(events),
            events.start_us,
            events.end_us,
            self.window_us,
        )
        return self.result(
            f for f in map(self._window_finding, windows) if f is not None
        )

    def _window_finding(self, window: RateWindow) -> Finding | None:
        if (
            window.width_us < self.window_us
            and window.count < SHORT_WINDOW_MIN_OCCURRENCES
        ):
            return None
        rate = window.rate_per_second
        severity = above(rate, self.warning_rate, self.critical_rate)
        if severity is None:
            return None
        return Finding(
            category=self.category,
            severity=severity,
            timestamp_us=window.start_us,
            duration_us=window.width_us,
            metric=rate,
            detail={
                "occurrences": window.count,
                "window_ms": window.width_us / MICROS_PER_MILLI,
            },
        )


class LayoutThrashingDetector(_RateDetector):
    """Invalidation → Layout pairs per window.

    A pair is an invalidation followed by the next Layout; that Layout
    consumes the pending invalidation, so repeated invalidations before
    one Layout count once.
    """

    category = Category.LAYOUT_THRASHING
    event_names = INVALIDATION_EVENTS | {LAYOUT}
    warning_rate = LAYOUT_THRASH_WARNING_RATE
    critical_rate = LAYOUT_THRASH_CRITICAL_RATE

    def occurrences(self, events: TraceEvents) -> list[int]:
        pairs: list[int] = []
        pending = False
        for event in events.named(*self.event_names):
            if event.name in INVALIDATION_EVENTS:
                pending = True
            elif pending:
                pairs.append(event.timestamp_us)
                pending = False
        return pairs


class RafTickerDetector(_RateDetector):
    category = Category.RAF_TICKER
    event_names = frozenset({REQUEST_ANIMATION_FRAME})
    warning_rate = RAF_WARNING_RATE
    critical_rate = RAF_CRITICAL_RATE

    def occurrences(self, events: TraceEvents) -> list[int]:
        return [e.timestamp_us for e in events.named(*self.event_names)]


class ForcedReflowDetector(EventDetector):
    """Layout events carrying a JS stack trace (synchronous layout).

    Every occurrence is a Warning. Occurrences beyond the fifth, and
    any single reflow over 10ms, are Critical.
    """

    category = Category.FORCED_REFLOW
    event_names = frozenset({LAYOUT})
    requires_duration = False

    def detect(self, events: TraceEvents) -> DetectorResult:
        findings: list[Finding] = []
        skipped = 0
        for event in self.candidates(events):
            try:
                frames = stack_trace_of(event)
            except DetectorFailure:
                skipped += 1
                continue
            if not frames:
                continue
            ordinal = len(findings) + 1
            duration = event.duration_us
            critical = ordinal > FORCED_REFLOW_CRITICAL_COUNT or (
                duration is not None
                and duration > FORCED_REFLOW_CRITICAL_US
            )
            severity = Severity.CRITICAL if critical else Severity.WARNING
            findings.append(
                self.finding(
                    event,
                    severity,
                    float(duration or 0),
                    frame=frames[0].describe(),
                    stack_depth=len(frames),
                    occurrence=ordinal,
                )
            )
        return self.result(findings, skipped)


class StyleRecalcDetector(EventDetector):
    category = Category.STYLE_RECALC
    event_names = frozenset({UPDATE_LAYOUT_TREE})
    requires_duration = False

    def inspect(self, event: TraceEvent) -> Finding | None:
        elements = _element_count(event)
        duration = event.duration_us
        severity = worst(
            above(
                duration or 0,
                STYLE_RECALC_WARNING_US,
                STYLE_RECALC_CRITICAL_US,
            )
            if duration is not None
            else None,
            above(
                elements or 0,
                STYLE_RECALC_WARNING_ELEMENTS,
                STYLE_RECALC_CRITICAL_ELEMENTS,
            ),
        )
        if severity is None:
            return None
        return self.finding(
            event,
            severity,
            float(duration or 0),
            element_count=elements,
        )


class PaintStormDetector(DurationDetector):
    category = Category.PAINT_STORM
    event_names = frozenset({PAINT})
    warning_us = PAINT_WARNING_US
    critical_us = PAINT_CRITICAL_US

    def describe(self, event: TraceEvent) -> dict[str, Any]:
        return {
            "frame": event.arg("data", "frame"),
            "node_id": event.arg("data", "nodeId"),
        }


def _element_count(event: TraceEvent) -> int | None:
    # A bad count leaves the event to be judged on duration alone.
    for path in ((), ("beginData",)):
        payload = read_evidence(event, StyleRecalcArgs, *path)
        if payload is not None and payload.element_count is not None:
            return payload.element_count
    return None
