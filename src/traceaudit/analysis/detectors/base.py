"""Detector contract and shared threshold helpers."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, ClassVar, Protocol

from traceaudit.analysis.schemas import DetectorResult, Finding
from traceaudit.constants import Category, Severity
from traceaudit.ingestion.schemas import TraceEvent, TraceEvents
from traceaudit.resilience.errors import DetectorFailure

logger = logging.getLogger(__name__)


class Detector(Protocol):
    """Interface every category detector must satisfy.

    ``detect`` is pure: it reads the finished event sequence and
    returns a new result without touching shared state.
    """

    category: Category
    event_names: frozenset[str]

    def detect(self, events: TraceEvents) -> DetectorResult: ...


def above(
    value: float,
    warning: float,
    critical: float | None = None,
) -> Severity | None:
    """Strict ``>`` threshold classification."""
    if critical is not None and value > critical:
        return Severity.CRITICAL
    if value > warning:
        return Severity.WARNING
    return None


def worst(*severities: Severity | None) -> Severity | None:
    """Highest of several severities (None = not flagged)."""
    if Severity.CRITICAL in severities:
        return Severity.CRITICAL
    if Severity.WARNING in severities:
        return Severity.WARNING
    return None


class EventDetector:
    """Per-event detector: one candidate event → at most one finding.

    Subclasses set ``category`` and ``event_names`` and implement
    :meth:`inspect`. A ``DetectorFailure`` raised for one event skips
    that event and bumps the skip counter; the pass continues.
    """

    category: ClassVar[Category]
    event_names: ClassVar[frozenset[str]]
    requires_duration: ClassVar[bool] = True

    def detect(self, events: TraceEvents) -> DetectorResult:
        findings: list[Finding] = []
        skipped = 0
        for event in self.candidates(events):
            try:
                finding = self.inspect(event)
            except DetectorFailure as exc:
                skipped += 1
                logger.debug(
                    "event=detector_skip category=%s reason=%s",
                    self.category,
                    exc,
                )
                continue
            if finding is not None:
                findings.append(finding)
        return self.result(findings, skipped)

    def candidates(self, events: TraceEvents) -> Iterable[TraceEvent]:
        for event in events.named(*self.event_names):
            if self.requires_duration and event.duration_us is None:
                continue
            yield event

    def inspect(self, event: TraceEvent) -> Finding | None:
        raise NotImplementedError

    def result(
        self, findings: Iterable[Finding], skipped: int = 0
    ) -> DetectorResult:
        return DetectorResult(
            category=self.category,
            findings=tuple(findings),
            skipped=skipped,
        )

    def finding(
        self,
        event: TraceEvent,
        severity: Severity,
        metric: float,
        **detail: Any,
    ) -> Finding:
        return Finding(
            category=self.category,
            severity=severity,
            timestamp_us=event.timestamp_us,
            duration_us=event.duration_us,
            metric=metric,
            detail={k: v for k, v in detail.items() if v is not None},
        )


class DurationDetector(EventDetector):
    """Flag events whose duration exceeds fixed thresholds."""

    warning_us: ClassVar[int]
    critical_us: ClassVar[int | None] = None

    def inspect(self, event: TraceEvent) -> Finding | None:
        duration = event.duration_us or 0
        severity = above(duration, self.warning_us, self.critical_us)
        if severity is None:
            return None
        return self.finding(
            event, severity, float(duration), **self.describe(event)
        )

    def describe(self, event: TraceEvent) -> dict[str, Any]:
        """Category-specific evidence attached to the finding."""
        return {"name": event.name}
