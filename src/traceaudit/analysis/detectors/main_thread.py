"""Main-thread blocking: long tasks, script evaluation, long frames."""

from __future__ import annotations

from typing import Any

from traceaudit.analysis.detectors.base import DurationDetector, EventDetector
from traceaudit.analysis.detectors.payloads import ScriptArgs, read_evidence
from traceaudit.analysis.schemas import Finding
from traceaudit.constants import (
    LOAF_CRITICAL_US,
    LOAF_EVENTS,
    LONG_TASK_CRITICAL_US,
    LONG_TASK_WARNING_US,
    MICROS_PER_MILLI,
    RUN_TASK,
    SCRIPT_EVAL_CRITICAL_US,
    SCRIPT_EVAL_EVENTS,
    SCRIPT_EVAL_WARNING_US,
    Category,
    Severity,
)
from traceaudit.ingestion.schemas import TraceEvent


class LongTaskDetector(DurationDetector):
    category = Category.LONG_TASKS
    event_names = frozenset({RUN_TASK})
    warning_us = LONG_TASK_WARNING_US
    critical_us = LONG_TASK_CRITICAL_US

    def describe(self, event: TraceEvent) -> dict[str, Any]:
        return {
            "thread": event.tid,
            "source": event.arg("src_func") or event.arg("src_file"),
        }


class ScriptEvalDetector(DurationDetector):
    category = Category.SCRIPT_EVAL
    event_names = SCRIPT_EVAL_EVENTS
    warning_us = SCRIPT_EVAL_WARNING_US
    critical_us = SCRIPT_EVAL_CRITICAL_US

    def describe(self, event: TraceEvent) -> dict[str, Any]:
        payload = read_evidence(event, ScriptArgs, "data")
        return {"name": event.name, "url": payload.url if payload else None}


class LongAnimationFrameDetector(EventDetector):
    """Every LoAF is a Warning; long ones are Critical.

    Frames without a span duration fall back to ``args.data.duration``
    (milliseconds); frames with neither still count as occurrences.
    """

    category = Category.LONG_ANIMATION_FRAME
    event_names = LOAF_EVENTS
    requires_duration = False

    def inspect(self, event: TraceEvent) -> Finding | None:
        duration = event.duration_us
        if duration is None:
            raw_ms = event.arg("data", "duration")
            if isinstance(raw_ms, (int, float)) and not isinstance(
                raw_ms, bool
            ):
                duration = int(raw_ms * MICROS_PER_MILLI)
        severity = (
            Severity.CRITICAL
            if duration is not None and duration > LOAF_CRITICAL_US
            else Severity.WARNING
        )
        return Finding(
            category=self.category,
            severity=severity,
            timestamp_us=event.timestamp_us,
            duration_us=duration,
            metric=float(duration or 0),
            detail={
                k: v
                for k, v in {
                    "blocking_duration_ms": event.arg(
                        "data", "blockingDuration"
                    ),
                    "script_count": _script_count(event),
                }.items()
                if v is not None
            },
        )


def _script_count(event: TraceEvent) -> int | None:
    scripts = event.arg("data", "scripts")
    return len(scripts) if isinstance(scripts, list) else None
