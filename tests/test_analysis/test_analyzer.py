"""Tests for running the detector registry over a trace."""

from __future__ import annotations

from typing import ClassVar

import pytest

from tests.conftest import events_of, make_event
from traceaudit.analysis.analyzer import detect_sequential, run_detectors
from traceaudit.analysis.detectors import DETECTORS, build_detectors
from traceaudit.analysis.schemas import DetectorResult
from traceaudit.constants import Category
from traceaudit.ingestion.schemas import TraceEvents


class _ExplodingDetector:
    category: ClassVar[Category] = Category.PAINT_STORM
    event_names: ClassVar[frozenset[str]] = frozenset({"Paint"})

    def detect(self, events: TraceEvents) -> DetectorResult:
        msg = "detector bug"
        raise RuntimeError(msg)


def _events() -> TraceEvents:
    return events_of(
        make_event("RunTask", 0, 250_000),
        make_event("Paint", 10_000, 20_000),
        make_event("MajorGC", 20_000, 60_000),
        make_event(
            "ResourceReceiveResponse", 30_000,
            args={"data": {"url": "https://a.test/"}},
        ),
    )


class TestRunDetectors:
    @pytest.mark.asyncio
    async def test_all_detectors_run_in_registry_order(self) -> None:
        analysis = await run_detectors(_events())
        assert [r.category for r in analysis.runs] == list(Category)
        assert all(r.ok for r in analysis.runs)
        flagged = {f.category for f in analysis.findings}
        assert flagged == {
            Category.LONG_TASKS,
            Category.PAINT_STORM,
            Category.GC_PRESSURE,
        }

    @pytest.mark.asyncio
    async def test_skipped_events_counted(self) -> None:
        analysis = await run_detectors(_events())
        runs = {r.category: r for r in analysis.runs}
        assert runs[Category.NETWORK_ERRORS].skipped == 1
        assert runs[Category.NETWORK_ERRORS].finding_count == 0

    @pytest.mark.asyncio
    async def test_failing_detector_is_isolated(self) -> None:
        detectors = (
            *build_detectors(categories=[Category.LONG_TASKS]),
            _ExplodingDetector(),
            *build_detectors(categories=[Category.GC_PRESSURE]),
        )
        analysis = await run_detectors(_events(), detectors)
        runs = {r.category: r for r in analysis.runs}
        assert runs[Category.LONG_TASKS].ok
        assert runs[Category.GC_PRESSURE].ok
        assert not runs[Category.PAINT_STORM].ok
        assert runs[Category.PAINT_STORM].error == "detector bug"
        assert {f.category for f in analysis.findings} == {
            Category.LONG_TASKS,
            Category.GC_PRESSURE,
        }

    @pytest.mark.asyncio
    async def test_bounded_concurrency_same_result(self) -> None:
        unbounded = await run_detectors(_events())
        bounded = await run_detectors(_events(), max_concurrency=1)
        assert bounded.findings == unbounded.findings


class TestDetectSequential:
    def test_matches_parallel_findings(self) -> None:
        results = detect_sequential(_events(), DETECTORS)
        assert [r.category for r in results] == list(Category)
        assert sum(len(r.findings) for r in results) == 3
