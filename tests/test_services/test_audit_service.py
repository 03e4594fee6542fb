"""Tests for end-to-end audit orchestration."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from tests.conftest import raw_event
from traceaudit.config import Settings
from traceaudit.constants import (
    NO_ISSUES_MARKER,
    Category,
    Severity,
    StageProgress,
)
from traceaudit.resilience.errors import MalformedTraceError
from traceaudit.services.audit_service import AuditResult, run_audit
from traceaudit.services.events import StageEvent


async def _audit(path: Path, **kwargs: Any) -> AuditResult:
    return await run_audit(path, Settings(), **kwargs)


class TestScenarios:
    @pytest.mark.asyncio
    async def test_single_long_task(
        self, trace_file: Callable[..., Path]
    ) -> None:
        path = trace_file([raw_event("RunTask", 0, 250_000)])
        result = await _audit(path)
        summary = result.summaries[Category.LONG_TASKS]
        assert summary.total_count == 1
        assert summary.severity == Severity.CRITICAL
        assert summary.worst_finding is not None
        assert summary.worst_finding.metric == 250_000

    @pytest.mark.asyncio
    async def test_raf_burst(self, trace_file: Callable[..., Path]) -> None:
        path = trace_file([
            raw_event("RequestAnimationFrame", i * 100_000 // 14, ph="I")
            for i in range(15)
        ])
        result = await _audit(path)
        summary = result.summaries[Category.RAF_TICKER]
        assert summary.severity == Severity.WARNING

    @pytest.mark.asyncio
    async def test_repeated_base_url(
        self, trace_file: Callable[..., Path]
    ) -> None:
        path = trace_file([
            raw_event(
                "ResourceSendRequest", i * 1_000, ph="I",
                args={"data": {"url": f"https://api.test/q?n={i}"}},
            )
            for i in range(4)
        ])
        result = await _audit(path)
        summary = result.summaries[Category.REDUNDANT_FETCHES]
        assert summary.severity == Severity.WARNING

    @pytest.mark.asyncio
    async def test_compounding_hotspot(
        self, trace_file: Callable[..., Path]
    ) -> None:
        path = trace_file([
            raw_event("MajorGC", 0, 60_000),
            raw_event("Paint", 200_000, 20_000),
        ])
        result = await _audit(path)
        (hotspot,) = result.hotspots
        assert set(hotspot.categories) == {
            Category.GC_PRESSURE,
            Category.PAINT_STORM,
        }


    @pytest.mark.asyncio
    async def test_unclosed_task_has_no_duration(
        self, trace_file: Callable[..., Path]
    ) -> None:
        path = trace_file([
            raw_event("RunTask", 0, ph="B"),
            raw_event("Paint", 400_000, 100),
        ])
        result = await _audit(path)
        assert Category.LONG_TASKS not in result.summaries
        rows = {row.category: row for row in result.report.categories}
        assert rows[Category.LONG_TASKS].status == NO_ISSUES_MARKER
        parse = result.report.diagnostics.parse
        assert parse.unmatched_spans == 1
        assert "RunTask" in parse.unmatched_examples[0]

class TestAuditRun:
    @pytest.mark.asyncio
    async def test_report_built(
        self,
        trace_file: Callable[..., Path],
        busy_trace_events: list[dict[str, Any]],
    ) -> None:
        result = await _audit(trace_file(busy_trace_events))
        report = result.report
        assert report.metadata.site_url == "https://example.com/"
        assert report.metadata.processes == ["1: Renderer"]
        flagged = {row.category for row in report.flagged}
        assert flagged == {
            Category.LONG_TASKS,
            Category.PAINT_STORM,
            Category.GC_PRESSURE,
            Category.NETWORK_ERRORS,
        }
        assert [s.name for s in result.stages] == [
            "parse",
            "detect",
            "aggregate",
            "hotspots",
            "report",
        ]
        assert all(s.ok for s in result.stages)
        assert result.total_duration_ms >= 0

    @pytest.mark.asyncio
    async def test_hotspot_times_relative_to_start(
        self,
        trace_file: Callable[..., Path],
        busy_trace_events: list[dict[str, Any]],
    ) -> None:
        result = await _audit(trace_file(busy_trace_events))
        (hotspot,) = result.report.hotspots
        assert hotspot.start_ms == 0
        assert hotspot.finding_count == 4

    @pytest.mark.asyncio
    async def test_idempotent(
        self,
        trace_file: Callable[..., Path],
        busy_trace_events: list[dict[str, Any]],
    ) -> None:
        path = trace_file(busy_trace_events)
        first = await _audit(path)
        second = await _audit(path)
        assert json.dumps(
            {str(k): v.model_dump(mode="json")
             for k, v in first.summaries.items()},
            sort_keys=True,
        ) == json.dumps(
            {str(k): v.model_dump(mode="json")
             for k, v in second.summaries.items()},
            sort_keys=True,
        )
        assert first.hotspots == second.hotspots
        assert first.report == second.report

    @pytest.mark.asyncio
    async def test_category_selection(
        self,
        trace_file: Callable[..., Path],
        busy_trace_events: list[dict[str, Any]],
    ) -> None:
        result = await _audit(
            trace_file(busy_trace_events),
            categories=[Category.GC_PRESSURE],
        )
        assert list(result.summaries) == [Category.GC_PRESSURE]
        status = {r.category: r.status for r in result.report.categories}
        assert status[Category.GC_PRESSURE] == "flagged"
        assert status[Category.LONG_TASKS] == "not run"

    @pytest.mark.asyncio
    async def test_progress_events(
        self,
        trace_file: Callable[..., Path],
        busy_trace_events: list[dict[str, Any]],
    ) -> None:
        events: list[StageEvent] = []
        await _audit(trace_file(busy_trace_events), on_progress=events.append)
        running = [e.name for e in events if e.status == StageProgress.RUNNING]
        done = [e.name for e in events if e.status == StageProgress.DONE]
        assert running == ["parse", "detect", "aggregate", "hotspots", "report"]
        assert done == running
        assert events[0].label == "Parsing trace"

    @pytest.mark.asyncio
    async def test_run_log_written(
        self,
        tmp_path: Path,
        trace_file: Callable[..., Path],
        busy_trace_events: list[dict[str, Any]],
    ) -> None:
        log_dir = tmp_path / "logs"
        result = await run_audit(
            trace_file(busy_trace_events), Settings(log_dir=log_dir)
        )
        lines = [
            json.loads(line)
            for line in (log_dir / "audit.log").read_text().splitlines()
        ]
        assert [r["type"] for r in lines][-1] == "run"
        assert {r["run_id"] for r in lines} == {result.run_id}
        assert lines[-1]["finding_count"] == len(result.findings)


class TestFatalInput:
    @pytest.mark.asyncio
    async def test_empty_trace_raises(
        self, trace_file: Callable[..., Path]
    ) -> None:
        with pytest.raises(MalformedTraceError):
            await _audit(trace_file([]))

    @pytest.mark.asyncio
    async def test_parse_error_reported(
        self, tmp_path: Path
    ) -> None:
        path = tmp_path / "broken.json"
        path.write_text('{"traceEvents": [', encoding="utf-8")
        events: list[StageEvent] = []
        with pytest.raises(MalformedTraceError):
            await _audit(path, on_progress=events.append)
        assert events[-1].name == "parse"
        assert events[-1].status == StageProgress.ERROR
