"""Tests for export module."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from traceaudit.analysis.schemas import (
    CategorySummary,
    DetectorRun,
    Finding,
    Hotspot,
)
from traceaudit.constants import Category, Severity
from traceaudit.export import export_report
from traceaudit.export.json_export import export_json
from traceaudit.export.markdown import (
    bullet_list,
    export_markdown,
    heading,
    table,
)
from traceaudit.ingestion.schemas import ParseSummary, TraceMetadata
from traceaudit.report.builder import AuditReport, build_report

_WHEN = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


def _make_report() -> AuditReport:
    finding = Finding(
        category=Category.GC_PRESSURE,
        severity=Severity.CRITICAL,
        timestamp_us=1_100_000,
        duration_us=60_000,
        metric=60_000,
    )
    return build_report(
        TraceMetadata(
            site_url="https://site.test/",
            start_us=1_000_000,
            end_us=2_000_000,
            event_count=7,
        ),
        {
            Category.GC_PRESSURE: CategorySummary(
                category=Category.GC_PRESSURE,
                total_count=1,
                worst_finding=finding,
                severity=Severity.CRITICAL,
            ),
        },
        [
            Hotspot(
                window_start_us=1_000_000,
                window_end_us=1_500_000,
                categories=(Category.PAINT_STORM, Category.GC_PRESSURE),
                finding_count=2,
            )
        ],
        parse_summary=ParseSummary(records_read=9, skipped_records=2),
        runs=[DetectorRun(category=Category.CLS, ok=True, skipped=1)],
    )


class TestMarkdownHelpers:
    def test_heading(self) -> None:
        assert heading("Title", 2) == "## Title\n"

    def test_table_escapes_pipes(self) -> None:
        result = table(["A", "B"], [["x|y", "z"]])
        assert "x\\|y" in result
        assert result.splitlines()[1] == "| --- | --- |"

    def test_table_pads_short_rows(self) -> None:
        result = table(["A", "B"], [["only"]])
        assert result.splitlines()[2] == "| only |  |"

    def test_empty(self) -> None:
        assert table([], []) == ""
        assert bullet_list([]) == ""


class TestMarkdownExport:
    def test_front_matter(self) -> None:
        result = export_markdown(_make_report(), "trace.json", _WHEN)
        assert result.startswith("---\ntrace: trace.json\n")
        assert "generated: 2026-01-02T03:04:05+00:00" in result
        assert "flagged: 1" in result
        assert "critical: 1" in result

    def test_metadata_block(self) -> None:
        result = export_markdown(_make_report(), "trace.json", _WHEN)
        assert "**Site:** https://site.test/" in result
        assert "**Trace duration:** 1,000.0 ms" in result

    def test_category_table(self) -> None:
        result = export_markdown(_make_report(), "trace.json", _WHEN)
        assert "| GC Pressure | 1 | 60 ms | CRITICAL |" in result
        assert "| Long Tasks | 0 | - | no issues found |" in result

    def test_hotspots_and_recommendations(self) -> None:
        result = export_markdown(_make_report(), "trace.json", _WHEN)
        assert "| 0 to 500 ms | Paint Storm, GC Pressure | 2 |" in result
        assert "### GC Pressure" in result

    def test_diagnostics(self) -> None:
        result = export_markdown(_make_report(), "trace.json", _WHEN)
        assert "Records skipped (not trace events): 2" in result
        assert "Cumulative Layout Shift: 1 malformed event(s) skipped" in result

    def test_no_findings(self) -> None:
        report = build_report(TraceMetadata(), {})
        result = export_markdown(report, "empty.json", _WHEN)
        assert "No time window combines" in result
        assert "Nothing to fix" in result
        assert "**Site:** unknown" in result


class TestJsonExport:
    def test_envelope(self) -> None:
        data = json.loads(export_json(_make_report(), "trace.json", _WHEN))
        assert data["trace"] == "trace.json"
        assert data["generated_at"] == "2026-01-02T03:04:05+00:00"
        assert data["flagged_count"] == 1
        assert data["critical_count"] == 1

    def test_report_body(self) -> None:
        data = json.loads(export_json(_make_report(), "trace.json", _WHEN))
        rows = data["report"]["categories"]
        assert len(rows) == 13
        gc = next(r for r in rows if r["category"] == "gc_pressure")
        assert gc["severity"] == "critical"
        assert gc["worst_value"] == "60 ms"
        assert data["report"]["hotspots"][0]["categories"] == [
            "paint_storm",
            "gc_pressure",
        ]


class TestExportDispatch:
    @pytest.mark.parametrize("fmt", ["markdown", "json"])
    def test_formats(self, fmt: str) -> None:
        content = export_report(_make_report(), "t.json", fmt, _WHEN)
        assert content

    def test_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="Unsupported format"):
            export_report(_make_report(), "t.json", "pdf")
