"""Assemble summaries, hotspots and metadata into an AuditReport."""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence

from pydantic import BaseModel, Field

from traceaudit.analysis.schemas import CategorySummary, DetectorRun, Hotspot
from traceaudit.constants import (
    CATEGORY_TITLES,
    CATEGORY_UNITS,
    DETECTOR_FAILED_MARKER,
    MICROS_PER_MILLI,
    NO_ISSUES_MARKER,
    NOT_RUN_MARKER,
    UNKNOWN_SITE,
    Category,
    MetricUnit,
    Severity,
)
from traceaudit.ingestion.schemas import ParseSummary, TraceMetadata
from traceaudit.report.recommendations import recommendation_for


class ReportMetadata(BaseModel):
    site_url: str = UNKNOWN_SITE
    duration_ms: float = 0.0
    event_count: int = 0
    processes: list[str] = Field(default_factory=lambda: list[str]())
    source: str | None = None


class CategoryRow(BaseModel):
    """One line of the category table; every category gets one."""

    category: Category
    title: str
    status: str  # "flagged" or one of the *_MARKER strings
    count: int = 0
    severity: Severity | None = None
    worst_value: str | None = None
    worst_at_ms: float | None = None
    worst_detail: dict[str, object] = Field(
        default_factory=lambda: dict[str, object]()
    )

    @property
    def flagged(self) -> bool:
        return self.severity is not None


class HotspotRow(BaseModel):
    start_ms: float
    end_ms: float
    categories: list[Category]
    finding_count: int


class ReportDiagnostics(BaseModel):
    parse: ParseSummary = Field(default_factory=ParseSummary)
    skipped_events: dict[Category, int] = Field(
        default_factory=lambda: dict[Category, int]()
    )
    failed_detectors: dict[Category, str] = Field(
        default_factory=lambda: dict[Category, str]()
    )


class AuditReport(BaseModel):
    """Structured diagnostic report for one trace."""

    metadata: ReportMetadata
    categories: list[CategoryRow]
    hotspots: list[HotspotRow] = Field(
        default_factory=lambda: list[HotspotRow]()
    )
    recommendations: dict[Category, str] = Field(
        default_factory=lambda: dict[Category, str]()
    )
    diagnostics: ReportDiagnostics = Field(default_factory=ReportDiagnostics)

    @property
    def flagged(self) -> list[CategoryRow]:
        return [row for row in self.categories if row.flagged]

    @property
    def critical_count(self) -> int:
        return sum(
            1 for row in self.categories if row.severity == Severity.CRITICAL
        )


def to_ms(micros: float) -> float:
    """µs to ms, unrounded."""
    return micros / MICROS_PER_MILLI


def format_metric(category: Category, metric: float) -> str:
    """Human-readable worst value for the category table."""
    unit = CATEGORY_UNITS[category]
    if unit is MetricUnit.MICROSECONDS:
        return f"{to_ms(metric):g} ms"
    if unit is MetricUnit.RATE:
        return f"{metric:.1f}/s"
    if unit is MetricUnit.SCORE:
        return f"{metric:.3f}"
    if unit is MetricUnit.STATUS_CODE:
        return f"HTTP {int(metric)}"
    return f"{int(metric)} requests"


def _category_row(
    category: Category,
    summary: CategorySummary | None,
    status_if_empty: str,
    origin_us: int = 0,
) -> CategoryRow:
    title = CATEGORY_TITLES[category]
    if (
        summary is None
        or summary.total_count == 0
        or summary.worst_finding is None
    ):
        return CategoryRow(
            category=category, title=title, status=status_if_empty
        )
    worst = summary.worst_finding
    return CategoryRow(
        category=category,
        title=title,
        status="flagged",
        count=summary.total_count,
        severity=summary.severity,
        worst_value=format_metric(category, worst.metric),
        worst_at_ms=to_ms(worst.timestamp_us - origin_us),
        worst_detail=dict(worst.detail),
    )


def build_report(
    metadata: TraceMetadata | None,
    summaries: Mapping[Category, CategorySummary],
    hotspots: Sequence[Hotspot] = (),
    *,
    parse_summary: ParseSummary | None = None,
    runs: Sequence[DetectorRun] = (),
    categories_run: Collection[Category] | None = None,
) -> AuditReport:
    """Build the report.

    Every category appears exactly once, in registry order. Categories
    without findings carry "no issues found"; categories excluded from
    the run carry "not run"; a detector that crashed carries "detector
    failed". Missing metadata falls back to "unknown".
    """
    failed = {r.category: r.error or "" for r in runs if not r.ok}
    skipped = {r.category: r.skipped for r in runs if r.skipped}

    meta = metadata or TraceMetadata()
    origin = meta.start_us

    rows: list[CategoryRow] = []
    for category in Category:
        if category in failed:
            empty = DETECTOR_FAILED_MARKER
        elif categories_run is not None and category not in categories_run:
            empty = NOT_RUN_MARKER
        else:
            empty = NO_ISSUES_MARKER
        rows.append(
            _category_row(category, summaries.get(category), empty, origin)
        )

    report_meta = ReportMetadata(
        site_url=meta.site_url or UNKNOWN_SITE,
        duration_ms=to_ms(meta.duration_us),
        event_count=meta.event_count,
        processes=[f"{p.pid}: {p.name}" for p in meta.processes],
        source=meta.source,
    )

    return AuditReport(
        metadata=report_meta,
        categories=rows,
        hotspots=[
            HotspotRow(
                start_ms=to_ms(h.window_start_us - origin),
                end_ms=to_ms(h.window_end_us - origin),
                categories=list(h.categories),
                finding_count=h.finding_count,
            )
            for h in hotspots
        ],
        recommendations={
            row.category: recommendation_for(row.category)
            for row in rows
            if row.flagged
        },
        diagnostics=ReportDiagnostics(
            parse=parse_summary or ParseSummary(),
            skipped_events=skipped,
            failed_detectors=failed,
        ),
    )
