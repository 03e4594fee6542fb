"""Markdown export: front matter, tables, recommendations."""

from __future__ import annotations

from datetime import UTC, datetime

from traceaudit.constants import CATEGORY_TITLES
from traceaudit.report.builder import AuditReport, CategoryRow

# ── Markdown formatting helpers ──────────────────────────────


def heading(text: str, level: int = 1) -> str:
    """Return a Markdown heading."""
    return f"{'#' * level} {text}\n"


def table(headers: list[str], rows: list[list[str]]) -> str:
    """Return a Markdown table."""
    if not headers:
        return ""
    lines: list[str] = []
    lines.append("| " + " | ".join(headers) + " |")
    lines.append("| " + " | ".join("---" for _ in headers) + " |")
    for row in rows:
        padded = row + [""] * (len(headers) - len(row))
        lines.append(
            "| " + " | ".join(c.replace("|", "\\|") for c in padded) + " |"
        )
    return "\n".join(lines) + "\n"


def bullet_list(items: list[str]) -> str:
    """Return a Markdown bullet list."""
    if not items:
        return ""
    return "\n".join(f"- {item}" for item in items) + "\n"


# ── Report sections ──────────────────────────────────────────


def _ms(value: float) -> str:
    return f"{value:,.1f} ms"


def _category_cells(row: CategoryRow) -> list[str]:
    if not row.flagged:
        return [row.title, "0", "-", row.status]
    return [
        row.title,
        str(row.count),
        row.worst_value or "-",
        row.severity.upper() if row.severity else "",
    ]


def _metadata_section(report: AuditReport) -> str:
    meta = report.metadata
    items = [
        f"**Site:** {meta.site_url}",
        f"**Trace duration:** {_ms(meta.duration_ms)}",
        f"**Events:** {meta.event_count:,}",
    ]
    if meta.source:
        items.append(f"**Source:** {meta.source}")
    items.append(
        "**Processes:** "
        + (", ".join(meta.processes) if meta.processes else "unknown")
    )
    return heading("Trace", 2) + "\n" + bullet_list(items)


def _hotspot_section(report: AuditReport) -> str:
    parts = [heading("Hotspots", 2)]
    if not report.hotspots:
        parts.append("No time window combines two or more categories.\n")
        return "\n".join(parts)
    rows = [
        [
            f"{h.start_ms:,.0f} to {h.end_ms:,.0f} ms",
            ", ".join(CATEGORY_TITLES[c] for c in h.categories),
            str(h.finding_count),
        ]
        for h in report.hotspots
    ]
    parts.append(table(["Window", "Categories", "Findings"], rows))
    return "\n".join(parts)


def _recommendation_section(report: AuditReport) -> str:
    parts = [heading("Recommendations", 2)]
    if not report.recommendations:
        parts.append("Nothing to fix: no category was flagged.\n")
        return "\n".join(parts)
    for category, text in report.recommendations.items():
        parts.append(heading(CATEGORY_TITLES[category], 3))
        parts.append(f"{text}\n")
    return "\n".join(parts)


def _diagnostics_section(report: AuditReport) -> str:
    diag = report.diagnostics
    items = [
        f"Records read: {diag.parse.records_read:,}",
        f"Records skipped (not trace events): {diag.parse.skipped_records:,}",
        f"Unmatched begin/end spans: {diag.parse.unmatched_spans:,}",
    ]
    for category, count in diag.skipped_events.items():
        items.append(
            f"{CATEGORY_TITLES[category]}: {count} malformed event(s) skipped"
        )
    for category, error in diag.failed_detectors.items():
        items.append(f"{CATEGORY_TITLES[category]}: detector failed ({error})")
    return heading("Diagnostics", 2) + "\n" + bullet_list(items)


def export_markdown(
    report: AuditReport,
    trace_name: str,
    generated_at: datetime | None = None,
) -> str:
    """Export the report as a single Markdown document."""
    parts: list[str] = []

    # Metadata header
    parts.append("---")
    parts.append(f"trace: {trace_name}")
    parts.append(
        f"generated: {(generated_at or datetime.now(UTC)).isoformat()}"
    )
    parts.append(f"flagged: {len(report.flagged)}")
    parts.append(f"critical: {report.critical_count}")
    parts.append("---\n")

    parts.append(heading("Performance Trace Audit"))
    parts.append(_metadata_section(report))

    parts.append(heading("Findings", 2))
    parts.append(
        table(
            ["Category", "Count", "Worst", "Severity"],
            [_category_cells(row) for row in report.categories],
        )
    )
    parts.append(_hotspot_section(report))
    parts.append(_recommendation_section(report))
    parts.append(_diagnostics_section(report))

    return "\n".join(parts)
