"""Merge per-category findings into summaries."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from traceaudit.analysis.schemas import CategorySummary, Finding
from traceaudit.constants import CATEGORY_ORDER, Category, Severity


def _worst_key(finding: Finding) -> tuple[object, ...]:
    # max metric first, then earliest timestamp, then canonical order
    return (-finding.metric, finding.timestamp_us, finding.sort_key())


def summarize(findings: Iterable[Finding]) -> CategorySummary | None:
    """Summarise findings of a single category.

    Returns None when there is nothing to report; the category is then
    dropped from the summaries (the report still lists it).
    """
    ordered = sorted(findings, key=lambda f: f.sort_key())
    if not ordered:
        return None
    categories = {f.category for f in ordered}
    if len(categories) != 1:
        msg = f"summarize() expects one category, got {sorted(categories)}"
        raise ValueError(msg)

    severity = (
        Severity.CRITICAL
        if any(f.severity == Severity.CRITICAL for f in ordered)
        else Severity.WARNING
    )
    return CategorySummary(
        category=ordered[0].category,
        total_count=len(ordered),
        worst_finding=min(ordered, key=_worst_key),
        severity=severity,
    )


def aggregate(
    findings: Iterable[Finding],
) -> dict[Category, CategorySummary]:
    """Summaries for every category that has findings, in report order.

    Deterministic and independent of the order findings arrive in.
    """
    grouped: defaultdict[Category, list[Finding]] = defaultdict(list)
    for finding in findings:
        grouped[finding.category].append(finding)

    summaries: dict[Category, CategorySummary] = {}
    for category in sorted(grouped, key=CATEGORY_ORDER.__getitem__):
        summary = summarize(grouped[category])
        if summary is not None:
            summaries[category] = summary
    return summaries
