"""Report building: structured audit report and remediation text."""

from traceaudit.report.builder import (
    AuditReport,
    CategoryRow,
    HotspotRow,
    ReportDiagnostics,
    ReportMetadata,
    build_report,
    format_metric,
    to_ms,
)
from traceaudit.report.recommendations import (
    RECOMMENDATIONS,
    recommendation_for,
)

__all__ = [
    "RECOMMENDATIONS",
    "AuditReport",
    "CategoryRow",
    "HotspotRow",
    "ReportDiagnostics",
    "ReportMetadata",
    "build_report",
    "format_metric",
    "recommendation_for",
    "to_ms",
]
