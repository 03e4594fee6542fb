"""Export module: report rendering by format."""

from collections.abc import Callable
from datetime import datetime

from traceaudit.constants import ExportFormat
from traceaudit.export.json_export import export_json
from traceaudit.export.markdown import export_markdown
from traceaudit.report.builder import AuditReport

__all__ = [
    "export_json",
    "export_markdown",
    "export_report",
]

_EXPORTERS: dict[
    str, Callable[[AuditReport, str, datetime | None], str]
] = {
    ExportFormat.MARKDOWN: export_markdown,
    ExportFormat.JSON: export_json,
}


def export_report(
    report: AuditReport,
    trace_name: str,
    fmt: str = "markdown",
    generated_at: datetime | None = None,
) -> str:
    """Dispatch export by format string."""
    exporter = _EXPORTERS.get(fmt)
    if exporter is None:
        valid = ", ".join(_EXPORTERS)
        msg = f"Unsupported format: {fmt}. Use: {valid}"
        raise ValueError(msg)
    return exporter(report, trace_name, generated_at)
