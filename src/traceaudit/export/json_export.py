"""JSON export: structured envelope."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from traceaudit.report.builder import AuditReport


def export_json(
    report: AuditReport,
    trace_name: str,
    generated_at: datetime | None = None,
) -> str:
    """Export the report as structured JSON."""
    payload: dict[str, Any] = {
        "trace": trace_name,
        "generated_at": (generated_at or datetime.now(UTC)).isoformat(),
        "flagged_count": len(report.flagged),
        "critical_count": report.critical_count,
        "report": report.model_dump(mode="json"),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)
