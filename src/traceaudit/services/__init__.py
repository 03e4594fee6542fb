"""Audit orchestration services."""

from traceaudit.services.audit_service import (
    AuditResult,
    StageStatus,
    run_audit,
)
from traceaudit.services.events import ProgressCallback, StageEvent

__all__ = [
    "AuditResult",
    "ProgressCallback",
    "StageEvent",
    "StageStatus",
    "run_audit",
]
