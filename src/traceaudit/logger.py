"""Structured JSON logger for audit runs."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from traceaudit.constants import ERROR_TRUNCATION_CHARS
from traceaudit.logging_config import LOG_DATEFMT, LOG_FORMAT

__all__ = ["AuditLogger", "LOG_FORMAT", "LOG_DATEFMT"]


class AuditLogger:
    """Structured JSON-lines logger with run_id correlation."""

    def __init__(self, log_dir: Path, level: str = "INFO") -> None:
        self._log_dir = log_dir
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._path = log_dir / "audit.log"
        self._logger = logging.getLogger("traceaudit.audit")
        self._logger.setLevel(getattr(logging, level.upper()))
        self._logger.propagate = False

        if not any(
            isinstance(h, logging.FileHandler)
            and Path(h.baseFilename) == self._path.resolve()
            for h in self._logger.handlers
        ):
            handler = logging.FileHandler(self._path, encoding="utf-8")
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)

    @property
    def path(self) -> Path:
        return self._path

    def log_run(
        self,
        run_id: str,
        trace_path: str,
        event_count: int,
        finding_count: int,
        categories_flagged: list[str],
        duration_ms: float,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "run",
                "timestamp": datetime.now(UTC).isoformat(),
                "run_id": run_id,
                "trace_path": trace_path,
                "event_count": event_count,
                "finding_count": finding_count,
                "categories_flagged": categories_flagged,
                "duration_ms": duration_ms,
            })
        )

    def log_error(
        self,
        run_id: str,
        component: str,
        error: str,
    ) -> None:
        self._logger.error(
            json.dumps({
                "type": "error",
                "timestamp": datetime.now(UTC).isoformat(),
                "run_id": run_id,
                "component": component,
                "error": error[:ERROR_TRUNCATION_CHARS],
            })
        )

    def log_stage(
        self,
        run_id: str,
        stage_name: str,
        status: str,
        duration_ms: float,
        error: str | None = None,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "stage",
                "timestamp": datetime.now(UTC).isoformat(),
                "run_id": run_id,
                "stage": stage_name,
                "status": status,
                "duration_ms": duration_ms,
                "error": error,
            })
        )

    def close(self) -> None:
        """Detach and close file handlers (tests, repeated runs)."""
        for handler in list(self._logger.handlers):
            handler.close()
            self._logger.removeHandler(handler)
