"""Audit orchestration: parse, detect, aggregate, locate, report."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from traceaudit.analysis.aggregator import aggregate
from traceaudit.analysis.analyzer import run_detectors
from traceaudit.analysis.detectors import (
    build_detectors,
    relevant_event_names,
)
from traceaudit.analysis.hotspots import locate_hotspots
from traceaudit.analysis.schemas import (
    AnalysisResult,
    CategorySummary,
    Finding,
    Hotspot,
)
from traceaudit.config import Settings
from traceaudit.constants import ID_HEX_LENGTH, Category, StageProgress
from traceaudit.ingestion.parser import parse_trace
from traceaudit.ingestion.schemas import (
    ParsedTrace,
    ParseSummary,
    TraceEvent,
)
from traceaudit.logger import AuditLogger
from traceaudit.report.builder import AuditReport, build_report
from traceaudit.resilience.errors import classify_error
from traceaudit.services.events import ProgressCallback, StageEvent

logger = logging.getLogger(__name__)


@dataclass
class StageStatus:
    """Status of an audit stage."""

    name: str
    ok: bool
    duration_ms: float = 0.0
    error: str | None = None


@dataclass
class AuditResult:
    """Full result of one audit run."""

    run_id: str
    trace_path: Path
    report: AuditReport
    summaries: dict[Category, CategorySummary]
    hotspots: list[Hotspot]
    findings: list[Finding] = field(
        default_factory=lambda: list[Finding]()
    )
    stages: list[StageStatus] = field(
        default_factory=lambda: list[StageStatus]()
    )
    total_duration_ms: float = 0.0


@dataclass
class _AuditContext:
    """Per-run bookkeeping shared by the stage helpers."""

    run_id: str
    on_progress: ProgressCallback | None
    audit_logger: AuditLogger | None
    stages: list[StageStatus] = field(
        default_factory=lambda: list[StageStatus]()
    )

    def report(self, event: StageEvent) -> None:
        """Emit a progress event if callback is set."""
        if self.on_progress:
            self.on_progress(event)

    def start(self, name: str, message: str) -> None:
        self.report(
            StageEvent(
                name=name, status=StageProgress.RUNNING, message=message
            )
        )

    def finish(self, status: StageStatus, message: str = "") -> None:
        """Record a completed stage and emit DONE/ERROR."""
        self.stages.append(status)
        self.report(
            StageEvent(
                name=status.name,
                status=(
                    StageProgress.DONE if status.ok else StageProgress.ERROR
                ),
                duration_ms=status.duration_ms,
                message=status.error or message,
            )
        )
        if self.audit_logger:
            self.audit_logger.log_stage(
                self.run_id,
                status.name,
                "ok" if status.ok else "failed",
                status.duration_ms,
                status.error,
            )


async def run_audit(
    trace_path: str | Path,
    settings: Settings | None = None,
    categories: Iterable[Category] | None = None,
    on_progress: ProgressCallback | None = None,
) -> AuditResult:
    """Run the full audit over one trace file.

    Stages:
      1. parse: stream and materialise the trace (fatal on failure)
      2. detect: every selected detector, concurrently and isolated
      3. aggregate: per-category summaries
      4. hotspots: windows where categories compound
      5. report: the structured AuditReport

    Raises MalformedTraceError (or OSError) before any detector runs.
    Unselected categories still appear in the report as "not run".
    """
    cfg = settings or Settings()
    path = Path(trace_path)
    run_id = uuid.uuid4().hex[:ID_HEX_LENGTH]
    t0 = time.monotonic()

    detectors = build_detectors(cfg.rate_window_us, categories)
    selected = [d.category for d in detectors]
    ctx = _AuditContext(
        run_id=run_id,
        on_progress=on_progress,
        audit_logger=(
            AuditLogger(cfg.log_dir, cfg.log_level) if cfg.log_dir else None
        ),
    )

    try:
        # 1: Parse
        names = relevant_event_names(detectors)
        ctx.start("parse", f"Parsing {path.name}...")
        trace, status = await _run_fatal_stage(
            ctx,
            "parse",
            lambda: parse_trace(
                path,
                keep=_keep_named(names),
                chunk_size=cfg.read_chunk_bytes,
                sniff_limit=cfg.sniff_limit,
            ),
        )
        ctx.finish(
            status,
            message=(
                f"Parsed {trace.diagnostics.records_read} records,"
                f" kept {len(trace.events)} events"
            ),
        )

        # 2: Detect
        ctx.start("detect", f"Running {len(detectors)} detectors")
        t_detect = time.monotonic()
        analysis: AnalysisResult = await run_detectors(
            trace.events,
            detectors,
            max_concurrency=cfg.detector_max_concurrency,
            timeout=cfg.detector_timeout_seconds,
        )
        failed = [r for r in analysis.runs if not r.ok]
        for run in failed:
            logger.warning(
                "event=detector_failed category=%s error=%s",
                run.category,
                run.error,
            )
            if ctx.audit_logger:
                ctx.audit_logger.log_error(
                    run_id, f"detector:{run.category}", run.error or ""
                )
        findings = analysis.findings
        ctx.finish(
            StageStatus(
                name="detect",
                ok=not failed,
                duration_ms=_elapsed(t_detect),
                error=(
                    f"{len(failed)} detector(s) failed" if failed else None
                ),
            ),
            message=f"{len(findings)} findings",
        )

        # 3: Aggregate
        ctx.start("aggregate", "Aggregating findings...")
        t_stage = time.monotonic()
        summaries = aggregate(findings)
        ctx.finish(
            StageStatus(
                name="aggregate", ok=True, duration_ms=_elapsed(t_stage)
            ),
            message=f"{len(summaries)} categories flagged",
        )

        # 4: Hotspots
        ctx.start("hotspots", "Locating hotspots...")
        t_stage = time.monotonic()
        hotspots = locate_hotspots(
            findings,
            window_us=cfg.hotspot_window_us,
            origin_us=trace.events.start_us,
        )
        ctx.finish(
            StageStatus(
                name="hotspots", ok=True, duration_ms=_elapsed(t_stage)
            ),
            message=f"{len(hotspots)} hotspots",
        )

        # 5: Report
        ctx.start("report", "Building report...")
        t_stage = time.monotonic()
        report = build_report(
            trace.metadata,
            summaries,
            hotspots,
            parse_summary=ParseSummary.from_diagnostics(trace.diagnostics),
            runs=analysis.runs,
            categories_run=selected,
        )
        ctx.finish(
            StageStatus(
                name="report", ok=True, duration_ms=_elapsed(t_stage)
            )
        )

        result = AuditResult(
            run_id=run_id,
            trace_path=path,
            report=report,
            summaries=summaries,
            hotspots=hotspots,
            findings=findings,
            stages=ctx.stages,
            total_duration_ms=_elapsed(t0),
        )
        logger.info(
            "event=audit_complete run_id=%s findings=%d flagged=%d "
            "hotspots=%d duration_ms=%.1f",
            run_id,
            len(findings),
            len(summaries),
            len(hotspots),
            result.total_duration_ms,
        )
        if ctx.audit_logger:
            ctx.audit_logger.log_run(
                run_id,
                str(path),
                trace.metadata.event_count,
                len(findings),
                [str(c) for c in summaries],
                result.total_duration_ms,
            )
        return result
    finally:
        if ctx.audit_logger:
            ctx.audit_logger.close()


async def _run_fatal_stage(
    ctx: _AuditContext,
    name: str,
    fn: Callable[[], ParsedTrace],
) -> tuple[ParsedTrace, StageStatus]:
    """Run a blocking stage in a thread; failures are recorded and re-raised."""
    t0 = time.monotonic()
    try:
        out = await asyncio.to_thread(fn)
    except Exception as exc:
        status = StageStatus(
            name=name, ok=False, duration_ms=_elapsed(t0), error=str(exc)
        )
        logger.error(
            "event=stage_failed stage=%s error_class=%s error=%s",
            name,
            classify_error(exc).value,
            exc,
        )
        ctx.finish(status)
        if ctx.audit_logger:
            ctx.audit_logger.log_error(ctx.run_id, name, str(exc))
        raise
    return out, StageStatus(name=name, ok=True, duration_ms=_elapsed(t0))


def _keep_named(names: frozenset[str]) -> Callable[[TraceEvent], bool]:
    def keep(event: TraceEvent) -> bool:
        return event.name in names

    return keep


def _elapsed(t0: float) -> float:
    return (time.monotonic() - t0) * 1000
