"""Detector stages with parallel fan-out and failure isolation."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from traceaudit.analysis.detectors import Detector
from traceaudit.analysis.schemas import DetectorResult, DetectorRun
from traceaudit.constants import Category, StageOutcome
from traceaudit.ingestion.schemas import TraceEvents
from traceaudit.resilience.errors import classify_error

logger = logging.getLogger(__name__)


@dataclass
class DetectorOutcome:
    """What happened when one detector ran (or didn't)."""

    category: Category
    status: StageOutcome
    result: DetectorResult | None = None
    duration_ms: float = 0.0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == StageOutcome.COMPLETED and self.result is not None

    def to_run(self) -> DetectorRun:
        if self.ok and self.result is not None:
            return DetectorRun(
                category=self.category,
                ok=True,
                finding_count=len(self.result.findings),
                skipped=self.result.skipped,
                duration_ms=self.duration_ms,
            )
        return DetectorRun(
            category=self.category,
            ok=False,
            duration_ms=self.duration_ms,
            error=self.error or str(self.status),
        )


@dataclass
class DetectorStage:
    """One detector, run on a worker thread so siblings overlap."""

    detector: Detector

    @property
    def category(self) -> Category:
        return self.detector.category

    async def run(self, events: TraceEvents) -> DetectorOutcome:
        start = time.monotonic()
        try:
            result = await asyncio.to_thread(self.detector.detect, events)
        except Exception as exc:
            logger.warning(
                "event=detector_stage_failed category=%s class=%s error=%s",
                self.category,
                classify_error(exc).value,
                exc,
                exc_info=True,
            )
            return DetectorOutcome(
                category=self.category,
                status=StageOutcome.FAILED,
                duration_ms=_elapsed(start),
                error=str(exc) or type(exc).__name__,
            )
        return DetectorOutcome(
            category=self.category,
            status=StageOutcome.COMPLETED,
            result=result,
            duration_ms=_elapsed(start),
        )


@dataclass
class DetectorGroup:
    """Run detector stages concurrently over the same event sequence."""

    stages: list[DetectorStage] = field(
        default_factory=lambda: list[DetectorStage]()
    )
    max_concurrency: int | None = None
    timeout: float | None = None  # seconds; None = no timeout

    @classmethod
    def of(
        cls,
        detectors: Sequence[Detector],
        *,
        max_concurrency: int | None = None,
        timeout: float | None = None,
    ) -> DetectorGroup:
        return cls(
            stages=[DetectorStage(d) for d in detectors],
            max_concurrency=max_concurrency,
            timeout=timeout,
        )

    async def execute(self, events: TraceEvents) -> list[DetectorOutcome]:
        """Run every stage; failures never cancel siblings.

        If ``timeout`` is set, stages still running at the deadline come
        back SKIPPED. Outcomes are in stage order, not completion order.
        """
        if not self.stages:
            return []

        outcomes = [
            DetectorOutcome(
                category=s.category,
                status=StageOutcome.SKIPPED,
                error=(
                    f"timed out after {self.timeout:g}s"
                    if self.timeout is not None
                    else None
                ),
            )
            for s in self.stages
        ]

        semaphore = (
            asyncio.Semaphore(self.max_concurrency)
            if self.max_concurrency
            else None
        )

        async def _run_stage(idx: int, stage: DetectorStage) -> None:
            if semaphore:
                async with semaphore:
                    outcomes[idx] = await stage.run(events)
            else:
                outcomes[idx] = await stage.run(events)

        coro = asyncio.gather(
            *(_run_stage(i, s) for i, s in enumerate(self.stages)),
            return_exceptions=True,
        )
        if self.timeout is not None:
            try:
                await asyncio.wait_for(coro, timeout=self.timeout)
            except TimeoutError:
                logger.error(
                    "event=detector_group_timeout timeout_s=%.1f pending=%s",
                    self.timeout,
                    ",".join(
                        str(o.category)
                        for o in outcomes
                        if o.status == StageOutcome.SKIPPED
                    ),
                )
        else:
            await coro

        return outcomes


def _elapsed(t0: float) -> float:
    return (time.monotonic() - t0) * 1000
