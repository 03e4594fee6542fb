"""Run every category detector over one parsed trace."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from traceaudit.analysis.detectors import DETECTORS, Detector
from traceaudit.analysis.pipeline import DetectorGroup
from traceaudit.analysis.schemas import AnalysisResult, DetectorResult
from traceaudit.ingestion.schemas import TraceEvents

logger = logging.getLogger(__name__)


async def run_detectors(
    events: TraceEvents,
    detectors: Sequence[Detector] = DETECTORS,
    *,
    max_concurrency: int | None = None,
    timeout: float | None = None,
) -> AnalysisResult:
    """Run all detectors in parallel over the same finished sequence.

    Detectors are pure and share nothing, so each runs as its own stage
    on a worker thread. A detector that raises is isolated: its run is
    marked failed and its category contributes no findings, while the
    others still complete. Results come back in registry order.
    """
    group = DetectorGroup.of(
        detectors, max_concurrency=max_concurrency, timeout=timeout
    )
    analysis = AnalysisResult()
    for outcome in await group.execute(events):
        analysis.runs.append(outcome.to_run())
        if outcome.result is None or not outcome.ok:
            continue
        analysis.results.append(outcome.result)
        if outcome.result.skipped:
            logger.info(
                "event=detector_skipped_events category=%s count=%d",
                outcome.category,
                outcome.result.skipped,
            )
    return analysis


def detect_sequential(
    events: TraceEvents,
    detectors: Sequence[Detector] = DETECTORS,
) -> list[DetectorResult]:
    """Run detectors one after another (no isolation, for library use)."""
    return [d.detect(events) for d in detectors]
