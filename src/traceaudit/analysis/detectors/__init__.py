"""Category detectors: one pattern-matcher per anomaly class."""

from __future__ import annotations

from collections.abc import Iterable

from traceaudit.analysis.detectors.base import (
    Detector,
    DurationDetector,
    EventDetector,
)
from traceaudit.analysis.detectors.main_thread import (
    LongAnimationFrameDetector,
    LongTaskDetector,
    ScriptEvalDetector,
)
from traceaudit.analysis.detectors.memory import GCPressureDetector
from traceaudit.analysis.detectors.network import (
    NetworkErrorDetector,
    RedundantFetchDetector,
)
from traceaudit.analysis.detectors.rendering import (
    ForcedReflowDetector,
    LayoutThrashingDetector,
    PaintStormDetector,
    RafTickerDetector,
    StyleRecalcDetector,
)
from traceaudit.analysis.detectors.vitals import CLSDetector, INPDetector
from traceaudit.constants import DEFAULT_RATE_WINDOW_US, Category

__all__ = [
    "CLSDetector",
    "DETECTORS",
    "Detector",
    "DurationDetector",
    "EventDetector",
    "ForcedReflowDetector",
    "GCPressureDetector",
    "INPDetector",
    "LayoutThrashingDetector",
    "LongAnimationFrameDetector",
    "LongTaskDetector",
    "NetworkErrorDetector",
    "PaintStormDetector",
    "RafTickerDetector",
    "RedundantFetchDetector",
    "ScriptEvalDetector",
    "StyleRecalcDetector",
    "build_detectors",
    "relevant_event_names",
]


def build_detectors(
    rate_window_us: int = DEFAULT_RATE_WINDOW_US,
    categories: Iterable[Category] | None = None,
) -> tuple[Detector, ...]:
    """Instantiate the registry in category order.

    ``categories`` restricts the set; unknown values are ignored.
    """
    registry: tuple[Detector, ...] = (
        LongTaskDetector(),
        LayoutThrashingDetector(rate_window_us),
        ForcedReflowDetector(),
        RafTickerDetector(rate_window_us),
        StyleRecalcDetector(),
        PaintStormDetector(),
        GCPressureDetector(),
        CLSDetector(),
        INPDetector(),
        NetworkErrorDetector(),
        RedundantFetchDetector(),
        ScriptEvalDetector(),
        LongAnimationFrameDetector(),
    )
    if categories is None:
        return registry
    wanted = frozenset(categories)
    return tuple(d for d in registry if d.category in wanted)


DETECTORS: tuple[Detector, ...] = build_detectors()


def relevant_event_names(detectors: Iterable[Detector]) -> frozenset[str]:
    """Union of event names any of ``detectors`` reads."""
    names: set[str] = set()
    for detector in detectors:
        names |= detector.event_names
    return frozenset(names)
