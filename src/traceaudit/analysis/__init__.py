"""Trace analysis: detectors, aggregation, hotspot location."""

from traceaudit.analysis.aggregator import aggregate, summarize
from traceaudit.analysis.analyzer import detect_sequential, run_detectors
from traceaudit.analysis.hotspots import locate_hotspots
from traceaudit.analysis.schemas import (
    AnalysisResult,
    CategorySummary,
    DetectorResult,
    DetectorRun,
    Finding,
    Hotspot,
)

__all__ = [
    "AnalysisResult",
    "CategorySummary",
    "DetectorResult",
    "DetectorRun",
    "Finding",
    "Hotspot",
    "aggregate",
    "detect_sequential",
    "locate_hotspots",
    "run_detectors",
    "summarize",
]
