"""Pydantic models for detector, aggregator and hotspot output."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from traceaudit.constants import (
    CATEGORY_ORDER,
    SEVERITY_RANK,
    Category,
    Severity,
)


class Finding(BaseModel):
    """One flagged anomaly produced by a single detector."""

    model_config = ConfigDict(frozen=True)

    category: Category
    severity: Severity
    timestamp_us: int
    duration_us: int | None = None
    metric: float  # duration, score, status code, rate or count
    detail: dict[str, Any] = Field(default_factory=lambda: dict[str, Any]())

    def sort_key(self) -> tuple[Any, ...]:
        """Canonical ordering independent of production order."""
        return (
            CATEGORY_ORDER[self.category],
            self.timestamp_us,
            -self.metric,
            self.duration_us if self.duration_us is not None else -1,
            -SEVERITY_RANK[self.severity],
            json.dumps(self.detail, sort_keys=True, default=str),
        )


class DetectorResult(BaseModel):
    """Everything one detector produced for one trace."""

    model_config = ConfigDict(frozen=True)

    category: Category
    findings: tuple[Finding, ...] = ()
    skipped: int = 0  # events dropped by DetectorFailure


class CategorySummary(BaseModel):
    """Aggregate of every finding in one category."""

    model_config = ConfigDict(frozen=True)

    category: Category
    total_count: int
    worst_finding: Finding | None = None
    severity: Severity | None = None


class Hotspot(BaseModel):
    """A time window where two or more categories have findings."""

    model_config = ConfigDict(frozen=True)

    window_start_us: int
    window_end_us: int
    categories: tuple[Category, ...]  # registry order
    finding_count: int


class DetectorRun(BaseModel):
    """Outcome of running one detector stage."""

    category: Category
    ok: bool
    finding_count: int = 0
    skipped: int = 0
    duration_ms: float = 0.0
    error: str | None = None


class AnalysisResult(BaseModel):
    """Combined output of every detector."""

    results: list[DetectorResult] = Field(
        default_factory=lambda: list[DetectorResult]()
    )
    runs: list[DetectorRun] = Field(
        default_factory=lambda: list[DetectorRun]()
    )

    @property
    def findings(self) -> list[Finding]:
        return [f for r in self.results for f in r.findings]
