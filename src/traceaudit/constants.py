"""Shared constants: single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so downstream code (JSON export,
Markdown tables, log lines) works unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class Category(StrEnum):
    """Anomaly categories, in report order."""

    LONG_TASKS = "long_tasks"
    LAYOUT_THRASHING = "layout_thrashing"
    FORCED_REFLOW = "forced_reflow"
    RAF_TICKER = "raf_ticker"
    STYLE_RECALC = "style_recalc"
    PAINT_STORM = "paint_storm"
    GC_PRESSURE = "gc_pressure"
    CLS = "cls"
    INP = "inp"
    NETWORK_ERRORS = "network_errors"
    REDUNDANT_FETCHES = "redundant_fetches"
    SCRIPT_EVAL = "script_eval"
    LONG_ANIMATION_FRAME = "long_animation_frame"


class Severity(StrEnum):
    """Severity of a finding or a category summary."""

    WARNING = "warning"
    CRITICAL = "critical"


class Phase(StrEnum):
    """Trace-event phase codes (the ``ph`` field)."""

    COMPLETE = "X"
    BEGIN = "B"
    END = "E"
    INSTANT = "i"
    ASYNC_BEGIN = "b"
    ASYNC_END = "e"
    ASYNC_INSTANT = "n"
    METADATA = "M"
    COUNTER = "C"
    OTHER = "?"

    @classmethod
    def from_code(cls, code: str) -> Phase:
        """Map a raw ``ph`` code to a Phase; unknown codes map to OTHER."""
        if code == "I":  # legacy instant
            return cls.INSTANT
        try:
            return cls(code)
        except ValueError:
            return cls.OTHER


class MetricUnit(StrEnum):
    """What a finding's ``metric`` measures."""

    MICROSECONDS = "us"
    RATE = "per_second"
    SCORE = "score"
    STATUS_CODE = "status_code"
    COUNT = "count"


class StageProgress(StrEnum):
    """Progress status for pipeline stage events."""

    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


class StageOutcome(StrEnum):
    """Outcome of an individual pipeline stage execution."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExportFormat(StrEnum):
    """Supported report export formats."""

    MARKDOWN = "markdown"
    JSON = "json"


# ── Category presentation ────────────────────────────────

CATEGORY_TITLES: dict[Category, str] = {
    Category.LONG_TASKS: "Long Tasks",
    Category.LAYOUT_THRASHING: "Layout Thrashing",
    Category.FORCED_REFLOW: "Forced Reflow",
    Category.RAF_TICKER: "rAF Ticker",
    Category.STYLE_RECALC: "Style Recalc",
    Category.PAINT_STORM: "Paint Storm",
    Category.GC_PRESSURE: "GC Pressure",
    Category.CLS: "Cumulative Layout Shift",
    Category.INP: "Interaction to Next Paint",
    Category.NETWORK_ERRORS: "Network Errors",
    Category.REDUNDANT_FETCHES: "Redundant Fetches",
    Category.SCRIPT_EVAL: "Script Evaluation",
    Category.LONG_ANIMATION_FRAME: "Long Animation Frames",
}

CATEGORY_UNITS: dict[Category, MetricUnit] = {
    Category.LONG_TASKS: MetricUnit.MICROSECONDS,
    Category.LAYOUT_THRASHING: MetricUnit.RATE,
    Category.FORCED_REFLOW: MetricUnit.MICROSECONDS,
    Category.RAF_TICKER: MetricUnit.RATE,
    Category.STYLE_RECALC: MetricUnit.MICROSECONDS,
    Category.PAINT_STORM: MetricUnit.MICROSECONDS,
    Category.GC_PRESSURE: MetricUnit.MICROSECONDS,
    Category.CLS: MetricUnit.SCORE,
    Category.INP: MetricUnit.MICROSECONDS,
    Category.NETWORK_ERRORS: MetricUnit.STATUS_CODE,
    Category.REDUNDANT_FETCHES: MetricUnit.COUNT,
    Category.SCRIPT_EVAL: MetricUnit.MICROSECONDS,
    Category.LONG_ANIMATION_FRAME: MetricUnit.MICROSECONDS,
}

CATEGORY_ORDER: dict[Category, int] = {
    c: i for i, c in enumerate(Category)
}

SEVERITY_RANK: dict[Severity, int] = {
    Severity.WARNING: 1,
    Severity.CRITICAL: 2,
}

NO_ISSUES_MARKER = "no issues found"
NOT_RUN_MARKER = "not run"
DETECTOR_FAILED_MARKER = "detector failed"
UNKNOWN_SITE = "unknown"

# ── Time ─────────────────────────────────────────────────

MICROS_PER_MILLI = 1_000
MICROS_PER_SECOND = 1_000_000

DEFAULT_HOTSPOT_WINDOW_US = 500_000
DEFAULT_RATE_WINDOW_US = 1_000_000

# ── Parser ───────────────────────────────────────────────

DEFAULT_READ_CHUNK_BYTES = 1 << 20
DEFAULT_SNIFF_LIMIT = 100
REQUIRED_EVENT_FIELDS = ("name", "ph", "ts")
CATEGORY_FIELDS = ("cat", "category")

# ── Thresholds (µs unless noted) ─────────────────────────

LONG_TASK_WARNING_US = 50_000
LONG_TASK_CRITICAL_US = 200_000

LAYOUT_THRASH_WARNING_RATE = 10.0
LAYOUT_THRASH_CRITICAL_RATE = 30.0

FORCED_REFLOW_CRITICAL_COUNT = 5
FORCED_REFLOW_CRITICAL_US = 10_000

RAF_WARNING_RATE = 120.0
RAF_CRITICAL_RATE = 240.0

# A trace shorter than one rate window needs this many occurrences
# before its extrapolated rate is judged.
SHORT_WINDOW_MIN_OCCURRENCES = 10

STYLE_RECALC_WARNING_US = 5_000
STYLE_RECALC_CRITICAL_US = 20_000
STYLE_RECALC_WARNING_ELEMENTS = 500
STYLE_RECALC_CRITICAL_ELEMENTS = 2_000

PAINT_WARNING_US = 3_000
PAINT_CRITICAL_US = 16_000

MAJOR_GC_WARNING_US = 10_000
MAJOR_GC_CRITICAL_US = 50_000
MINOR_GC_WARNING_US = 5_000

CLS_WARNING_SCORE = 0.1
CLS_CRITICAL_SCORE = 0.25

INP_WARNING_US = 200_000
INP_CRITICAL_US = 500_000

HTTP_WARNING_STATUS = 400
HTTP_CRITICAL_STATUS = 500

REDUNDANT_BASE_URL_COUNT = 2
REDUNDANT_EXACT_URL_COUNT = 3

SCRIPT_EVAL_WARNING_US = 50_000
SCRIPT_EVAL_CRITICAL_US = 200_000

LOAF_CRITICAL_US = 100_000

# ── Event names ──────────────────────────────────────────

RUN_TASK = "RunTask"
LAYOUT = "Layout"
REQUEST_ANIMATION_FRAME = "RequestAnimationFrame"
UPDATE_LAYOUT_TREE = "UpdateLayoutTree"
PAINT = "Paint"
LAYOUT_SHIFT = "LayoutShift"
EVENT_TIMING = "EventTiming"
RESOURCE_SEND_REQUEST = "ResourceSendRequest"
RESOURCE_RECEIVE_RESPONSE = "ResourceReceiveResponse"

INVALIDATION_EVENTS = frozenset({
    "InvalidateLayout",
    "ScheduleStyleRecalculation",
    "LayoutInvalidationTracking",
    "StyleRecalcInvalidationTracking",
})
MAJOR_GC_EVENTS = frozenset({"MajorGC", "V8.GC_MARK_COMPACTOR"})
MINOR_GC_EVENTS = frozenset({"MinorGC", "V8.GC_SCAVENGER"})
SCRIPT_EVAL_EVENTS = frozenset({"EvaluateScript", "CompileScript"})
LOAF_EVENTS = frozenset({"LoAF", "LongAnimationFrame"})

# Metadata sources
PROCESS_NAME_EVENT = "process_name"
SITE_URL_EVENTS = frozenset({
    "TracingStartedInBrowser",
    "TracingStartedInPage",
    "CommitLoad",
    "navigationStart",
})

# ── Misc ─────────────────────────────────────────────────

ERROR_TRUNCATION_CHARS = 200
ID_HEX_LENGTH = 12

# ── Stage Labels (user-facing) ─────────────────────────

STAGE_LABELS: dict[str, str] = {
    "parse": "Parsing trace",
    "detect": "Running detectors",
    "aggregate": "Aggregating findings",
    "hotspots": "Locating hotspots",
    "report": "Building report",
}
