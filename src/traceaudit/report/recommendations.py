"""Remediation guidance keyed by category id."""

from __future__ import annotations

from traceaudit.constants import Category

RECOMMENDATIONS: dict[Category, str] = {
    Category.LONG_TASKS: (
        "Break long main-thread tasks into chunks under 50ms: yield with "
        "scheduler.yield() or setTimeout, defer non-critical work, and "
        "move heavy computation to a Web Worker."
    ),
    Category.LAYOUT_THRASHING: (
        "Batch DOM reads before DOM writes. Interleaved reads of layout "
        "properties (offsetHeight, getBoundingClientRect) after style "
        "writes force repeated layouts; schedule writes with "
        "requestAnimationFrame."
    ),
    Category.FORCED_REFLOW: (
        "Remove synchronous layout reads from the reported call sites, "
        "or cache the measured values. Prefer ResizeObserver and "
        "IntersectionObserver over polling geometry."
    ),
    Category.RAF_TICKER: (
        "Stop scheduling requestAnimationFrame callbacks when nothing is "
        "animating, and coalesce multiple rAF loops into one shared "
        "ticker."
    ),
    Category.STYLE_RECALC: (
        "Reduce selector complexity and the number of elements affected "
        "by class toggles; scope changes to small subtrees and use CSS "
        "containment (contain: style layout)."
    ),
    Category.PAINT_STORM: (
        "Shrink paint areas: promote animated elements to their own "
        "layer (transform/opacity animations, will-change), and avoid "
        "animating properties that trigger paint such as box-shadow."
    ),
    Category.GC_PRESSURE: (
        "Cut allocation churn in hot paths: reuse objects and buffers, "
        "avoid creating closures per frame, and release references to "
        "large detached structures."
    ),
    Category.CLS: (
        "Reserve space for images, ads and embeds with explicit width/"
        "height or aspect-ratio, and avoid inserting content above "
        "existing content except in response to user input."
    ),
    Category.INP: (
        "Keep event handlers short: do the minimum visual update first, "
        "then defer the rest. Look for long tasks overlapping the slow "
        "interactions."
    ),
    Category.NETWORK_ERRORS: (
        "Fix or remove the failing requests. 4xx responses usually mean "
        "stale URLs or missing auth; 5xx responses point at the backend "
        "and deserve retries with backoff on the client."
    ),
    Category.REDUNDANT_FETCHES: (
        "Deduplicate requests to the same endpoint: share in-flight "
        "promises, cache responses, and batch query variants into a "
        "single call."
    ),
    Category.SCRIPT_EVAL: (
        "Ship less JavaScript up front: code-split by route, lazy-load "
        "non-critical modules, and remove unused dependencies."
    ),
    Category.LONG_ANIMATION_FRAME: (
        "Inspect the scripts attributed to each long animation frame and "
        "move their work out of the rendering path."
    ),
}


def recommendation_for(category: Category) -> str:
    """Guidance text for a category (every category has one)."""
    return RECOMMENDATIONS[category]
