"""Locate time windows where several categories compound."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from traceaudit.analysis.schemas import Finding, Hotspot
from traceaudit.constants import (
    CATEGORY_ORDER,
    DEFAULT_HOTSPOT_WINDOW_US,
    Category,
)

MIN_HOTSPOT_CATEGORIES = 2


def locate_hotspots(
    findings: Iterable[Finding],
    window_us: int = DEFAULT_HOTSPOT_WINDOW_US,
    origin_us: int = 0,
) -> list[Hotspot]:
    """Bucket findings by start time into fixed windows.

    Windows are ``[origin + k*window, origin + (k+1)*window)``. A window
    is a hotspot when at least two distinct categories land in it.
    Ordered by finding count (desc), then window start (asc).
    """
    if window_us <= 0:
        msg = f"window_us must be positive, got {window_us}"
        raise ValueError(msg)

    counts: defaultdict[int, int] = defaultdict(int)
    present: defaultdict[int, set[Category]] = defaultdict(set)
    for finding in findings:
        index = (finding.timestamp_us - origin_us) // window_us
        counts[index] += 1
        present[index].add(finding.category)

    hotspots = [
        Hotspot(
            window_start_us=origin_us + index * window_us,
            window_end_us=origin_us + (index + 1) * window_us,
            categories=tuple(
                sorted(present[index], key=CATEGORY_ORDER.__getitem__)
            ),
            finding_count=counts[index],
        )
        for index in counts
        if len(present[index]) >= MIN_HOTSPOT_CATEGORIES
    ]
    hotspots.sort(key=lambda h: (-h.finding_count, h.window_start_us))
    return hotspots
