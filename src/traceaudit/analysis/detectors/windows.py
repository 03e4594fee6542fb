"""Fixed-window rate folding for rate-based detectors.

Windows are fixed buckets of ``window_us`` aligned to the trace start.
A bucket that the trace extent does not fully cover is partial and is
excluded from rate thresholds. A trace shorter than one window is
evaluated as a single window spanning its whole extent, with
``rate = count / extent``; a zero-length extent yields no window.

A short trace extrapolates from very few occurrences (two callbacks 1ms
apart read as 2000/s), so rate detectors ignore such a window unless it
holds at least ``SHORT_WINDOW_MIN_OCCURRENCES`` occurrences.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from traceaudit.constants import DEFAULT_RATE_WINDOW_US, MICROS_PER_SECOND


@dataclass(frozen=True)
class RateWindow:
    """Event count observed over one fully-covered window."""

    start_us: int
    end_us: int
    count: int

    @property
    def width_us(self) -> int:
        return self.end_us - self.start_us

    @property
    def rate_per_second(self) -> float:
        return self.count * MICROS_PER_SECOND / self.width_us


def count_per_window(
    timestamps: Iterable[int],
    start_us: int,
    end_us: int,
    window_us: int = DEFAULT_RATE_WINDOW_US,
) -> tuple[RateWindow, ...]:
    """Fold timestamps into complete windows over ``[start_us, end_us]``.

    Returns only windows with at least one occurrence, ordered by start.
    """
    extent = end_us - start_us
    if extent <= 0:
        return ()

    if extent < window_us:
        total = sum(1 for ts in timestamps if start_us <= ts <= end_us)
        if not total:
            return ()
        return (RateWindow(start_us, end_us, total),)

    full_windows = extent // window_us
    counts: dict[int, int] = {}
    for ts in timestamps:
        index = (ts - start_us) // window_us
        if 0 <= index < full_windows:
            counts[index] = counts.get(index, 0) + 1
    return tuple(
        RateWindow(
            start_us + index * window_us,
            start_us + (index + 1) * window_us,
            counts[index],
        )
        for index in sorted(counts)
    )
