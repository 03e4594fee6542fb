"""Begin/End span pairing.

Synchronous ``B``/``E`` events are matched per ``(pid, tid, name)``;
async ``b``/``e`` events per ``(pid, category, id, name)``. Each key
holds a stack so nested spans of the same name pair innermost-first.
A matched pair becomes one Complete event spanning Begin → End whose
args are the Begin args updated with the End args.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Hashable
from types import MappingProxyType

from traceaudit.constants import Phase
from traceaudit.ingestion.schemas import TraceEvent
from traceaudit.resilience.errors import UnmatchedSpanWarning

logger = logging.getLogger(__name__)

_OPENERS = frozenset({Phase.BEGIN, Phase.ASYNC_BEGIN})
_CLOSERS = frozenset({Phase.END, Phase.ASYNC_END})


def _span_key(event: TraceEvent) -> Hashable:
    if event.phase in (Phase.ASYNC_BEGIN, Phase.ASYNC_END):
        return ("async", event.pid, event.category, event.span_id, event.name)
    return ("sync", event.pid, event.tid, event.name)


class SpanMatcher:
    """Stateful pairing pass owned by a single parse."""

    def __init__(self) -> None:
        self._open: defaultdict[Hashable, list[TraceEvent]] = defaultdict(
            list
        )
        self.unmatched: list[UnmatchedSpanWarning] = []

    def feed(self, event: TraceEvent) -> TraceEvent | None:
        """Consume one event.

        Returns the event to emit now: non-span events pass through, an
        End returns the merged Complete event, a Begin returns None
        (held until its End arrives or :meth:`finish` is called).
        """
        if event.phase in _OPENERS:
            self._open[_span_key(event)].append(event)
            return None
        if event.phase not in _CLOSERS:
            return event

        # End events may omit the name; Chrome allows it for B/E.
        key = _span_key(event)
        stack = self._open.get(key)
        if not stack and not event.name:
            key, stack = self._nameless_match(event)
        if not stack:
            self.unmatched.append(
                UnmatchedSpanWarning(
                    event.name, "end", event.timestamp_us, event.tid
                )
            )
            return None
        begin = stack.pop()
        duration = event.timestamp_us - begin.timestamp_us
        if duration < 0:
            self.unmatched.append(
                UnmatchedSpanWarning(
                    begin.name, "end", event.timestamp_us, event.tid
                )
            )
            return TraceEvent(
                name=begin.name,
                category=begin.category,
                phase=begin.phase,
                timestamp_us=begin.timestamp_us,
                pid=begin.pid,
                tid=begin.tid,
                span_id=begin.span_id,
                args=begin.args,
            )
        merged = dict(begin.args)
        merged.update(event.args)
        return TraceEvent(
            name=begin.name,
            category=begin.category,
            phase=Phase.COMPLETE,
            timestamp_us=begin.timestamp_us,
            duration_us=duration,
            pid=begin.pid,
            tid=begin.tid,
            span_id=begin.span_id,
            thread_duration_us=begin.thread_duration_us,
            args=MappingProxyType(merged),
        )

    def finish(self) -> list[TraceEvent]:
        """Flush Begin events that never closed.

        They are returned with ``duration_us=None`` so instant-style
        detectors still see them, and recorded as unmatched.
        """
        leftovers: list[TraceEvent] = []
        for stack in self._open.values():
            for begin in stack:
                self.unmatched.append(
                    UnmatchedSpanWarning(
                        begin.name, "begin", begin.timestamp_us, begin.tid
                    )
                )
                leftovers.append(begin)
        self._open.clear()
        if self.unmatched:
            logger.info(
                "event=unmatched_spans count=%d", len(self.unmatched)
            )
        return leftovers

    def _nameless_match(
        self, end: TraceEvent
    ) -> tuple[Hashable, list[TraceEvent] | None]:
        """Find the most recent open sync span on the End's thread."""
        best_key: Hashable = None
        best: TraceEvent | None = None
        for key, stack in self._open.items():
            if not stack or key[0] != "sync":  # type: ignore[index]
                continue
            top = stack[-1]
            if top.pid == end.pid and top.tid == end.tid and (
                best is None or top.timestamp_us >= best.timestamp_us
            ):
                best_key, best = key, top
        if best is None:
            return None, None
        return best_key, self._open[best_key]
