"""Collect trace-wide metadata while events stream past."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from traceaudit.constants import (
    PROCESS_NAME_EVENT,
    SITE_URL_EVENTS,
    UNKNOWN_SITE,
    Phase,
)
from traceaudit.ingestion.schemas import ProcessInfo, TraceEvent, TraceMetadata


def _pid_sort_key(pid: int | str) -> tuple[int, str]:
    return (0, f"{pid:020d}") if isinstance(pid, int) else (1, str(pid))


class MetadataCollector:
    """Fold over every parsed event (including filtered-out ones)."""

    def __init__(self) -> None:
        self._start: int | None = None
        self._end = 0
        self._count = 0
        self._site_url: str | None = None
        self._processes: dict[int | str, str] = {}

    def observe(self, event: TraceEvent) -> None:
        self._count += 1
        if event.phase is Phase.METADATA:
            if event.name == PROCESS_NAME_EVENT and event.pid is not None:
                name = event.arg("name")
                if isinstance(name, str):
                    self._processes[event.pid] = name
            return
        # Metadata events carry ts=0; keep them out of the extent.
        if self._start is None or event.timestamp_us < self._start:
            self._start = event.timestamp_us
        self._end = max(self._end, event.end_us)
        if self._site_url is None and event.name in SITE_URL_EVENTS:
            self._site_url = _site_url_from(event)

    def finish(
        self, document_metadata: Mapping[str, Any] | None = None
    ) -> TraceMetadata:
        site = self._site_url
        source = None
        # Chrome nests these under a top-level "metadata" object.
        for block in _metadata_blocks(document_metadata):
            if site is None:
                url = block.get("url") or block.get("site_url")
                if isinstance(url, str) and url:
                    site = url
            raw_source = block.get("source")
            if source is None and isinstance(raw_source, str):
                source = raw_source
        start = self._start or 0
        return TraceMetadata(
            site_url=site or UNKNOWN_SITE,
            start_us=start,
            end_us=max(self._end, start),
            event_count=self._count,
            processes=tuple(
                ProcessInfo(pid=pid, name=name)
                for pid, name in sorted(
                    self._processes.items(),
                    key=lambda kv: _pid_sort_key(kv[0]),
                )
            ),
            source=source,
        )


def _metadata_blocks(
    document_metadata: Mapping[str, Any] | None,
) -> list[Mapping[str, Any]]:
    if not document_metadata:
        return []
    blocks = [document_metadata]
    nested = document_metadata.get("metadata")
    if isinstance(nested, Mapping):
        blocks.append(nested)
    return blocks


def _site_url_from(event: TraceEvent) -> str | None:
    frames = event.arg("data", "frames")
    if isinstance(frames, list):
        # The main frame has no parent.
        for frame in frames:
            if (
                isinstance(frame, Mapping)
                and not frame.get("parent")
                and isinstance(frame.get("url"), str)
                and frame["url"]
            ):
                return frame["url"]
    for path in (("data", "url"), ("data", "documentLoaderURL"), ("url",)):
        url = event.arg(*path)
        if isinstance(url, str) and url:
            return url
    return None
