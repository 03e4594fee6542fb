"""Network: failed responses and repeated requests."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from urllib.parse import urlsplit, urlunsplit

from traceaudit.analysis.detectors.base import EventDetector
from traceaudit.analysis.detectors.payloads import (
    RequestArgs,
    ResponseArgs,
    read_payload,
)
from traceaudit.analysis.schemas import DetectorResult, Finding
from traceaudit.constants import (
    HTTP_CRITICAL_STATUS,
    HTTP_WARNING_STATUS,
    REDUNDANT_BASE_URL_COUNT,
    REDUNDANT_EXACT_URL_COUNT,
    RESOURCE_RECEIVE_RESPONSE,
    RESOURCE_SEND_REQUEST,
    Category,
    Severity,
)
from traceaudit.ingestion.schemas import TraceEvent, TraceEvents
from traceaudit.resilience.errors import DetectorFailure


class NetworkErrorDetector(EventDetector):
    category = Category.NETWORK_ERRORS
    event_names = frozenset({RESOURCE_RECEIVE_RESPONSE})
    requires_duration = False

    def inspect(self, event: TraceEvent) -> Finding | None:
        response = read_payload(event, ResponseArgs, "data")
        status = response.status_code
        if status >= HTTP_CRITICAL_STATUS:
            severity = Severity.CRITICAL
        elif status >= HTTP_WARNING_STATUS:
            severity = Severity.WARNING
        else:
            return None
        return self.finding(
            event,
            severity,
            float(status),
            status_code=status,
            url=response.url,
            request_id=response.request_id,
        )


def base_url(url: str) -> str:
    """``url`` without its query string and fragment."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


@dataclass
class _UrlGroup:
    first_ts: int
    last_ts: int
    exact: Counter[str] = field(default_factory=lambda: Counter[str]())

    @property
    def total(self) -> int:
        return sum(self.exact.values())


class RedundantFetchDetector(EventDetector):
    """Requests grouped by base URL.

    A base URL requested more than twice is a Warning. The group is
    Critical only when one exact URL (query included) repeats more than
    three times; base-URL-only repetition stays at Warning.
    """

    category = Category.REDUNDANT_FETCHES
    event_names = frozenset({RESOURCE_SEND_REQUEST})
    requires_duration = False

    def detect(self, events: TraceEvents) -> DetectorResult:
        groups: dict[str, _UrlGroup] = {}
        skipped = 0
        for event in self.candidates(events):
            try:
                request = read_payload(event, RequestArgs, "data")
            except DetectorFailure:
                skipped += 1
                continue
            key = base_url(request.url)
            group = groups.get(key)
            if group is None:
                group = groups[key] = _UrlGroup(
                    event.timestamp_us, event.timestamp_us
                )
            group.last_ts = event.timestamp_us
            group.exact[request.url] += 1

        findings: list[Finding] = []
        for key, group in sorted(
            groups.items(), key=lambda kv: (kv[1].first_ts, kv[0])
        ):
            if group.total <= REDUNDANT_BASE_URL_COUNT:
                continue
            # most_common ties fall back to insertion order; sort instead
            top_url, top_count = min(
                group.exact.items(), key=lambda kv: (-kv[1], kv[0])
            )
            severity = (
                Severity.CRITICAL
                if top_count > REDUNDANT_EXACT_URL_COUNT
                else Severity.WARNING
            )
            findings.append(
                Finding(
                    category=self.category,
                    severity=severity,
                    timestamp_us=group.first_ts,
                    duration_us=group.last_ts - group.first_ts,
                    metric=float(group.total),
                    detail={
                        "base_url": key,
                        "distinct_urls": len(group.exact),
                        "top_url": top_url,
                        "top_url_count": top_count,
                    },
                )
            )
        return self.result(findings, skipped)
