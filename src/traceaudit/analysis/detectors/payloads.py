"""Tagged argument models, one per payload shape a detector reads.

Chrome nests most event payloads under ``args.data``; a few (GC heap
sizes, ``elementCount``) sit directly on ``args``. :func:`read_payload`
validates at the boundary and turns any mismatch into a
``DetectorFailure`` for that single event.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from traceaudit.ingestion.schemas import TraceEvent
from traceaudit.resilience.errors import DetectorFailure

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class _Payload(BaseModel):
    model_config = ConfigDict(
        frozen=True, extra="ignore", populate_by_name=True
    )


class ResponseArgs(_Payload):
    status_code: int = Field(alias="statusCode")
    url: str | None = None
    request_id: str | None = Field(default=None, alias="requestId")
    mime_type: str | None = Field(default=None, alias="mimeType")


class RequestArgs(_Payload):
    url: str = Field(min_length=1)
    request_method: str | None = Field(default=None, alias="requestMethod")
    request_id: str | None = Field(default=None, alias="requestId")


class LayoutShiftArgs(_Payload):
    score: float = Field(ge=0)
    had_recent_input: bool = False


class StyleRecalcArgs(_Payload):
    element_count: int | None = Field(default=None, alias="elementCount", ge=0)


class GCArgs(_Payload):
    heap_before: int | None = Field(default=None, alias="usedHeapSizeBefore")
    heap_after: int | None = Field(default=None, alias="usedHeapSizeAfter")


class EventTimingArgs(_Payload):
    duration_ms: float | None = Field(default=None, alias="duration", ge=0)
    type: str | None = None
    interaction_id: int | None = Field(default=None, alias="interactionId")


class ScriptArgs(_Payload):
    url: str | None = None


class StackFrame(_Payload):
    function_name: str = Field(default="", alias="functionName")
    url: str = ""
    line_number: int | None = Field(default=None, alias="lineNumber")
    column_number: int | None = Field(default=None, alias="columnNumber")

    def describe(self) -> str:
        where = self.url or "<anonymous>"
        if self.line_number is not None:
            where = f"{where}:{self.line_number}"
        return f"{self.function_name or '(anonymous)'} @ {where}"


class LayoutArgs(_Payload):
    stack_trace: list[StackFrame] = Field(
        default_factory=lambda: list[StackFrame](), alias="stackTrace"
    )


def read_payload(
    event: TraceEvent,
    model: type[T],
    *path: str,
) -> T:
    """Validate the mapping at ``args[path...]`` into ``model``.

    With an empty path the whole ``args`` mapping is validated. When
    the nested mapping is missing, ``args`` itself is tried so flat
    payloads are accepted too.
    """
    node: Any = event.arg(*path) if path else event.args
    if node is None and path:
        node = event.args
    if not isinstance(node, Mapping):
        raise DetectorFailure(event.name, "args payload is not an object")
    try:
        return model.model_validate(dict(node))
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise DetectorFailure(
            event.name, f"{field or 'payload'}: {first.get('msg')}"
        ) from exc


def stack_trace_of(event: TraceEvent) -> list[StackFrame]:
    """Frames attached to a Layout event, wherever Chrome put them."""
    for path in (("beginData",), ("data",), ()):
        node = event.arg(*path) if path else event.args
        if isinstance(node, Mapping) and node.get("stackTrace"):
            return read_payload(event, LayoutArgs, *path).stack_trace
    return []


def read_evidence(
    event: TraceEvent,
    model: type[T],
    *path: str,
) -> T | None:
    """Like :func:`read_payload`, for fields that only decorate a finding.

    A malformed payload yields ``None`` instead of skipping the event.
    """
    try:
        return read_payload(event, model, *path)
    except DetectorFailure as exc:
        logger.debug(
            "event=evidence_dropped name=%s reason=%s", event.name, exc.reason
        )
        return None
