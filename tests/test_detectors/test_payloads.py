"""Tests for argument payload validation."""

from __future__ import annotations

import pytest

from tests.conftest import make_event
from traceaudit.analysis.detectors.payloads import (
    GCArgs,
    LayoutShiftArgs,
    ResponseArgs,
    StackFrame,
    read_evidence,
    read_payload,
    stack_trace_of,
)
from traceaudit.resilience.errors import DetectorFailure


class TestReadPayload:
    def test_nested_data(self) -> None:
        event = make_event(
            "ResourceReceiveResponse", 0,
            args={"data": {"statusCode": 404, "requestId": "abc"}},
        )
        payload = read_payload(event, ResponseArgs, "data")
        assert payload.status_code == 404
        assert payload.request_id == "abc"

    def test_flat_args_fallback(self) -> None:
        event = make_event("MajorGC", 0, args={"usedHeapSizeBefore": 10})
        assert read_payload(event, GCArgs, "data").heap_before == 10

    def test_validation_error_names_field(self) -> None:
        event = make_event("LayoutShift", 0, args={"data": {"score": -1}})
        with pytest.raises(DetectorFailure, match="score"):
            read_payload(event, LayoutShiftArgs, "data")

    def test_non_object_payload(self) -> None:
        event = make_event("LayoutShift", 0, args={"data": [1, 2]})
        with pytest.raises(DetectorFailure, match="not an object"):
            read_payload(event, LayoutShiftArgs, "data")

    def test_extra_fields_ignored(self) -> None:
        event = make_event(
            "LayoutShift", 0,
            args={"data": {"score": 0.2, "impacted_nodes": [1]}},
        )
        assert read_payload(event, LayoutShiftArgs, "data").score == 0.2


class TestStackTrace:
    def test_absent(self) -> None:
        assert stack_trace_of(make_event("Layout", 0, 10)) == []

    def test_data_location(self) -> None:
        event = make_event(
            "Layout", 0, 10,
            args={"data": {"stackTrace": [{"functionName": "f"}]}},
        )
        (frame,) = stack_trace_of(event)
        assert frame.function_name == "f"

    def test_describe_anonymous(self) -> None:
        assert StackFrame().describe() == "(anonymous) @ <anonymous>"


class TestReadEvidence:
    def test_valid_payload(self) -> None:
        event = make_event("MajorGC", 0, args={"usedHeapSizeAfter": 5})
        evidence = read_evidence(event, GCArgs)
        assert evidence is not None
        assert evidence.heap_after == 5

    def test_malformed_payload_is_none(self) -> None:
        event = make_event("MajorGC", 0, args={"usedHeapSizeAfter": "x"})
        assert read_evidence(event, GCArgs) is None
