"""Tests for error taxonomy and classification."""

from __future__ import annotations

import pytest

from traceaudit.resilience.errors import (
    DetectorFailure,
    ErrorClass,
    MalformedTraceError,
    UnmatchedSpanWarning,
    classify_error,
    is_fatal,
)


def test_malformed_is_fatal() -> None:
    assert classify_error(MalformedTraceError("bad")) is ErrorClass.FATAL


@pytest.mark.parametrize(
    "error",
    [FileNotFoundError("gone"), PermissionError("no")],
)
def test_os_errors_fatal(error: Exception) -> None:
    assert is_fatal(error)


def test_unicode_decode_fatal() -> None:
    error = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
    assert classify_error(error) is ErrorClass.FATAL


def test_detector_failure_degraded() -> None:
    error = DetectorFailure("LayoutShift", "score is not a number")
    assert classify_error(error) is ErrorClass.DEGRADED
    assert not is_fatal(error)
    assert str(error) == "LayoutShift: score is not a number"


def test_unmatched_span_degraded() -> None:
    warning = UnmatchedSpanWarning("Layout", "begin", 1_500, thread=(1, 2))
    assert classify_error(warning) is ErrorClass.DEGRADED
    assert str(warning) == "unmatched begin for 'Layout' at 1500us"
    assert warning.thread == (1, 2)


def test_unrecognized_is_unknown() -> None:
    assert classify_error(RuntimeError("boom")) is ErrorClass.UNKNOWN


class TestMalformedMessage:
    def test_without_offset(self) -> None:
        error = MalformedTraceError("trace is empty")
        assert str(error) == "trace is empty"
        assert error.offset is None

    def test_with_offset(self) -> None:
        error = MalformedTraceError("invalid JSON", offset=42)
        assert str(error) == "invalid JSON (at byte 42)"
        assert error.reason == "invalid JSON"
