"""Tests for the incremental trace reader."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from tests.conftest import raw_event
from traceaudit.ingestion.reader import TraceReader
from traceaudit.resilience.errors import MalformedTraceError


def _read(text: str, chunk_size: int = 16) -> tuple[list[object], TraceReader]:
    reader = TraceReader(io.StringIO(text), chunk_size=chunk_size)
    return list(reader), reader


class TestShapes:
    def test_object_shape(self) -> None:
        doc = {"traceEvents": [{"a": 1}, {"b": 2}]}
        items, reader = _read(json.dumps(doc))
        assert items == [{"a": 1}, {"b": 2}]
        assert reader.shape == "object"

    def test_bare_array_shape(self) -> None:
        items, reader = _read(json.dumps([{"a": 1}, 2, "x"]))
        assert items == [{"a": 1}, 2, "x"]
        assert reader.shape == "array"

    def test_metadata_after_events(self) -> None:
        doc = {
            "traceEvents": [{"a": 1}],
            "metadata": {"source": "DevTools"},
        }
        _, reader = _read(json.dumps(doc))
        assert reader.metadata == {"metadata": {"source": "DevTools"}}

    def test_metadata_before_events(self) -> None:
        text = '{"url": "https://a.test/", "traceEvents": [1, 2]}'
        items, reader = _read(text)
        assert items == [1, 2]
        assert reader.metadata["url"] == "https://a.test/"

    def test_empty_array(self) -> None:
        items, _ = _read('{"traceEvents": []}')
        assert items == []

    def test_trailing_comma_tolerated(self) -> None:
        items, _ = _read('[{"a": 1}, {"b": 2},\n]')
        assert items == [{"a": 1}, {"b": 2}]


class TestChunking:
    def test_values_split_across_chunks(self) -> None:
        """Tiny chunks force refills in the middle of tokens."""
        events = [
            raw_event("RunTask", 1_000 + i, 12_345, args={"n": i})
            for i in range(50)
        ]
        text = json.dumps({"traceEvents": events})
        for size in (1, 3, 7, 64):
            items, _ = _read(text, chunk_size=size)
            assert items == events

    def test_number_at_chunk_edge(self) -> None:
        items, _ = _read("[123456789]", chunk_size=4)
        assert items == [123456789]

    @pytest.mark.parametrize("size", [1, 2, 3, 5])
    def test_number_split_after_dot_or_exponent(self, size: int) -> None:
        items, _ = _read('[1.5e+06, 2.25, {"a": 1}]', chunk_size=size)
        assert items == [1.5e6, 2.25, {"a": 1}]

    def test_metadata_number_split(self) -> None:
        text = '{"version": 12.75, "traceEvents": [1]}'
        _, reader = _read(text, chunk_size=2)
        assert reader.metadata["version"] == 12.75

    def test_reads_from_path(self, tmp_path: Path) -> None:
        path = tmp_path / "t.json"
        path.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
        assert list(TraceReader(path, chunk_size=2)) == [1, 2, 3]


class TestMalformed:
    @pytest.mark.parametrize(
        ("text", "reason"),
        [
            ("", "empty"),
            ("   \n", "empty"),
            ('"hello"', "object or array"),
            ("42", "object or array"),
            ("{}", "no traceEvents"),
            ('{"other": 1}', "no traceEvents"),
            ('{"traceEvents": {}}', "must be an array"),
            ('[{"a": 1}', "unterminated"),
            ('[{"a": 1} {"b": 2}]', "expected ','"),
            ('[{"a": }]', "invalid JSON"),
            ("[1] [2]", "extra data"),
        ],
    )
    def test_rejected(self, text: str, reason: str) -> None:
        with pytest.raises(MalformedTraceError, match=reason):
            _read(text)

    def test_invalid_json_reports_offset(self) -> None:
        with pytest.raises(MalformedTraceError) as exc_info:
            _read('[1, 2, {"a": nope}]', chunk_size=4)
        assert exc_info.value.offset is not None
        assert "at byte" in str(exc_info.value)

    def test_missing_file(self, tmp_path: Path) -> None:
        reader = TraceReader(tmp_path / "missing.json")
        with pytest.raises(MalformedTraceError, match="cannot open"):
            list(reader)

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_bytes(b'[{"name": "\xff\xfe"}]')
        with pytest.raises(MalformedTraceError, match="UTF-8"):
            list(TraceReader(path))
