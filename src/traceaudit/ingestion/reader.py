"""Incremental reader for trace-event JSON documents.

Decodes one array element at a time from a file read in fixed-size
chunks, so a trace with hundreds of thousands of events never has to
be held as a single decoded document. Two shapes are accepted:

- ``{"traceEvents": [...], "metadata": {...}, ...}``
- a bare ``[...]`` array of events

Top-level keys other than ``traceEvents`` are decoded whole and
exposed through :attr:`TraceReader.metadata` once iteration reaches
them (Chrome writes ``metadata`` after the event array).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any

from traceaudit.constants import DEFAULT_READ_CHUNK_BYTES
from traceaudit.resilience.errors import MalformedTraceError

logger = logging.getLogger(__name__)

_NUMBER_CHARS = frozenset("0123456789.eE+-")
_WHITESPACE = " \t\n\r"
_EVENTS_KEY = "traceEvents"


class TraceReader:
    """Stream raw event elements out of a JSON trace file."""

    def __init__(
        self,
        source: Path | str | IO[str],
        chunk_size: int = DEFAULT_READ_CHUNK_BYTES,
    ) -> None:
        self._source = source
        self._chunk_size = chunk_size
        self._decoder = json.JSONDecoder()
        self._stream: IO[str] | None = None
        self._buf = ""
        self._pos = 0
        self._consumed = 0  # chars discarded from the front of _buf
        self._eof = False
        self.metadata: dict[str, Any] = {}
        self.shape: str | None = None  # "object" or "array"

    # ── Public API ─────────────────────────────────────────

    def __iter__(self) -> Iterator[Any]:
        """Yield each element of the event array, in file order."""
        owns_stream = not hasattr(self._source, "read")
        if owns_stream:
            try:
                self._stream = open(  # noqa: SIM115
                    self._source, encoding="utf-8"  # type: ignore[arg-type]
                )
            except OSError as exc:
                raise MalformedTraceError(
                    f"cannot open trace: {exc}"
                ) from exc
        else:
            self._stream = self._source  # type: ignore[assignment]
        try:
            yield from self._read_document()
        except UnicodeDecodeError as exc:
            raise MalformedTraceError(
                f"trace is not valid UTF-8: {exc.reason}"
            ) from exc
        finally:
            if owns_stream and self._stream is not None:
                self._stream.close()
            self._stream = None

    # ── Document structure ─────────────────────────────────

    def _read_document(self) -> Iterator[Any]:
        first = self._peek_non_ws()
        if first == "[":
            self.shape = "array"
            self._pos += 1
            yield from self._read_array()
        elif first == "{":
            self.shape = "object"
            self._pos += 1
            yield from self._read_object()
        elif first is None:
            raise MalformedTraceError("trace file is empty")
        else:
            raise MalformedTraceError(
                "trace must be a JSON object or array",
                offset=self._offset(),
            )
        if self._peek_non_ws() is not None:
            raise MalformedTraceError(
                "extra data after trace document", offset=self._offset()
            )

    def _read_object(self) -> Iterator[Any]:
        found_events = False
        if self._peek_non_ws() == "}":
            self._pos += 1
            raise MalformedTraceError("trace object has no traceEvents")
        while True:
            key = self._decode_value()
            if not isinstance(key, str):
                raise MalformedTraceError(
                    "expected an object key", offset=self._offset()
                )
            self._expect(":")
            if key == _EVENTS_KEY:
                if self._peek_non_ws() != "[":
                    raise MalformedTraceError(
                        "traceEvents must be an array",
                        offset=self._offset(),
                    )
                self._pos += 1
                found_events = True
                yield from self._read_array()
            else:
                self.metadata[key] = self._decode_value()
            sep = self._peek_non_ws()
            if sep == ",":
                self._pos += 1
                continue
            if sep == "}":
                self._pos += 1
                break
            raise MalformedTraceError(
                "expected ',' or '}' in trace object",
                offset=self._offset(),
            )
        if not found_events:
            raise MalformedTraceError("trace object has no traceEvents")

    def _read_array(self) -> Iterator[Any]:
        if self._peek_non_ws() == "]":
            self._pos += 1
            return
        while True:
            yield self._decode_value()
            sep = self._peek_non_ws()
            if sep == ",":
                self._pos += 1
                # Chrome sometimes leaves a trailing comma before ']'
                if self._peek_non_ws() == "]":
                    self._pos += 1
                    return
                continue
            if sep == "]":
                self._pos += 1
                return
            if sep is None:
                raise MalformedTraceError(
                    "unterminated event array", offset=self._offset()
                )
            raise MalformedTraceError(
                "expected ',' or ']' in event array",
                offset=self._offset(),
            )

    # ── Buffer primitives ──────────────────────────────────

    def _fill(self) -> bool:
        """Read one more chunk; False at end of input."""
        if self._eof or self._stream is None:
            return False
        chunk = self._stream.read(self._chunk_size)
        if not chunk:
            self._eof = True
            return False
        if self._pos > self._chunk_size:
            self._consumed += self._pos
            self._buf = self._buf[self._pos:]
            self._pos = 0
        self._buf += chunk
        return True

    def _peek_non_ws(self) -> str | None:
        while True:
            while (
                self._pos < len(self._buf)
                and self._buf[self._pos] in _WHITESPACE
            ):
                self._pos += 1
            if self._pos < len(self._buf):
                return self._buf[self._pos]
            if not self._fill():
                return None

    def _expect(self, char: str) -> None:
        if self._peek_non_ws() != char:
            raise MalformedTraceError(
                f"expected {char!r}", offset=self._offset()
            )
        self._pos += 1

    def _decode_value(self) -> Any:
        """Decode the next JSON value, reading more input as needed."""
        if self._peek_non_ws() is None:
            raise MalformedTraceError(
                "unexpected end of trace", offset=self._offset()
            )
        while True:
            try:
                value, end = self._decoder.raw_decode(self._buf, self._pos)
            except json.JSONDecodeError as exc:
                if self._fill():
                    continue
                raise MalformedTraceError(
                    f"invalid JSON: {exc.msg}",
                    offset=self._consumed + exc.pos,
                ) from exc
            # A scalar ending at the buffer edge may be cut short; so may a
            # number followed only by what could still be more of it.
            if self._may_continue(value, end) and self._fill():
                continue
            self._pos = end
            return value

    def _may_continue(self, value: Any, end: int) -> bool:
        if end == len(self._buf):
            return True
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return all(c in _NUMBER_CHARS for c in self._buf[end:])

    def _offset(self) -> int:
        return self._consumed + self._pos
