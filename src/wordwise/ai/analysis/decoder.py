"""Resumable decoder turning a chunked model stream into JSON proposal records.

The upstream model is asked to emit one JSON object per proposal, but the text
arrives in arbitrary fragments, may be wrapped in Markdown code fences, and can
contain stray braces in prose. :class:`StreamDecoder` keeps its scan cursor,
nesting depth and string/escape state between :meth:`StreamDecoder.feed` calls,
so each chunk resumes exactly where the previous one stopped.
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum, auto
from typing import Any, AsyncIterable, AsyncIterator, Iterable, Sequence

__all__ = ["DecoderState", "StreamDecoder", "REQUIRED_FIELDS"]

LOGGER = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("originalText", "suggestedText")
_DEFAULT_MAX_RECORD_CHARS = 16_384

_FENCE_RE = re.compile(r"```[A-Za-z]*[ \t]*\r?\n?")
# A trailing fragment that may grow into a fence once the next chunk arrives.
_PARTIAL_FENCE_RE = re.compile(r"`{1,3}[A-Za-z]*[ \t]*\r?$")


class DecoderState(Enum):
    """Scanner state persisted between chunks."""

    SCANNING = auto()
    ACCUMULATING = auto()


class StreamDecoder:
    """Quote-aware brace scanner emitting complete JSON objects from a text stream."""

    def __init__(
        self,
        *,
        required_fields: Sequence[str] = REQUIRED_FIELDS,
        max_record_chars: int = _DEFAULT_MAX_RECORD_CHARS,
    ) -> None:
        # Records longer than max_record_chars are dropped however they are chunked.
        self._required_fields = tuple(required_fields)
        self._max_record_chars = max(2, int(max_record_chars))
        self._buffer = ""
        self._carry = ""
        self._pos = 0
        self._start = -1
        self._depth = 0
        self._in_string = False
        self._escape = False
        self._state = DecoderState.SCANNING
        self.emitted = 0
        self.discarded = 0
        self.malformed = 0

    @property
    def state(self) -> DecoderState:
        return self._state

    @property
    def pending(self) -> str:
        """Unconsumed text currently held by the decoder."""

        return self._buffer + self._carry

    def feed(self, chunk: str) -> list[dict[str, Any]]:
        """Consume ``chunk`` and return every record completed by it, in order."""

        if not chunk:
            return []
        text = self._strip_fences(self._carry + chunk)
        partial = _PARTIAL_FENCE_RE.search(text)
        if partial is not None:
            self._carry = text[partial.start() :]
            text = text[: partial.start()]
        else:
            self._carry = ""
        self._buffer += text
        return self._scan()

    def finish(self) -> list[dict[str, Any]]:
        """Flush held-back input at end of stream and reset the decoder."""

        if self._carry:
            self._buffer += self._strip_fences(self._carry)
            self._carry = ""
        records = self._scan()
        while self._state is DecoderState.ACCUMULATING:
            LOGGER.debug(
                "Stream ended inside an unbalanced record; retrying after brace at %s",
                self._start,
            )
            self._skip_opening_brace()
            records.extend(self._scan())
        self._buffer = ""
        self._pos = 0
        return records

    async def decode_stream(self, chunks: AsyncIterable[str]) -> AsyncIterator[dict[str, Any]]:
        """Async generator form of :meth:`feed`/:meth:`finish`."""

        async for chunk in chunks:
            for record in self.feed(chunk):
                yield record
        for record in self.finish():
            yield record

    def decode_all(self, chunks: Iterable[str]) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for chunk in chunks:
            records.extend(self.feed(chunk))
        records.extend(self.finish())
        return records

    # ------------------------------------------------------------------
    # Scanner
    # ------------------------------------------------------------------
    def _scan(self) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        while True:
            if self._state is DecoderState.SCANNING:
                index = self._buffer.find("{", self._pos)
                if index == -1:
                    self._buffer = ""
                    self._pos = 0
                    return records
                self._begin_record(index)

            end = self._advance_to_balance()
            if end == -1:
                if self._pos - self._start > self._max_record_chars:
                    LOGGER.debug("Record exceeded %s chars without balancing", self._max_record_chars)
                    self._skip_opening_brace()
                    continue
                return records

            length = end - self._start + 1
            if length > self._max_record_chars:
                LOGGER.debug("Record of %s chars exceeds the %s char limit", length, self._max_record_chars)
                self._skip_opening_brace()
                continue

            fragment = self._buffer[self._start : end + 1]
            try:
                payload = json.loads(fragment)
            except json.JSONDecodeError:
                LOGGER.debug("Discarding malformed record fragment: %r", fragment[:80])
                self._skip_opening_brace()
                continue

            self._consume_through(end)
            if isinstance(payload, dict) and all(key in payload for key in self._required_fields):
                self.emitted += 1
                records.append(payload)
            else:
                self.discarded += 1
                LOGGER.debug("Discarding record without required fields: %r", fragment[:80])

    def _begin_record(self, index: int) -> None:
        self._state = DecoderState.ACCUMULATING
        self._start = index
        self._pos = index
        self._depth = 0
        self._in_string = False
        self._escape = False

    def _advance_to_balance(self) -> int:
        buffer = self._buffer
        for index in range(self._pos, len(buffer)):
            char = buffer[index]
            if self._in_string:
                if self._escape:
                    self._escape = False
                elif char == "\\":
                    self._escape = True
                elif char == '"':
                    self._in_string = False
                continue
            if char == '"':
                self._in_string = True
            elif char == "{":
                self._depth += 1
            elif char == "}":
                self._depth -= 1
                if self._depth == 0:
                    self._pos = index + 1
                    return index
        self._pos = len(buffer)
        return -1

    def _consume_through(self, end: int) -> None:
        self._buffer = self._buffer[end + 1 :]
        self._pos = 0
        self._state = DecoderState.SCANNING

    def _skip_opening_brace(self) -> None:
        self.malformed += 1
        self._buffer = self._buffer[self._start + 1 :]
        self._pos = 0
        self._start = -1
        self._state = DecoderState.SCANNING

    @staticmethod
    def _strip_fences(text: str) -> str:
        return _FENCE_RE.sub("", text)
