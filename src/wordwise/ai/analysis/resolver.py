"""Anchor correction literals to concrete character ranges."""

from __future__ import annotations

import logging
import re
from typing import Iterator, MutableSet

from ...core.ranges import TextRange
from .models import CorrectionCandidate, ResolvedSuggestion

__all__ = ["SpanResolver", "has_word_boundary"]

LOGGER = logging.getLogger(__name__)

_WORD_CHAR = re.compile(r"[A-Za-z0-9]")


def has_word_boundary(text: str, start: int, length: int) -> bool:
    """Return ``True`` when the characters around ``text[start:start+length]`` are not alphanumeric."""

    end = start + length
    before = text[start - 1] if start > 0 else ""
    after = text[end] if end < len(text) else ""
    return _is_boundary(before) and _is_boundary(after)


def _is_boundary(char: str) -> bool:
    return not char or _WORD_CHAR.match(char) is None


def _occurrences(text: str, literal: str) -> Iterator[int]:
    index = text.find(literal)
    while index != -1:
        yield index
        index = text.find(literal, index + 1)


class SpanResolver:
    """Resolve literals left to right, never reusing a claimed start offset.

    ``used`` is shared across every candidate in one analysis pass so that
    ``k`` identical literals map to ``k`` distinct anchors.
    """

    def __init__(self, used: MutableSet[int] | None = None) -> None:
        self.used: MutableSet[int] = used if used is not None else set()
        self.unresolved = 0

    def reset(self) -> None:
        self.used.clear()
        self.unresolved = 0

    def find_span(self, text: str, literal: str, *, context: str = "") -> TextRange | None:
        span = self._search(text, literal, context)
        if span is None:
            trimmed = literal.strip()
            if trimmed and trimmed != literal:
                span = self._search(text, trimmed, context)
        if span is not None:
            self.used.add(span.start)
        return span

    def resolve(self, text: str, candidate: CorrectionCandidate) -> ResolvedSuggestion | None:
        span = self.find_span(text, candidate.original_literal, context=candidate.context)
        if span is None:
            self.unresolved += 1
            LOGGER.warning("Could not find unused position for %r", candidate.original_literal)
            return None
        literal = text[span.start : span.end]
        if literal != candidate.original_literal:
            # Anchored via the trimmed literal; the suggestion holds what the buffer holds.
            candidate = CorrectionCandidate(
                kind=candidate.kind,
                original_literal=literal,
                suggested_literal=candidate.suggested_literal,
                explanation=candidate.explanation,
            )
        return ResolvedSuggestion.from_candidate(candidate, span)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _search(self, text: str, literal: str, context: str) -> TextRange | None:
        if not literal:
            return None
        size = len(literal)
        if context and len(context) > size:
            relative = context.find(literal)
            if relative != -1:
                for found in _occurrences(text, context):
                    start = found + relative
                    if start not in self.used and has_word_boundary(text, start, size):
                        return TextRange(start, start + size)
        for start in _occurrences(text, literal):
            if start not in self.used and has_word_boundary(text, start, size):
                return TextRange(start, start + size)
        for start in _occurrences(text, literal):
            if start not in self.used:
                return TextRange(start, start + size)
        return None
