"""Atomic accept/dismiss transactions over the buffer, index and history."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..ai.analysis.errors import StaleSuggestionError, SuggestionNotFoundError
from ..ai.analysis.models import ResolvedSuggestion
from ..core.ranges import TextRange
from ..services import telemetry
from .document_model import DocumentBuffer
from .history import EditHistory, HistorySnapshot
from .suggestion_index import SuggestionIndex

__all__ = ["ApplyEngine", "ApplyResult", "preserve_edge_spaces"]

LOGGER = logging.getLogger(__name__)


def preserve_edge_spaces(original: str, replacement: str) -> str:
    """Re-add a leading/trailing space the replacement dropped from ``original``."""

    if original.startswith(" ") and not replacement.startswith(" "):
        replacement = " " + replacement
    if original.endswith(" ") and not replacement.endswith(" "):
        replacement = replacement + " "
    return replacement


@dataclass(slots=True, frozen=True)
class ApplyResult:
    """Outcome of a single accepted suggestion."""

    suggestion: ResolvedSuggestion
    replacement: str
    delta: int
    version: int
    removed: tuple[ResolvedSuggestion, ...]
    invalidated: tuple[ResolvedSuggestion, ...]
    snapshot: HistorySnapshot

    @property
    def span(self) -> TextRange:
        return TextRange(self.suggestion.start, self.suggestion.start + len(self.replacement))


class ApplyEngine:
    """The only component allowed to mutate text on behalf of a suggestion."""

    def __init__(self, buffer: DocumentBuffer, index: SuggestionIndex, history: EditHistory) -> None:
        self._buffer = buffer
        self._index = index
        self._history = history

    def apply(self, suggestion_id: str) -> ApplyResult:
        """Splice the suggestion into the buffer and re-align the index.

        Raises:
            SuggestionNotFoundError: ``suggestion_id`` is not indexed.
            StaleSuggestionError: the buffer no longer holds the original
                literal at the suggestion's span; nothing is mutated.
        """

        suggestion = self._index.get(suggestion_id)
        if suggestion is None:
            raise SuggestionNotFoundError(suggestion_id=suggestion_id)
        text = self._buffer.text
        actual = text[suggestion.start : suggestion.end]
        if not suggestion.matches(text):
            raise StaleSuggestionError(
                suggestion_id=suggestion_id,
                expected=suggestion.original_literal,
                actual=actual,
            )

        start, end = suggestion.start, suggestion.end
        replacement = preserve_edge_spaces(suggestion.original_literal, suggestion.suggested_literal)
        delta = len(replacement) - (end - start)

        removed = self._index.remove_range(start, end)
        invalidated = self._index.remove_overlapping(start, end)
        self._index.shift(end, delta)
        version = self._buffer.splice(suggestion.span, replacement)
        snapshot = self._history.checkpoint(self._buffer.text, self._index.snapshot())

        if invalidated:
            LOGGER.debug(
                "Applying %s invalidated %s overlapping suggestion(s)",
                suggestion_id,
                len(invalidated),
            )
        telemetry.emit(
            "suggestion.applied",
            {
                "suggestion_id": suggestion_id,
                "kind": suggestion.kind.value,
                "delta": delta,
                "removed": len(removed),
                "invalidated": len(invalidated),
                "version": version,
            },
        )
        return ApplyResult(
            suggestion=suggestion,
            replacement=replacement,
            delta=delta,
            version=version,
            removed=tuple(removed),
            invalidated=tuple(invalidated),
            snapshot=snapshot,
        )

    def dismiss(self, suggestion_id: str) -> ResolvedSuggestion:
        """Drop a suggestion without touching the text or adding a history checkpoint.

        The cursor snapshot forgets the suggestion too, so undoing a later
        apply does not bring it back.
        """

        suggestion = self._index.remove(suggestion_id)
        if suggestion is None:
            raise SuggestionNotFoundError(suggestion_id=suggestion_id)
        if not self._history.has_pending and self._history.current.text == self._buffer.text:
            self._history.sync_suggestions(self._index.snapshot())
        telemetry.emit(
            "suggestion.dismissed",
            {"suggestion_id": suggestion_id, "kind": suggestion.kind.value},
        )
        return suggestion
