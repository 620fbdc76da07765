"""Single-editor session tying the buffer, suggestions and history together."""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from typing import AsyncIterable, Callable

from ..ai.analysis.models import ResolvedSuggestion
from ..services import telemetry
from .apply_engine import ApplyEngine, ApplyResult
from .document_model import DocumentBuffer
from .history import EditHistory, HistorySnapshot
from .suggestion_index import Segment, SuggestionIndex

__all__ = ["AnalysisOutcome", "AnalysisTicket", "EditorSession", "SuggestionSource"]

LOGGER = logging.getLogger(__name__)

SuggestionSource = Callable[[str], AsyncIterable[ResolvedSuggestion]]


@dataclass(slots=True, frozen=True)
class AnalysisTicket:
    """The buffer version and text an analysis pass was issued against."""

    version: int
    text: str
    serial: int = 0


@dataclass(slots=True, frozen=True)
class AnalysisOutcome:
    ticket: AnalysisTicket
    accepted: int
    rejected: int
    stale: bool


class EditorSession:
    """Headless editing session; one analysis pass is authoritative at a time.

    Every pass carries an :class:`AnalysisTicket`. Once the buffer version
    moves past the ticket (a keystroke, an accepted suggestion, undo or redo)
    the rest of that pass is discarded.
    """

    def __init__(
        self,
        text: str = "",
        *,
        history_debounce_seconds: float = 1.0,
        analysis_debounce_seconds: float = 2.0,
        max_history: int = EditHistory.MAX_DEPTH,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._clock = clock or time.monotonic
        self._buffer = DocumentBuffer(text=text)
        self._index = SuggestionIndex()
        self._history = EditHistory(
            text,
            debounce_seconds=history_debounce_seconds,
            max_depth=max_history,
            clock=self._clock,
        )
        self._engine = ApplyEngine(self._buffer, self._index, self._history)
        self._analysis_delay = max(0.0, float(analysis_debounce_seconds))
        self._analysis_due_at: float | None = None
        self._active_ticket: AnalysisTicket | None = None
        self._ticket_serials = itertools.count(1)

    @classmethod
    def from_settings(cls, settings, text: str = "", **kwargs) -> EditorSession:
        return cls(
            text,
            history_debounce_seconds=settings.history_debounce_seconds,
            analysis_debounce_seconds=settings.analysis_debounce_seconds,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def text(self) -> str:
        return self._buffer.text

    @property
    def version(self) -> int:
        return self._buffer.version

    @property
    def buffer(self) -> DocumentBuffer:
        return self._buffer

    @property
    def index(self) -> SuggestionIndex:
        return self._index

    @property
    def history(self) -> EditHistory:
        return self._history

    @property
    def suggestions(self) -> tuple[ResolvedSuggestion, ...]:
        return self._index.snapshot()

    @property
    def analysis_due(self) -> bool:
        return self._analysis_due_at is not None and self._clock() >= self._analysis_due_at

    def is_current(self, ticket: AnalysisTicket) -> bool:
        return ticket == self._active_ticket and ticket.version == self._buffer.version

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def type_text(self, new_text: str) -> int:
        """Replace the buffer with user-typed text and return the new version."""

        if new_text == self._buffer.text:
            return self._buffer.version
        version = self._buffer.update_text(new_text)
        self._index.clear()
        self._history.record(new_text)
        self._analysis_due_at = self._clock() + self._analysis_delay
        return version

    def poll(self) -> HistorySnapshot | None:
        """Commit a due debounced history record."""

        return self._history.poll()

    def accept(self, suggestion_id: str) -> ApplyResult:
        return self._engine.apply(suggestion_id)

    def dismiss(self, suggestion_id: str) -> ResolvedSuggestion:
        return self._engine.dismiss(suggestion_id)

    def undo(self) -> HistorySnapshot | None:
        return self._restore(self._history.undo())

    def redo(self) -> HistorySnapshot | None:
        return self._restore(self._history.redo())

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------
    def begin_analysis(self) -> AnalysisTicket:
        """Issue a ticket for the current version, superseding any earlier pass."""

        self._analysis_due_at = None
        ticket = AnalysisTicket(
            version=self._buffer.version,
            text=self._buffer.text,
            serial=next(self._ticket_serials),
        )
        self._active_ticket = ticket
        self._index.clear()
        return ticket

    def ingest(self, ticket: AnalysisTicket, suggestion: ResolvedSuggestion) -> bool:
        """Index ``suggestion`` if its ticket is still authoritative and it still matches."""

        if not self.is_current(ticket):
            telemetry.emit(
                "analysis.stale_discarded",
                {"ticket_version": ticket.version, "version": self._buffer.version, "suggestion_id": suggestion.id},
            )
            return False
        if not suggestion.matches(self._buffer.text):
            LOGGER.debug("Dropping suggestion %s: literal no longer at its anchor", suggestion.id)
            return False
        return self._index.insert(suggestion)

    async def run_analysis(self, source: SuggestionSource) -> AnalysisOutcome:
        """Consume one pass from ``source`` for the current text."""

        ticket = self.begin_analysis()
        accepted = rejected = 0
        stream = source(ticket.text)
        try:
            async for suggestion in stream:
                if not self.is_current(ticket):
                    self.ingest(ticket, suggestion)
                    LOGGER.info("Analysis for version %s superseded by version %s", ticket.version, self.version)
                    return AnalysisOutcome(ticket=ticket, accepted=accepted, rejected=rejected, stale=True)
                if self.ingest(ticket, suggestion):
                    accepted += 1
                else:
                    rejected += 1
        finally:
            close = getattr(stream, "aclose", None)
            if close is not None:
                await close()

        stale = not self.is_current(ticket)
        if not stale:
            self._history.flush()
            if self._history.current.text == self._buffer.text:
                self._history.sync_suggestions(self._index.snapshot())
        return AnalysisOutcome(ticket=ticket, accepted=accepted, rejected=rejected, stale=stale)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def covering_segments(self, visible_start: int = 0, visible_end: int | None = None) -> list[Segment]:
        end = len(self._buffer.text) if visible_end is None else min(visible_end, len(self._buffer.text))
        return self._index.covering_segments(visible_start, end)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _restore(self, snapshot: HistorySnapshot | None) -> HistorySnapshot | None:
        if snapshot is None:
            return None
        self._analysis_due_at = None
        self._active_ticket = None
        self._buffer.update_text(snapshot.text)
        self._index.replace_all(item for item in snapshot.suggestions if item.matches(snapshot.text))
        return snapshot
