"""Debounced linear undo/redo history for the editing session."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable

from ..ai.analysis.models import ResolvedSuggestion

__all__ = ["EditHistory", "HistorySnapshot"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class HistorySnapshot:
    """Buffer text and the suggestion set synchronized with it."""

    text: str
    timestamp: float
    suggestions: tuple[ResolvedSuggestion, ...] = ()


@dataclass(slots=True)
class _PendingRecord:
    text: str
    due_at: float
    bursts: int = field(default=1)


class EditHistory:
    """Linear snapshot stack with a cursor.

    ``record`` is debounced: bursts of calls inside ``debounce_seconds``
    collapse into one snapshot committed by :meth:`poll` or :meth:`flush`.
    ``checkpoint`` commits immediately. The cursor's snapshot always equals
    the buffer as last synchronized, and committing while the cursor is not
    at the end discards the redo branch.
    """

    MAX_DEPTH = 100

    def __init__(
        self,
        initial_text: str = "",
        *,
        debounce_seconds: float = 1.0,
        max_depth: int = MAX_DEPTH,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._clock = clock or time.monotonic
        self._debounce = max(0.0, float(debounce_seconds))
        self._max_depth = max(2, int(max_depth))
        self._stack: list[HistorySnapshot] = [HistorySnapshot(text=initial_text, timestamp=self._clock())]
        self._cursor = 0
        self._pending: _PendingRecord | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def debounce_seconds(self) -> float:
        return self._debounce

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> HistorySnapshot:
        return self._stack[self._cursor]

    @property
    def snapshots(self) -> tuple[HistorySnapshot, ...]:
        return tuple(self._stack)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    @property
    def can_undo(self) -> bool:
        return self._pending is not None or self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._stack) - 1

    def __len__(self) -> int:
        return len(self._stack)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    def record(self, text: str) -> None:
        """Schedule ``text`` for commit once the debounce delay elapses."""

        due_at = self._clock() + self._debounce
        if self._pending is None:
            self._pending = _PendingRecord(text=text, due_at=due_at)
        else:
            self._pending.text = text
            self._pending.due_at = due_at
            self._pending.bursts += 1

    def poll(self) -> HistorySnapshot | None:
        """Commit the pending record if its delay has elapsed."""

        if self._pending is None or self._clock() < self._pending.due_at:
            return None
        return self.flush()

    def flush(self) -> HistorySnapshot | None:
        """Commit the pending record now, regardless of the delay."""

        pending = self._pending
        if pending is None:
            return None
        self._pending = None
        if pending.bursts > 1:
            LOGGER.debug("Coalesced %s edits into one history snapshot", pending.bursts)
        return self._commit(pending.text, ())

    def checkpoint(self, text: str, suggestions: Iterable[ResolvedSuggestion] = ()) -> HistorySnapshot:
        """Commit ``text`` immediately, flushing any pending record first.

        Identical text does not grow the stack; the cursor snapshot's
        suggestion set is refreshed instead.
        """

        self.flush()
        items = tuple(suggestions)
        committed = self._commit(text, items)
        if committed is not None:
            return committed
        self._stack[self._cursor] = replace(self.current, suggestions=items)
        return self.current

    def sync_suggestions(self, suggestions: Iterable[ResolvedSuggestion]) -> HistorySnapshot:
        """Attach ``suggestions`` to the cursor snapshot without moving it."""

        self._stack[self._cursor] = replace(self.current, suggestions=tuple(suggestions))
        return self.current

    def reset(self, text: str = "") -> None:
        self._pending = None
        self._stack = [HistorySnapshot(text=text, timestamp=self._clock())]
        self._cursor = 0

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def undo(self) -> HistorySnapshot | None:
        """Step back one snapshot, cancelling any pending record.

        Uncommitted typing is reverted first: when a record is pending the
        cursor stays put and its snapshot is returned.
        """

        if self._pending is not None:
            pending, self._pending = self._pending, None
            if pending.text != self.current.text:
                return self.current
        if self._cursor == 0:
            return None
        self._cursor -= 1
        return self.current

    def redo(self) -> HistorySnapshot | None:
        self._pending = None
        if not self.can_redo:
            return None
        self._cursor += 1
        return self.current

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _commit(self, text: str, suggestions: tuple[ResolvedSuggestion, ...]) -> HistorySnapshot | None:
        if text == self.current.text:
            return None
        if self.can_redo:
            dropped = len(self._stack) - self._cursor - 1
            del self._stack[self._cursor + 1 :]
            LOGGER.debug("Discarded %s redo snapshot(s)", dropped)
        snapshot = HistorySnapshot(text=text, timestamp=self._clock(), suggestions=suggestions)
        self._stack.append(snapshot)
        if len(self._stack) > self._max_depth:
            self._stack.pop(0)
        self._cursor = len(self._stack) - 1
        return snapshot
