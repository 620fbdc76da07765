"""Interval index of active suggestions keyed by their anchor offset."""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator

from ..ai.analysis.models import ResolvedSuggestion
from ..core.ranges import TextRange

__all__ = ["Segment", "SuggestionIndex"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Segment:
    """A run of characters covered by the same set of suggestions."""

    start: int
    end: int
    primary: ResolvedSuggestion | None = None
    covering: tuple[ResolvedSuggestion, ...] = ()

    @property
    def span(self) -> TextRange:
        return TextRange(self.start, self.end)

    @property
    def is_covered(self) -> bool:
        return self.primary is not None


class SuggestionIndex:
    """Suggestions ordered by ``start``; no two entries share an anchor.

    Ranges may overlap. Mutation is limited to the apply engine and the
    editing session, which keeps entries aligned with the buffer.
    """

    def __init__(self, suggestions: Iterable[ResolvedSuggestion] = ()) -> None:
        self._starts: list[int] = []
        self._by_start: dict[int, ResolvedSuggestion] = {}
        self._by_id: dict[str, ResolvedSuggestion] = {}
        for suggestion in suggestions:
            self.insert(suggestion)

    # ------------------------------------------------------------------
    # Collection protocol
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._starts)

    def __iter__(self) -> Iterator[ResolvedSuggestion]:
        for start in list(self._starts):
            yield self._by_start[start]

    def __contains__(self, suggestion_id: object) -> bool:
        return suggestion_id in self._by_id

    def __bool__(self) -> bool:
        return bool(self._starts)

    def get(self, suggestion_id: str) -> ResolvedSuggestion | None:
        return self._by_id.get(suggestion_id)

    def at(self, start: int) -> ResolvedSuggestion | None:
        return self._by_start.get(start)

    def snapshot(self) -> tuple[ResolvedSuggestion, ...]:
        return tuple(self)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def insert(self, suggestion: ResolvedSuggestion) -> bool:
        """Add ``suggestion`` unless its anchor (or id) is already taken."""

        if suggestion.start in self._by_start or suggestion.id in self._by_id:
            LOGGER.debug("Rejecting suggestion %s: anchor %s already indexed", suggestion.id, suggestion.start)
            return False
        bisect.insort(self._starts, suggestion.start)
        self._by_start[suggestion.start] = suggestion
        self._by_id[suggestion.id] = suggestion
        return True

    def remove(self, suggestion_id: str) -> ResolvedSuggestion | None:
        suggestion = self._by_id.pop(suggestion_id, None)
        if suggestion is None:
            return None
        del self._by_start[suggestion.start]
        index = bisect.bisect_left(self._starts, suggestion.start)
        del self._starts[index]
        return suggestion

    def remove_range(self, start: int, end: int) -> list[ResolvedSuggestion]:
        """Remove every suggestion lying entirely inside ``[start, end]``."""

        bounds = TextRange(start, end)
        doomed = [item for item in self._window(bounds.start, bounds.end) if bounds.contains(item.span)]
        return self._discard(doomed)

    def remove_overlapping(self, start: int, end: int) -> list[ResolvedSuggestion]:
        """Remove every suggestion sharing at least one character with ``[start, end)``."""

        bounds = TextRange(start, end)
        doomed = [item for item in self if item.span.overlaps(bounds)]
        return self._discard(doomed)

    def shift(self, from_position: int, delta: int) -> int:
        """Move every suggestion anchored at or after ``from_position`` by ``delta``."""

        if delta == 0:
            return 0
        cut = bisect.bisect_left(self._starts, from_position)
        moving = [self._by_start[start] for start in self._starts[cut:]]
        if not moving:
            return 0
        self._discard(moving)
        shifted = 0
        for suggestion in moving:
            if self.insert(suggestion.shifted(delta)):
                shifted += 1
            else:
                LOGGER.warning("Dropping suggestion %s: shifted anchor collides", suggestion.id)
        return shifted

    def clear(self) -> None:
        self._starts.clear()
        self._by_start.clear()
        self._by_id.clear()

    def replace_all(self, suggestions: Iterable[ResolvedSuggestion]) -> int:
        self.clear()
        return sum(1 for suggestion in suggestions if self.insert(suggestion))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def covering_segments(self, visible_start: int = 0, visible_end: int | None = None) -> list[Segment]:
        """Split ``[visible_start, visible_end)`` at every suggestion boundary.

        Each segment lists the suggestions fully covering it; the one with the
        lowest priority value (ties broken by anchor) is the ``primary``.
        """

        if visible_end is None:
            visible_end = max((item.end for item in self), default=visible_start)
        window = TextRange(visible_start, visible_end)
        points = {window.start, window.end}
        candidates = [item for item in self if item.span.overlaps(window)]
        for item in candidates:
            for point in (item.start, item.end):
                if window.start < point < window.end:
                    points.add(point)
        ordered = sorted(points)

        segments: list[Segment] = []
        for left, right in zip(ordered, ordered[1:]):
            if left >= right:
                continue
            covering = tuple(
                sorted(
                    (item for item in candidates if item.start <= left and item.end >= right),
                    key=lambda item: (item.priority, item.start),
                )
            )
            segments.append(
                Segment(start=left, end=right, primary=covering[0] if covering else None, covering=covering)
            )
        return segments

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _window(self, start: int, end: int) -> list[ResolvedSuggestion]:
        lo = bisect.bisect_left(self._starts, start)
        hi = bisect.bisect_right(self._starts, end)
        return [self._by_start[anchor] for anchor in self._starts[lo:hi]]

    def _discard(self, doomed: Iterable[ResolvedSuggestion]) -> list[ResolvedSuggestion]:
        removed: list[ResolvedSuggestion] = []
        for item in doomed:
            if self.remove(item.id) is not None:
                removed.append(item)
        return removed
