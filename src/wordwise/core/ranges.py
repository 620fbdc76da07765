"""Half-open character spans shared by the resolver, index and buffer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterator

__all__ = ["TextRange"]


def _offset(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"span {label} must be an integer, not a bool")
    try:
        return max(0, int(value))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"span {label} must be an integer") from exc


@dataclass(slots=True, frozen=True, order=True)
class TextRange:
    """``[start, end)`` in absolute character offsets.

    Offsets are clamped at zero and a reversed pair is swapped, so every
    instance satisfies ``0 <= start <= end``.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        low, high = sorted((_offset(self.start, "start"), _offset(self.end, "end")))
        object.__setattr__(self, "start", low)
        object.__setattr__(self, "end", high)

    def __iter__(self) -> Iterator[int]:
        return iter((self.start, self.end))

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_caret(self) -> bool:
        return self.length == 0

    def contains(self, other: TextRange) -> bool:
        """Closed containment: ``other`` may touch either edge."""

        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: TextRange) -> bool:
        return max(self.start, other.start) < min(self.end, other.end)

    def shifted(self, delta: int) -> TextRange:
        return TextRange(self.start + delta, self.end + delta)

    def clamp(self, *, lower: int = 0, upper: int | None = None) -> TextRange:
        ceiling = self.end if upper is None else upper

        def bound(value: int) -> int:
            return min(max(value, lower), ceiling)

        return TextRange(bound(self.start), bound(self.end))

    def slice(self, text: str) -> str:
        return text[self.start : self.end]

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_value(cls, value: Any, *, fallback: tuple[int, int] | None = None) -> TextRange:
        """Accept a range, a ``{"start", "end"}`` mapping or a two-item pair."""

        if isinstance(value, TextRange):
            return value
        if value is None:
            if fallback is None:
                raise ValueError("a span is required")
            return cls(*fallback)
        if isinstance(value, Mapping):
            if "start" not in value or "end" not in value:
                raise ValueError("span mappings need both 'start' and 'end'")
            return cls(value["start"], value["end"])
        if isinstance(value, (tuple, list)):
            if len(value) != 2:
                raise ValueError("span pairs need exactly two offsets")
            return cls(value[0], value[1])
        raise TypeError(f"cannot build a span from {type(value).__name__}")
