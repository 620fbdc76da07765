"""Dataclasses shared across the analysis package."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Literal, Mapping

from ...core.ranges import TextRange

AnalysisLevel = Literal["spelling", "full"]
ANALYSIS_LEVELS: tuple[str, ...] = ("spelling", "full")
DEFAULT_CONFIDENCE = 95
DEFAULT_DESCRIPTION = "A suggestion for improvement."


class SuggestionKind(str, Enum):
    """Categories of proposals a model may stream back."""

    SPELLING = "spelling"
    GRAMMAR = "grammar"
    PASSIVE_VOICE = "passive-voice"
    CONCISENESS = "conciseness"
    CLARITY = "clarity"
    TONE = "tone"
    CTA = "cta"

    @property
    def priority(self) -> int:
        return SUGGESTION_PRIORITY[self]

    @property
    def title(self) -> str:
        if self is SuggestionKind.SPELLING:
            return "Spelling Correction"
        if self is SuggestionKind.GRAMMAR:
            return "Grammar Correction"
        return " ".join(word.capitalize() for word in self.value.split("-"))

    @property
    def icon(self) -> str:
        if self is SuggestionKind.SPELLING:
            return "✍️"
        if self is SuggestionKind.GRAMMAR:
            return "\U0001f9d0"
        return "✨"

    @classmethod
    def parse(cls, value: Any) -> SuggestionKind | None:
        if isinstance(value, SuggestionKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


# Lower values win when several suggestions cover the same characters.
SUGGESTION_PRIORITY: Mapping[SuggestionKind, int] = {
    SuggestionKind.SPELLING: 1,
    SuggestionKind.GRAMMAR: 2,
    SuggestionKind.PASSIVE_VOICE: 3,
    SuggestionKind.CONCISENESS: 4,
    SuggestionKind.CLARITY: 5,
    SuggestionKind.TONE: 6,
    SuggestionKind.CTA: 7,
}

STREAMED_KINDS: frozenset[SuggestionKind] = frozenset({SuggestionKind.SPELLING, SuggestionKind.GRAMMAR})


@dataclass(slots=True, frozen=True)
class CorrectionCandidate:
    """Unresolved proposal decoded from the model stream."""

    kind: SuggestionKind
    original_literal: str
    suggested_literal: str
    explanation: str = ""
    context: str = ""


@dataclass(slots=True, frozen=True)
class ResolvedSuggestion:
    """A candidate anchored to ``[start, end)`` in the text it was resolved against."""

    id: str
    start: int
    end: int
    kind: SuggestionKind
    original_literal: str
    suggested_literal: str
    explanation: str = ""
    confidence: int = DEFAULT_CONFIDENCE

    @classmethod
    def from_candidate(cls, candidate: CorrectionCandidate, span: TextRange) -> ResolvedSuggestion:
        return cls(
            id=f"{candidate.kind.value}-{span.start}-{candidate.original_literal}",
            start=span.start,
            end=span.end,
            kind=candidate.kind,
            original_literal=candidate.original_literal,
            suggested_literal=candidate.suggested_literal,
            explanation=candidate.explanation,
        )

    @property
    def span(self) -> TextRange:
        return TextRange(self.start, self.end)

    @property
    def priority(self) -> int:
        return self.kind.priority

    @property
    def title(self) -> str:
        return self.kind.title

    @property
    def icon(self) -> str:
        return self.kind.icon

    @property
    def description(self) -> str:
        return self.explanation or DEFAULT_DESCRIPTION

    def shifted(self, delta: int) -> ResolvedSuggestion:
        """Return a copy moved by ``delta`` characters; the id keeps its original anchor."""

        return replace(self, start=self.start + delta, end=self.end + delta)

    def matches(self, text: str) -> bool:
        """Return ``True`` when ``text`` still holds the original literal at this span."""

        return 0 <= self.start < self.end <= len(text) and text[self.start : self.end] == self.original_literal

    def to_record(self) -> dict[str, Any]:
        """Serialize to the streamed wire format."""

        return {
            "id": self.id,
            "type": self.kind.value,
            "span": {"start": self.start, "end": self.end, "text": self.original_literal},
            "originalText": self.original_literal,
            "suggestedText": self.suggested_literal,
            "description": self.description,
            "confidence": self.confidence,
            "icon": self.icon,
            "title": self.title,
        }

    def to_json_line(self) -> str:
        return json.dumps(self.to_record(), ensure_ascii=False) + "\n"

    @classmethod
    def from_record(cls, payload: Mapping[str, Any]) -> ResolvedSuggestion:
        """Rebuild a suggestion from a streamed wire record."""

        kind = SuggestionKind.parse(payload.get("type"))
        if kind is None:
            raise ValueError(f"Unknown suggestion type: {payload.get('type')!r}")
        span = TextRange.from_value(payload.get("span"))
        original = str(payload.get("originalText") or (payload.get("span") or {}).get("text") or "")
        description = str(payload.get("description") or "")
        return cls(
            id=str(payload.get("id") or f"{kind.value}-{span.start}-{original}"),
            start=span.start,
            end=span.end,
            kind=kind,
            original_literal=original,
            suggested_literal=str(payload.get("suggestedText") or ""),
            explanation="" if description == DEFAULT_DESCRIPTION else description,
            confidence=int(payload.get("confidence", DEFAULT_CONFIDENCE)),
        )


__all__ = [
    "ANALYSIS_LEVELS",
    "AnalysisLevel",
    "CorrectionCandidate",
    "DEFAULT_CONFIDENCE",
    "ResolvedSuggestion",
    "STREAMED_KINDS",
    "SUGGESTION_PRIORITY",
    "SuggestionKind",
]
