from __future__ import annotations

import json

from wordwise.ai.analysis.models import (
    DEFAULT_DESCRIPTION,
    CorrectionCandidate,
    ResolvedSuggestion,
    SuggestionKind,
)
from wordwise.core.ranges import TextRange


def test_kind_priority_orders_spelling_first() -> None:
    ordered = sorted(SuggestionKind, key=lambda kind: kind.priority)

    assert ordered[0] is SuggestionKind.SPELLING
    assert ordered[1] is SuggestionKind.GRAMMAR
    assert ordered[-1] is SuggestionKind.CTA


def test_kind_titles() -> None:
    assert SuggestionKind.SPELLING.title == "Spelling Correction"
    assert SuggestionKind.GRAMMAR.title == "Grammar Correction"
    assert SuggestionKind.PASSIVE_VOICE.title == "Passive Voice"


def test_from_candidate_builds_stable_id() -> None:
    candidate = CorrectionCandidate(SuggestionKind.SPELLING, "teh", "the")

    suggestion = ResolvedSuggestion.from_candidate(candidate, TextRange(4, 7))

    assert suggestion.id == "spelling-4-teh"
    assert suggestion.span == TextRange(4, 7)
    assert suggestion.description == DEFAULT_DESCRIPTION


def test_shifted_keeps_id() -> None:
    suggestion = ResolvedSuggestion.from_candidate(
        CorrectionCandidate(SuggestionKind.GRAMMAR, "the the", "the"), TextRange(19, 26)
    )

    moved = suggestion.shifted(-4)

    assert moved.span == TextRange(15, 22)
    assert moved.id == suggestion.id


def test_matches_checks_text_at_span() -> None:
    suggestion = ResolvedSuggestion.from_candidate(
        CorrectionCandidate(SuggestionKind.SPELLING, "teh", "the"), TextRange(0, 3)
    )

    assert suggestion.matches("teh cat")
    assert not suggestion.matches("the cat")
    assert not suggestion.matches("te")


def test_wire_record_shape() -> None:
    suggestion = ResolvedSuggestion.from_candidate(
        CorrectionCandidate(SuggestionKind.SPELLING, "teh", "the", "Misspelled."), TextRange(0, 3)
    )

    record = json.loads(suggestion.to_json_line())

    assert record == {
        "id": "spelling-0-teh",
        "type": "spelling",
        "span": {"start": 0, "end": 3, "text": "teh"},
        "originalText": "teh",
        "suggestedText": "the",
        "description": "Misspelled.",
        "confidence": 95,
        "icon": SuggestionKind.SPELLING.icon,
        "title": "Spelling Correction",
    }
    assert suggestion.to_json_line().endswith("\n")
    assert ResolvedSuggestion.from_record(record) == suggestion
