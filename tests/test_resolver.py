from __future__ import annotations

import logging

import pytest

from wordwise.ai.analysis.models import CorrectionCandidate, SuggestionKind
from wordwise.ai.analysis.resolver import SpanResolver, has_word_boundary
from wordwise.core.ranges import TextRange


def _candidate(original: str, suggested: str = "x", *, context: str = "") -> CorrectionCandidate:
    return CorrectionCandidate(SuggestionKind.SPELLING, original, suggested, context=context)


def test_unique_literal_resolves_to_its_offset() -> None:
    resolver = SpanResolver()

    assert resolver.find_span("I has a cat", "has") == TextRange(2, 5)


def test_duplicate_literals_claim_distinct_offsets_left_to_right() -> None:
    text = "the cat and the dog and the end"
    resolver = SpanResolver()

    spans = [resolver.find_span(text, "the") for _ in range(3)]

    assert spans == [TextRange(0, 3), TextRange(12, 15), TextRange(24, 27)]
    assert resolver.find_span(text, "the") is None


def test_word_boundary_matches_are_preferred() -> None:
    text = "bother the"
    resolver = SpanResolver()

    assert resolver.find_span(text, "the") == TextRange(7, 10)
    assert resolver.find_span(text, "the") == TextRange(2, 5)


def test_has_word_boundary() -> None:
    assert has_word_boundary("a cat.", 2, 3)
    assert not has_word_boundary("scat", 1, 3)
    assert has_word_boundary("cat", 0, 3)


def test_trimmed_literal_is_retried() -> None:
    resolver = SpanResolver()

    suggestion = resolver.resolve("Hello wrold!", _candidate(" wrold ", "world"))

    assert suggestion is not None
    assert suggestion.span == TextRange(6, 11)
    assert suggestion.original_literal == "wrold"
    assert suggestion.id == "spelling-6-wrold"


@pytest.mark.parametrize("literal", ["", "  "])
def test_empty_literals_never_resolve(literal: str) -> None:
    assert SpanResolver().find_span("a b", literal) is None


def test_context_hint_selects_occurrence() -> None:
    resolver = SpanResolver()

    assert resolver.find_span("the cat. the dog.", "the", context="the dog") == TextRange(9, 12)
    assert resolver.find_span("the cat. the dog.", "the") == TextRange(0, 3)


def test_unresolved_candidate_is_counted_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    resolver = SpanResolver()

    with caplog.at_level(logging.WARNING, logger="wordwise.ai.analysis.resolver"):
        result = resolver.resolve("nothing here", _candidate("missing"))

    assert result is None
    assert resolver.unresolved == 1
    assert "missing" in caplog.text


def test_reset_releases_claimed_offsets() -> None:
    resolver = SpanResolver()
    resolver.find_span("teh", "teh")

    resolver.reset()

    assert resolver.find_span("teh", "teh") == TextRange(0, 3)
