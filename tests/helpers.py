"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Iterable, Sequence

from wordwise.ai.analysis.models import ResolvedSuggestion, SuggestionKind


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class FakeProposalSource:
    """Proposal source streaming canned chunks and recording every call."""

    def __init__(
        self,
        chunks: Sequence[str] = (),
        *,
        configured: bool = True,
        error: BaseException | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.chunks = list(chunks)
        self._configured = configured
        self.error = error
        self.fail_after = fail_after
        self.calls: list[list[dict[str, Any]]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def stream_text(self, messages: Sequence[dict[str, Any]]) -> AsyncIterator[str]:
        self.calls.append([dict(message) for message in messages])
        for index, chunk in enumerate(self.chunks):
            if self.error is not None and self.fail_after is not None and index >= self.fail_after:
                raise self.error
            yield chunk
        if self.error is not None and (self.fail_after is None or self.fail_after >= len(self.chunks)):
            raise self.error


def record(kind: str, original: str, suggested: str, explanation: str = "") -> str:
    """Serialize one upstream proposal the way the model streams it."""

    payload = {"type": kind, "originalText": original, "suggestedText": suggested}
    if explanation:
        payload["explanation"] = explanation
    return json.dumps(payload)


def chunked(text: str, size: int) -> list[str]:
    return [text[index : index + size] for index in range(0, len(text), size)]


def suggestion(
    text: str,
    original: str,
    suggested: str,
    *,
    kind: SuggestionKind = SuggestionKind.SPELLING,
    occurrence: int = 0,
    explanation: str = "",
) -> ResolvedSuggestion:
    """Build a suggestion anchored at the ``occurrence``-th match of ``original``."""

    start = -1
    for _ in range(occurrence + 1):
        start = text.index(original, start + 1)
    return ResolvedSuggestion(
        id=f"{kind.value}-{start}-{original}",
        start=start,
        end=start + len(original),
        kind=kind,
        original_literal=original,
        suggested_literal=suggested,
        explanation=explanation,
    )


async def iterate(items: Iterable[Any]) -> AsyncIterator[Any]:
    for item in items:
        yield item
