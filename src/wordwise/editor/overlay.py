"""Rendering adapters painting suggestion segments over the buffer text."""

from __future__ import annotations

import html
from typing import Iterable, Protocol, Sequence

from ..ai.analysis.models import ResolvedSuggestion
from .suggestion_index import Segment

__all__ = ["HtmlOverlayRenderer", "OverlayRenderer", "describe_suggestion"]


def describe_suggestion(suggestion: ResolvedSuggestion) -> str:
    return (
        f'{suggestion.title} ({suggestion.kind.value}): '
        f'"{suggestion.original_literal}" → "{suggestion.suggested_literal}"'
    )


class OverlayRenderer(Protocol):
    """Consumes covering segments and produces a painted representation."""

    def render(self, text: str, segments: Sequence[Segment]) -> str:  # pragma: no cover - protocol stub
        ...


class HtmlOverlayRenderer:
    """Render segments as escaped HTML with one ``<span>`` per covered run."""

    def __init__(self, *, class_prefix: str = "suggestion") -> None:
        self._class_prefix = class_prefix

    def render(self, text: str, segments: Iterable[Segment]) -> str:
        parts: list[str] = []
        for segment in segments:
            chunk = html.escape(text[segment.start : segment.end], quote=False)
            primary = segment.primary
            if primary is None:
                parts.append(chunk)
                continue
            title = "\n".join(describe_suggestion(item) for item in segment.covering)
            parts.append(
                f'<span class="{self._class_prefix} {self._class_prefix}-{primary.kind.value}"'
                f' data-suggestion-id="{html.escape(primary.id)}"'
                f' title="{html.escape(title)}">{chunk}</span>'
            )
        return "".join(parts)
