"""Canonical text buffer and the immutable snapshots handed to other components."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from ..core.ranges import TextRange


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


def _hash_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


@dataclass(slots=True, frozen=True)
class DocumentSnapshot:
    """Read-only copy of the buffer at a specific version."""

    text: str
    version: int
    content_hash: str
    document_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "version": self.version,
            "content_hash": self.content_hash,
            "document_id": self.document_id,
        }


@dataclass(slots=True)
class DocumentBuffer:
    """The single mutable string backing an editing session.

    Every mutation bumps :attr:`version`; readers take a :meth:`snapshot`
    instead of holding on to the buffer itself.
    """

    text: str = ""
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    version: int = 1
    content_hash: str = field(default_factory=str)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not self.content_hash:
            self.content_hash = _hash_text(self.text)

    def __len__(self) -> int:
        return len(self.text)

    def update_text(self, new_text: str) -> int:
        """Replace the whole text and return the new version."""

        self.text = new_text
        self.version += 1
        self.content_hash = _hash_text(new_text)
        self.updated_at = _utcnow()
        return self.version

    def splice(self, span: TextRange, replacement: str) -> int:
        """Replace ``span`` with ``replacement`` and return the new version."""

        start, end = span.clamp(upper=len(self.text))
        return self.update_text(self.text[:start] + replacement + self.text[end:])

    def slice(self, span: TextRange) -> str:
        return span.slice(self.text)

    def snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(
            text=self.text,
            version=self.version,
            content_hash=self.content_hash,
            document_id=self.document_id,
        )

    def version_signature(self) -> str:
        return f"{self.document_id}:{self.version}:{self.content_hash}"


__all__ = ["DocumentBuffer", "DocumentSnapshot"]
