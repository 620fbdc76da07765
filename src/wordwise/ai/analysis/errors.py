"""Error types raised by the analysis service and editing sessions.

Each error carries a machine-readable ``error_code`` plus the HTTP status the
service surface maps it to, and serializes consistently via :meth:`to_dict`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


# -----------------------------------------------------------------------------
# Error Code Constants
# -----------------------------------------------------------------------------

class ErrorCode:
    """Constants for error codes used in service responses."""

    EMPTY_TEXT = "empty_text"
    INVALID_LEVEL = "invalid_level"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    STALE_SUGGESTION = "stale_suggestion"
    SUGGESTION_NOT_FOUND = "suggestion_not_found"
    INTERNAL_ERROR = "internal_error"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

@dataclass
class AnalysisError(Exception):
    """Base exception for analysis and suggestion failures."""

    error_code: str = ErrorCode.INTERNAL_ERROR
    message: str = "Analysis failed"
    details: dict[str, Any] = field(default_factory=dict)

    status_code: ClassVar[int] = 500

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": self.message,
            "code": self.error_code,
        }
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# -----------------------------------------------------------------------------
# Request Errors
# -----------------------------------------------------------------------------

@dataclass
class EmptyTextError(AnalysisError):
    """Raised when a check request carries no text."""

    error_code: str = field(default=ErrorCode.EMPTY_TEXT)
    message: str = field(default="No text provided")
    details: dict[str, Any] = field(default_factory=dict)

    status_code: ClassVar[int] = 400


@dataclass
class InvalidLevelError(AnalysisError):
    """Raised when a check request names an unsupported analysis level."""

    error_code: str = field(default=ErrorCode.INVALID_LEVEL)
    message: str = field(default="Unsupported analysis level")
    details: dict[str, Any] = field(default_factory=dict)

    status_code: ClassVar[int] = 400


@dataclass
class RateLimitExceededError(AnalysisError):
    """Raised when a client exhausts its request window."""

    error_code: str = field(default=ErrorCode.RATE_LIMITED)
    message: str = field(default="Rate limit exceeded. Please try again later.")
    details: dict[str, Any] = field(default_factory=dict)
    retry_after: float = 0.0

    status_code: ClassVar[int] = 429

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["retry_after"] = round(self.retry_after, 3)
        return result


@dataclass
class UpstreamUnavailableError(AnalysisError):
    """Raised when the model provider is unconfigured or fails before streaming."""

    error_code: str = field(default=ErrorCode.UPSTREAM_UNAVAILABLE)
    message: str = field(default="Analysis provider unavailable")
    details: dict[str, Any] = field(default_factory=dict)

    status_code: ClassVar[int] = 500


# -----------------------------------------------------------------------------
# Editing Errors
# -----------------------------------------------------------------------------

@dataclass
class SuggestionNotFoundError(AnalysisError):
    """Raised when an accept or dismiss references an unknown suggestion id."""

    error_code: str = field(default=ErrorCode.SUGGESTION_NOT_FOUND)
    message: str = field(default="Suggestion not found")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion_id: str | None = None

    status_code: ClassVar[int] = 404

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.suggestion_id is not None:
            result["suggestion_id"] = self.suggestion_id
        return result


@dataclass
class StaleSuggestionError(AnalysisError):
    """Raised when the buffer no longer holds a suggestion's original literal."""

    error_code: str = field(default=ErrorCode.STALE_SUGGESTION)
    message: str = field(default="Suggestion no longer matches the document")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion_id: str | None = None
    expected: str | None = None
    actual: str | None = None

    status_code: ClassVar[int] = 409

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result.update(
            {
                "suggestion_id": self.suggestion_id,
                "expected": self.expected,
                "actual": self.actual,
            }
        )
        return result


__all__ = [
    "AnalysisError",
    "EmptyTextError",
    "ErrorCode",
    "InvalidLevelError",
    "RateLimitExceededError",
    "StaleSuggestionError",
    "SuggestionNotFoundError",
    "UpstreamUnavailableError",
]
