"""Streaming suggestion analysis: decode, validate, resolve, cache."""

from .cache import ResultCache, compute_cache_key
from .decoder import StreamDecoder
from .errors import (
    AnalysisError,
    EmptyTextError,
    InvalidLevelError,
    RateLimitExceededError,
    StaleSuggestionError,
    SuggestionNotFoundError,
    UpstreamUnavailableError,
)
from .models import CorrectionCandidate, ResolvedSuggestion, SuggestionKind
from .pipeline import AnalysisContext, AnalysisResponse, AnalysisService, SuggestionPipeline
from .rate_limit import RateLimiter
from .resolver import SpanResolver
from .validation import CandidateValidator

__all__ = [
    "AnalysisContext",
    "AnalysisError",
    "AnalysisResponse",
    "AnalysisService",
    "CandidateValidator",
    "CorrectionCandidate",
    "EmptyTextError",
    "InvalidLevelError",
    "RateLimitExceededError",
    "RateLimiter",
    "ResolvedSuggestion",
    "ResultCache",
    "SpanResolver",
    "StaleSuggestionError",
    "StreamDecoder",
    "SuggestionKind",
    "SuggestionNotFoundError",
    "SuggestionPipeline",
    "UpstreamUnavailableError",
    "compute_cache_key",
]
