"""Analysis pipeline wiring the decoder, validator and resolver to the model stream.

:class:`AnalysisContext` carries the process-local cache, rate limiter and
proposal source; handlers receive it explicitly instead of reaching for
module-level state.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Protocol, Sequence

from ...services import telemetry
from ..client import UPSTREAM_ERRORS, AIClient, ClientSettings
from ..prompts import grammar_messages
from .cache import ResultCache, compute_cache_key
from .decoder import StreamDecoder
from .errors import EmptyTextError, InvalidLevelError, RateLimitExceededError, UpstreamUnavailableError
from .models import ANALYSIS_LEVELS, ResolvedSuggestion
from .rate_limit import RateLimiter
from .resolver import SpanResolver
from .validation import CandidateValidator

__all__ = [
    "AnalysisContext",
    "AnalysisResponse",
    "AnalysisService",
    "PipelineStats",
    "ProposalSource",
    "SuggestionPipeline",
    "CACHE_HIT",
    "CACHE_MISS",
]

LOGGER = logging.getLogger(__name__)

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"


class ProposalSource(Protocol):
    """Anything able to stream raw model text for a list of chat messages."""

    @property
    def configured(self) -> bool:  # pragma: no cover - protocol stub
        ...

    def stream_text(self, messages: Sequence[dict[str, Any]]) -> AsyncIterator[str]:  # pragma: no cover
        ...


@dataclass(slots=True)
class AnalysisContext:
    """Process-local state shared by every analysis request."""

    cache: ResultCache = field(default_factory=ResultCache)
    rate_limiter: RateLimiter = field(default_factory=RateLimiter)
    source: ProposalSource | None = None

    @classmethod
    def from_settings(cls, settings: Any, *, source: ProposalSource | None = None) -> AnalysisContext:
        if source is None:
            source = AIClient(ClientSettings.from_settings(settings))
        return cls(
            cache=ResultCache(
                ttl_seconds=settings.cache_ttl_seconds,
                max_entries=settings.cache_max_entries,
            ),
            rate_limiter=RateLimiter(
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            ),
            source=source,
        )


@dataclass(slots=True)
class PipelineStats:
    """Counters describing one pass through :meth:`SuggestionPipeline.resolve`."""

    decoded: int = 0
    discarded: int = 0
    malformed: int = 0
    rejected: int = 0
    unresolved: int = 0
    resolved: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "decoded": self.decoded,
            "discarded": self.discarded,
            "malformed": self.malformed,
            "rejected": self.rejected,
            "unresolved": self.unresolved,
            "resolved": self.resolved,
        }


class SuggestionPipeline:
    """Decode, validate and resolve a chunked model stream against ``text``."""

    def __init__(self, *, validator: CandidateValidator | None = None) -> None:
        self._validator = validator or CandidateValidator()

    async def resolve(
        self,
        text: str,
        chunks: AsyncIterable[str],
        *,
        stats: PipelineStats | None = None,
    ) -> AsyncIterator[ResolvedSuggestion]:
        decoder = StreamDecoder()
        resolver = SpanResolver()
        counters = stats if stats is not None else PipelineStats()
        async for payload in decoder.decode_stream(chunks):
            counters.decoded += 1
            candidate = self._validator.validate(payload)
            if candidate is None:
                counters.rejected += 1
                continue
            suggestion = resolver.resolve(text, candidate)
            if suggestion is None:
                counters.unresolved += 1
                continue
            counters.resolved += 1
            yield suggestion
        counters.discarded = decoder.discarded
        counters.malformed = decoder.malformed


@dataclass(slots=True)
class AnalysisResponse:
    """Outcome of :meth:`AnalysisService.check` before any line is consumed."""

    cache_status: str
    cache_key: str
    lines: AsyncIterator[str]

    @property
    def is_hit(self) -> bool:
        return self.cache_status == CACHE_HIT

    async def suggestions(self) -> AsyncIterator[ResolvedSuggestion]:
        async for line in self.lines:
            yield ResolvedSuggestion.from_record(json.loads(line))


class AnalysisService:
    """Request-level orchestration: validation, rate limiting, caching and streaming."""

    def __init__(self, context: AnalysisContext, *, pipeline: SuggestionPipeline | None = None) -> None:
        self._context = context
        self._pipeline = pipeline or SuggestionPipeline()

    @property
    def context(self) -> AnalysisContext:
        return self._context

    async def check(self, text: str, level: str = "full", client_key: str = "unknown") -> AnalysisResponse:
        """Validate a request and return its cached or live NDJSON stream.

        Raises:
            EmptyTextError: ``text`` is empty or whitespace.
            InvalidLevelError: ``level`` is not a supported analysis level.
            RateLimitExceededError: ``client_key`` exhausted its window.
            UpstreamUnavailableError: no model is configured, or opening the
                upstream stream failed.
        """

        if not text or not text.strip():
            raise EmptyTextError()
        if level not in ANALYSIS_LEVELS:
            raise InvalidLevelError(details={"level": level, "allowed": list(ANALYSIS_LEVELS)})

        limiter = self._context.rate_limiter
        if not limiter.check(client_key):
            telemetry.emit("analysis.rate_limited", {"client": client_key})
            raise RateLimitExceededError(retry_after=limiter.retry_after(client_key))

        source = self._context.source
        if source is None or not source.configured:
            raise UpstreamUnavailableError(message="OpenAI API key not configured")

        key = compute_cache_key(text, level)
        cached = self._context.cache.get(key)
        if cached is not None:
            telemetry.emit("analysis.cache_hit", {"cache_key": key, "level": level, "count": len(cached)})
            return AnalysisResponse(cache_status=CACHE_HIT, cache_key=key, lines=_replay(cached))

        telemetry.emit("analysis.cache_miss", {"cache_key": key, "level": level})
        chunks = await self._open_stream(source, text, level)
        return AnalysisResponse(
            cache_status=CACHE_MISS,
            cache_key=key,
            lines=self._stream_lines(text, level, key, chunks),
        )

    async def stream_suggestions(
        self, text: str, level: str = "full", client_key: str = "unknown"
    ) -> AsyncIterator[ResolvedSuggestion]:
        response = await self.check(text, level, client_key)
        async for suggestion in response.suggestions():
            yield suggestion

    async def _open_stream(self, source: ProposalSource, text: str, level: str) -> AsyncIterator[str]:
        chunks = source.stream_text(grammar_messages(text, level))
        try:
            first = await anext(chunks)
        except StopAsyncIteration:
            return _replay(())
        except UPSTREAM_ERRORS as exc:
            LOGGER.warning("Upstream stream failed to open: %s", exc)
            raise UpstreamUnavailableError(details={"reason": str(exc)}) from exc
        return _prepend(first, chunks)

    async def _stream_lines(
        self,
        text: str,
        level: str,
        key: str,
        chunks: AsyncIterator[str],
    ) -> AsyncIterator[str]:
        started = time.perf_counter()
        stats = PipelineStats()
        lines: list[str] = []
        try:
            async for suggestion in self._pipeline.resolve(text, chunks, stats=stats):
                line = suggestion.to_json_line()
                lines.append(line)
                yield line
        except UPSTREAM_ERRORS as exc:
            LOGGER.warning("Upstream stream failed after %s suggestion(s): %s", len(lines), exc)
            raise UpstreamUnavailableError(
                message="Analysis stream interrupted",
                details={"reason": str(exc), "delivered": len(lines)},
            ) from exc

        self._context.cache.put(key, lines)
        payload = stats.to_dict()
        payload.update(
            {
                "cache_key": key,
                "level": level,
                "duration_ms": round((time.perf_counter() - started) * 1000, 3),
            }
        )
        telemetry.emit("analysis.completed", payload)


async def _replay(lines: Sequence[str]) -> AsyncIterator[str]:
    for line in lines:
        yield line


async def _prepend(first: str, rest: AsyncIterator[str]) -> AsyncIterator[str]:
    yield first
    async for chunk in rest:
        yield chunk
