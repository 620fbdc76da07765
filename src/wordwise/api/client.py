"""Async HTTP client for the grammar check endpoint."""

from __future__ import annotations

import contextlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Mapping

import httpx

from ..ai.analysis.errors import (
    AnalysisError,
    EmptyTextError,
    InvalidLevelError,
    RateLimitExceededError,
    UpstreamUnavailableError,
)
from ..ai.analysis.models import ResolvedSuggestion
from ..editor.session import SuggestionSource

__all__ = ["GrammarCheckClient", "GrammarCheckResult", "GrammarCheckStream"]

LOGGER = logging.getLogger(__name__)

CHECK_PATH = "/api/grammar/check"


@dataclass(slots=True)
class GrammarCheckResult:
    cache_status: str
    suggestions: list[ResolvedSuggestion] = field(default_factory=list)


class GrammarCheckStream:
    """An open NDJSON response; iterate :meth:`suggestions` while it is open.

    A terminal ``{"error": ...}`` line means the server gave up mid-stream;
    :meth:`suggestions` raises :class:`UpstreamUnavailableError` for it.
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def cache_status(self) -> str:
        return self._response.headers.get("X-Cache-Status", "MISS")

    @property
    def response(self) -> httpx.Response:
        return self._response

    async def suggestions(self) -> AsyncIterator[ResolvedSuggestion]:
        async for line in self._response.aiter_lines():
            if not line.strip():
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                LOGGER.warning("Skipping undecodable response line: %r", line[:80])
                continue
            if isinstance(payload, dict) and "error" in payload and "id" not in payload:
                raise _stream_error(payload)
            yield ResolvedSuggestion.from_record(payload)


class GrammarCheckClient:
    """Streams suggestions from a running WordWise service."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        *,
        timeout: float = 90.0,
        headers: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=dict(headers or {}),
        )

    @contextlib.asynccontextmanager
    async def open_stream(self, text: str, level: str = "full") -> AsyncIterator[GrammarCheckStream]:
        try:
            async with self._client.stream("POST", CHECK_PATH, json={"text": text, "level": level}) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise _error_from_response(response)
                yield GrammarCheckStream(response)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(
                message="Grammar check service unreachable",
                details={"reason": str(exc)},
            ) from exc

    async def iter_suggestions(self, text: str, level: str = "full") -> AsyncIterator[ResolvedSuggestion]:
        async with self.open_stream(text, level) as stream:
            async for suggestion in stream.suggestions():
                yield suggestion

    async def check(self, text: str, level: str = "full") -> GrammarCheckResult:
        async with self.open_stream(text, level) as stream:
            result = GrammarCheckResult(cache_status=stream.cache_status)
            async for suggestion in stream.suggestions():
                result.suggestions.append(suggestion)
        return result

    def suggestion_source(self, level: str = "full") -> SuggestionSource:
        """Adapter for :meth:`EditorSession.run_analysis`."""

        def source(text: str) -> AsyncIterator[ResolvedSuggestion]:
            return self.iter_suggestions(text, level)

        return source

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> GrammarCheckClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _error_from_response(response: httpx.Response) -> AnalysisError:
    detail = _extract_detail(response)
    status = response.status_code
    if status == 429:
        retry_after = response.headers.get("Retry-After", "0")
        try:
            seconds = float(retry_after)
        except ValueError:
            seconds = 0.0
        return RateLimitExceededError(message=detail or RateLimitExceededError.message, retry_after=seconds)
    if status == 400:
        if detail == EmptyTextError.message:
            return EmptyTextError()
        return InvalidLevelError(message=detail or InvalidLevelError.message)
    if status >= 500:
        return UpstreamUnavailableError(message=detail or UpstreamUnavailableError.message)
    return AnalysisError(message=detail or f"Unexpected HTTP {status}", details={"status": status})


def _extract_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(body, Mapping):
        return str(body.get("detail") or body.get("error") or "")
    return ""


def _stream_error(payload: Mapping[str, Any]) -> AnalysisError:
    details = payload.get("details")
    return UpstreamUnavailableError(
        message=str(payload.get("error") or UpstreamUnavailableError.message),
        details=dict(details) if isinstance(details, Mapping) else {},
    )
