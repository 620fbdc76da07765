"""Streaming chat-completions client for OpenAI-compatible providers."""

from __future__ import annotations

import contextlib
import inspect
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator, Iterable, Mapping, Union, cast

import httpx
from openai import AsyncOpenAI, APIConnectionError, APIError, APIStatusError, OpenAIError, RateLimitError
from openai.types.chat import ChatCompletionMessageParam
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..services.settings import Settings

LOGGER = logging.getLogger(__name__)

# Anything the provider or transport may raise while a completion is running.
UPSTREAM_ERRORS: tuple[type[BaseException], ...] = (OpenAIError, httpx.HTTPError)
# Failures worth another attempt when opening the stream.
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    APIConnectionError,
    RateLimitError,
    APIStatusError,
    APIError,
    httpx.TimeoutException,
)

Message = Union[Mapping[str, Any], ChatCompletionMessageParam]


@dataclass(slots=True)
class ClientSettings:
    """Connection and retry options for :class:`AIClient`."""

    base_url: str
    api_key: str
    model: str
    organization: str | None = None
    temperature: float = 0.0
    request_timeout: float | None = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: Mapping[str, str] | None = None
    metadata: Mapping[str, str] | None = None
    debug_logging: bool = False

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ClientSettings":
        shared = {
            name: getattr(settings, name)
            for name in (
                "base_url",
                "api_key",
                "model",
                "organization",
                "temperature",
                "request_timeout",
                "max_retries",
                "retry_min_seconds",
                "retry_max_seconds",
                "default_headers",
                "metadata",
                "debug_logging",
            )
        }
        return cls(**shared)


class AIClient:
    """Streams the text deltas of a chat completion.

    Opening the stream is attempted up to ``max_retries`` times with
    exponential backoff. Once a delta has been yielded, errors propagate.
    """

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client if client is not None else self._connect(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def configured(self) -> bool:
        return all(value.strip() for value in (self._settings.api_key or "", self._settings.model or ""))

    async def stream_text(
        self,
        messages: Iterable[Message],
        *,
        temperature: float | None = None,
        metadata: Mapping[str, str] | None = None,
        **extra_params: Any,
    ) -> AsyncIterator[str]:
        request = self._request(messages, temperature=temperature, metadata=metadata)
        request.update(extra_params)
        LOGGER.debug("Streaming %s with %d message(s)", request["model"], len(request["messages"]))
        if self._settings.debug_logging:
            self._log_prompt_payload(request)

        async with contextlib.AsyncExitStack() as stack:
            stream = None
            async for attempt in self._retrying():
                with attempt:
                    stream = await stack.enter_async_context(self._client.chat.completions.stream(**request))
            async for event in stream:
                if getattr(event, "type", None) == "content.delta" and getattr(event, "delta", None):
                    yield str(event.delta)

    async def aclose(self) -> None:
        close = getattr(self._client, "close", None)
        if close is None:
            return
        outcome = close()
        if inspect.isawaitable(outcome):
            await outcome

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _request(
        self,
        messages: Iterable[Message],
        *,
        temperature: float | None,
        metadata: Mapping[str, str] | None,
    ) -> dict[str, Any]:
        try:
            prepared = [cast(ChatCompletionMessageParam, dict(message)) for message in messages]
        except (TypeError, ValueError) as exc:
            raise TypeError("Messages must be mapping-like objects") from exc
        if not prepared:
            raise ValueError("At least one message is required to start a completion")

        request: dict[str, Any] = {
            "model": self._settings.model,
            "messages": prepared,
            "temperature": temperature if temperature is not None else self._settings.temperature,
        }
        tags = {**(self._settings.metadata or {}), **(metadata or {})}
        if tags:
            request["metadata"] = tags
        return request

    def _retrying(self) -> AsyncRetrying:
        options = self._settings
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, options.max_retries)),
            wait=wait_exponential(multiplier=options.retry_min_seconds, max=options.retry_max_seconds),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
        )

    @staticmethod
    def _connect(settings: ClientSettings) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            timeout=settings.request_timeout,
            max_retries=0,
            default_headers=dict(settings.default_headers or {}) or None,
        )

    def _log_prompt_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            LOGGER.debug("Completion request:\n%s", json.dumps(payload, ensure_ascii=False, indent=2))
        except (TypeError, ValueError):
            LOGGER.debug("Completion request (not JSON serialisable): %r", payload)


__all__ = ["AIClient", "ClientSettings", "RETRYABLE_ERRORS", "UPSTREAM_ERRORS"]
