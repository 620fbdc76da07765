"""FastAPI surface streaming grammar suggestions as NDJSON."""

from __future__ import annotations

import json
import logging
import math
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from ..ai.analysis.errors import AnalysisError, RateLimitExceededError
from ..ai.analysis.pipeline import AnalysisContext, AnalysisService

__all__ = ["GrammarCheckRequest", "create_app", "resolve_client_key", "NDJSON_MEDIA_TYPE"]

LOGGER = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/json; charset=utf-8"
CACHE_STATUS_HEADER = "X-Cache-Status"


class GrammarCheckRequest(BaseModel):
    text: str = ""
    level: str = "full"


def resolve_client_key(request: Request) -> str:
    """Identify the caller by proxy headers, falling back to ``"unknown"``."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and forwarded.split(",")[0].strip():
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return "unknown"


def create_app(context: AnalysisContext | None = None) -> FastAPI:
    """Build the application around an explicit :class:`AnalysisContext`."""

    app = FastAPI(title="WordWise grammar check")
    app.state.analysis_context = context or AnalysisContext()
    app.state.analysis_service = AnalysisService(app.state.analysis_context)

    @app.get("/healthz")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/grammar/check")
    async def grammar_check(payload: GrammarCheckRequest, request: Request) -> StreamingResponse:
        service: AnalysisService = request.app.state.analysis_service
        client_key = resolve_client_key(request)
        LOGGER.debug(
            "grammar_check_request: client=%s level=%s chars=%s",
            client_key,
            payload.level,
            len(payload.text),
        )
        try:
            response = await service.check(payload.text, payload.level, client_key)
        except RateLimitExceededError as exc:
            raise HTTPException(
                status_code=exc.status_code,
                detail=exc.message,
                headers={"Retry-After": str(max(1, math.ceil(exc.retry_after)))},
            ) from exc
        except AnalysisError as exc:
            if exc.status_code >= 500:
                LOGGER.error("grammar_check_failed: %s", exc)
            raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

        return StreamingResponse(
            _terminate_on_error(response.lines),
            media_type=NDJSON_MEDIA_TYPE,
            headers={CACHE_STATUS_HEADER: response.cache_status},
        )

    return app


async def _terminate_on_error(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """Close the body with one ``{"error": ..., "code": ...}`` line on an analysis failure.

    Lines already delivered stay valid. Clients treat the error line as the
    end of an incomplete result.
    """

    delivered = 0
    try:
        async for line in lines:
            delivered += 1
            yield line
    except AnalysisError as exc:
        LOGGER.error("grammar_check_stream_terminated after %s line(s): %s", delivered, exc)
        yield json.dumps(exc.to_dict(), ensure_ascii=False) + "\n"
