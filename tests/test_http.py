"""Tests for the FastAPI grammar check surface."""

from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from tests.helpers import FakeClock, FakeProposalSource, chunked, record
from wordwise.ai.analysis.cache import ResultCache
from wordwise.ai.analysis.pipeline import AnalysisContext
from wordwise.ai.analysis.rate_limit import RateLimiter
from wordwise.api.http import NDJSON_MEDIA_TYPE, create_app

TEXT = "I has a cat."
STREAM = "```json\n" + record("grammar", "has", "have", "Subject-verb agreement.") + "\n```"


def _client(source: FakeProposalSource | None, clock: FakeClock, *, max_requests: int = 120) -> TestClient:
    context = AnalysisContext(
        cache=ResultCache(clock=clock),
        rate_limiter=RateLimiter(max_requests=max_requests, window_seconds=3600, clock=clock),
        source=source,
    )
    return TestClient(create_app(context))


def test_healthz(clock: FakeClock) -> None:
    response = _client(FakeProposalSource(), clock).get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_check_streams_ndjson_and_caches(clock: FakeClock) -> None:
    source = FakeProposalSource(chunked(STREAM, 6))
    client = _client(source, clock)

    first = client.post("/api/grammar/check", json={"text": TEXT, "level": "full"})
    second = client.post("/api/grammar/check", json={"text": TEXT})

    assert first.status_code == 200
    assert first.headers["content-type"] == NDJSON_MEDIA_TYPE
    assert first.headers["x-cache-status"] == "MISS"
    assert second.headers["x-cache-status"] == "HIT"
    assert first.content == second.content
    assert len(source.calls) == 1

    records = [json.loads(line) for line in first.text.splitlines()]
    assert records == [
        {
            "id": "grammar-2-has",
            "type": "grammar",
            "span": {"start": 2, "end": 5, "text": "has"},
            "originalText": "has",
            "suggestedText": "have",
            "description": "Subject-verb agreement.",
            "confidence": 95,
            "icon": records[0]["icon"],
            "title": "Grammar Correction",
        }
    ]


def test_clean_text_returns_empty_body(clock: FakeClock) -> None:
    response = _client(FakeProposalSource(["Looks fine."]), clock).post(
        "/api/grammar/check", json={"text": "All good."}
    )

    assert response.status_code == 200
    assert response.content == b""


@pytest.mark.parametrize("body", [{"text": ""}, {"text": "   "}, {}])
def test_empty_text_is_400(clock: FakeClock, body: dict) -> None:
    source = FakeProposalSource([STREAM])

    response = _client(source, clock).post("/api/grammar/check", json=body)

    assert response.status_code == 400
    assert response.json() == {"detail": "No text provided"}
    assert source.calls == []


def test_unknown_level_is_400(clock: FakeClock) -> None:
    response = _client(FakeProposalSource([STREAM]), clock).post(
        "/api/grammar/check", json={"text": TEXT, "level": "style"}
    )

    assert response.status_code == 400


def test_rate_limit_is_per_forwarded_client(clock: FakeClock) -> None:
    client = _client(FakeProposalSource([STREAM]), clock, max_requests=1)
    first_hop = {"x-forwarded-for": "10.0.0.1, 172.16.0.1"}

    assert client.post("/api/grammar/check", json={"text": TEXT}, headers=first_hop).status_code == 200
    limited = client.post("/api/grammar/check", json={"text": TEXT}, headers=first_hop)
    other = client.post("/api/grammar/check", json={"text": TEXT}, headers={"x-real-ip": "10.0.0.2"})

    assert limited.status_code == 429
    assert limited.json() == {"detail": "Rate limit exceeded. Please try again later."}
    assert limited.headers["retry-after"] == "3600"
    assert other.status_code == 200


def test_missing_source_is_500(clock: FakeClock) -> None:
    response = _client(None, clock).post("/api/grammar/check", json={"text": TEXT})

    assert response.status_code == 500
    assert response.json() == {"detail": "OpenAI API key not configured"}


def test_upstream_open_failure_is_500(clock: FakeClock) -> None:
    source = FakeProposalSource([STREAM], error=httpx.ConnectError("refused"), fail_after=0)

    response = _client(source, clock).post("/api/grammar/check", json={"text": TEXT})

    assert response.status_code == 500


def test_mid_stream_failure_ends_body_with_error_line(clock: FakeClock) -> None:
    chunks = [record("grammar", "has", "have") + "\n", record("spelling", "cat", "cats")]
    source = FakeProposalSource(chunks, error=httpx.ReadError("reset"), fail_after=1)
    client = _client(source, clock)

    response = client.post("/api/grammar/check", json={"text": TEXT})
    retry = client.post("/api/grammar/check", json={"text": TEXT})

    lines = [json.loads(line) for line in response.text.splitlines()]
    assert response.status_code == 200
    assert lines[0]["id"] == "grammar-2-has"
    assert lines[-1]["code"] == "upstream_unavailable"
    assert lines[-1]["error"] == "Analysis stream interrupted"
    assert len(lines) == 2
    assert retry.headers["x-cache-status"] == "MISS"
