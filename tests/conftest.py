"""Shared pytest fixtures."""

from __future__ import annotations

import os
from typing import Iterator

import pytest

from tests.helpers import FakeClock
from wordwise.services.telemetry import InMemoryTelemetrySink

TELEMETRY_EVENTS = (
    "analysis.cache_hit",
    "analysis.cache_miss",
    "analysis.rate_limited",
    "analysis.completed",
    "analysis.stale_discarded",
    "suggestion.applied",
    "suggestion.dismissed",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("WORDWISE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def telemetry_sink() -> Iterator[InMemoryTelemetrySink]:
    sink = InMemoryTelemetrySink(capacity=100)
    sink.listen(TELEMETRY_EVENTS)
    try:
        yield sink
    finally:
        sink.detach(TELEMETRY_EVENTS)
