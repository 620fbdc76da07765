"""In-process telemetry: named events fanned out to registered listeners."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Protocol

LOGGER = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], None]

_listeners: dict[str, list[Listener]] = {}


@dataclass(slots=True)
class TelemetryEvent:
    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


class TelemetrySink(Protocol):
    def record(self, event: TelemetryEvent) -> None:  # pragma: no cover - protocol stub
        ...


class InMemoryTelemetrySink:
    """Keeps the most recent events in a bounded buffer.

    ``listen`` subscribes the sink to event names; the ``event`` key of each
    emitted payload becomes :attr:`TelemetryEvent.name` and the rest its payload.
    """

    def __init__(self, capacity: int = 200) -> None:
        self._events: deque[TelemetryEvent] = deque(maxlen=max(10, capacity))
        self._guard = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._events.maxlen or 0

    def __len__(self) -> int:
        with self._guard:
            return len(self._events)

    def record(self, event: TelemetryEvent) -> None:
        with self._guard:
            self._events.append(event)

    def listen(self, event_names: Iterable[str]) -> None:
        for name in event_names:
            register_event_listener(name, self._on_emit)

    def detach(self, event_names: Iterable[str]) -> None:
        for name in event_names:
            unregister_event_listener(name, self._on_emit)

    def tail(self, limit: int | None = None) -> list[TelemetryEvent]:
        with self._guard:
            snapshot = list(self._events)
        if limit is None:
            return snapshot
        return snapshot[-limit:] if limit > 0 else []

    def names(self) -> list[str]:
        return [event.name for event in self.tail()]

    def _on_emit(self, payload: dict[str, Any]) -> None:
        body = dict(payload)
        self.record(TelemetryEvent(name=str(body.pop("event", "")), payload=body))


def register_event_listener(event_name: str, callback: Listener) -> None:
    if not event_name or callback is None:
        return
    bucket = _listeners.setdefault(event_name, [])
    if callback not in bucket:
        bucket.append(callback)


def unregister_event_listener(event_name: str, callback: Listener) -> None:
    bucket = _listeners.get(event_name, [])
    if callback in bucket:
        bucket.remove(callback)
    if not bucket:
        _listeners.pop(event_name, None)


def emit(event_name: str, payload: Mapping[str, Any] | None = None) -> None:
    """Send ``{"event": event_name, **payload}`` to every listener of ``event_name``.

    Each listener gets its own copy. A listener that raises is logged and
    the remaining listeners still run.
    """

    if not event_name:
        return
    message = {"event": event_name, **(payload or {})}
    LOGGER.debug("telemetry %s %s", event_name, message)
    for callback in tuple(_listeners.get(event_name, ())):
        try:
            callback(dict(message))
        except Exception:  # pragma: no cover - listener bugs
            LOGGER.exception("Telemetry listener %r failed for %s", callback, event_name)


__all__ = [
    "TelemetryEvent",
    "TelemetrySink",
    "InMemoryTelemetrySink",
    "register_event_listener",
    "unregister_event_listener",
    "emit",
]
