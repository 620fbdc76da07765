"""Fixed-window request limiter keyed by client identity."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

__all__ = ["RateLimiter", "RateWindow"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RateWindow:
    count: int
    reset_at: float


class RateLimiter:
    """Allow ``max_requests`` per ``window_seconds`` for each key.

    Expired windows are swept from :meth:`check` once the number of tracked
    keys reaches ``sweep_threshold``. After each sweep the threshold becomes
    twice the number of surviving keys, and never drops below the configured value.
    """

    def __init__(
        self,
        *,
        max_requests: int = 120,
        window_seconds: float = 60 * 60.0,
        sweep_threshold: int = 1024,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._max_requests = max(1, int(max_requests))
        self._window = max(0.001, float(window_seconds))
        self._clock = clock or time.monotonic
        self._windows: dict[str, RateWindow] = {}
        self._lock = threading.Lock()
        self._base_threshold = max(1, int(sweep_threshold))
        self._sweep_at = self._base_threshold

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def check(self, key: str) -> bool:
        """Count one request for ``key``; return ``False`` once the window is full."""

        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                if window is None and len(self._windows) >= self._sweep_at:
                    self._sweep(now)
                self._windows[key] = RateWindow(count=1, reset_at=now + self._window)
                return True
            if window.count >= self._max_requests:
                LOGGER.info("Rate limit reached for client %s", key)
                return False
            window.count += 1
            return True

    def remaining(self, key: str) -> int:
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                return self._max_requests
            return max(0, self._max_requests - window.count)

    def retry_after(self, key: str) -> float:
        """Seconds until ``key``'s current window resets (``0`` when unlimited)."""

        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return 0.0
            return max(0.0, window.reset_at - now)

    def prune(self) -> int:
        with self._lock:
            return self._sweep(self._clock())

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._sweep_at = self._base_threshold

    def _sweep(self, now: float) -> int:
        doomed = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in doomed:
            del self._windows[key]
        self._sweep_at = max(self._base_threshold, 2 * len(self._windows))
        if doomed:
            LOGGER.debug("Rate limiter dropped %s expired window(s)", len(doomed))
        return len(doomed)
