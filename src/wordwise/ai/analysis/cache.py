"""Result cache for completed analysis passes.

Entries hold the exact NDJSON lines streamed on a cache miss so a later hit
replays them byte-for-byte without contacting the model again.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from .models import ResolvedSuggestion

__all__ = [
    "CacheEntry",
    "CacheStats",
    "ResultCache",
    "compute_cache_key",
]

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------


def compute_cache_key(text: str, level: str) -> str:
    """Hash the exact text together with the analysis level."""

    payload = json.dumps({"text": text, "level": level}, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# -----------------------------------------------------------------------------
# Cache Entry
# -----------------------------------------------------------------------------


@dataclass(slots=True)
class CacheEntry:
    """A cached result set with metadata."""

    key: str
    lines: tuple[str, ...]
    created_at: float
    access_count: int = 0

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        if ttl_seconds <= 0:
            return False
        return now - self.created_at > ttl_seconds

    @property
    def suggestions(self) -> list[ResolvedSuggestion]:
        return [ResolvedSuggestion.from_record(json.loads(line)) for line in self.lines]


# -----------------------------------------------------------------------------
# Cache Statistics
# -----------------------------------------------------------------------------


@dataclass(slots=True)
class CacheStats:
    """Counters for cache operations."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_requests
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "total_requests": self.total_requests,
            "hit_rate": self.hit_rate,
        }


# -----------------------------------------------------------------------------
# Result Cache
# -----------------------------------------------------------------------------


class ResultCache:
    """Thread-safe LRU cache with TTL expiry, keyed by :func:`compute_cache_key`.

    Expired entries are dropped lazily on lookup, and swept in bulk by
    :meth:`cleanup_expired` whenever an insert pushes the cache past
    ``max_entries``; if the sweep frees nothing the least recently used entry
    is evicted.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 15 * 60.0,
        max_entries: int = 500,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._ttl = float(ttl_seconds)
        self._max_entries = max(1, int(max_entries))
        self._clock = clock or time.monotonic
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._stats = CacheStats()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def get(self, key: str) -> tuple[str, ...] | None:
        """Return the stored NDJSON lines for ``key`` or ``None`` on a miss."""

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return None
            if entry.is_expired(self._clock(), self._ttl):
                del self._entries[key]
                self._stats.expirations += 1
                self._stats.misses += 1
                LOGGER.debug("Cache entry expired: %s", key[:12])
                return None
            self._entries.move_to_end(key)
            entry.access_count += 1
            self._stats.hits += 1
            return entry.lines

    def put(self, key: str, lines: Iterable[str]) -> CacheEntry:
        entry = CacheEntry(key=key, lines=tuple(lines), created_at=self._clock())
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            if len(self._entries) > self._max_entries:
                self.cleanup_expired()
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._stats.evictions += 1
                LOGGER.debug("Cache evicted LRU entry: %s", evicted[:12])
        return entry

    def put_suggestions(self, key: str, suggestions: Iterable[ResolvedSuggestion]) -> CacheEntry:
        return self.put(key, (suggestion.to_json_line() for suggestion in suggestions))

    def cleanup_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""

        now = self._clock()
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if entry.is_expired(now, self._ttl)]
            for key in doomed:
                del self._entries[key]
            self._stats.expirations += len(doomed)
        if doomed:
            LOGGER.debug("Cache cleanup removed %s expired entries", len(doomed))
        return len(doomed)

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
