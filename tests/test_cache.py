"""Tests for the analysis result cache."""

from __future__ import annotations

from tests.helpers import FakeClock, suggestion
from wordwise.ai.analysis.cache import ResultCache, compute_cache_key


class TestCacheKey:
    def test_surrounding_whitespace_is_part_of_the_key(self) -> None:
        assert compute_cache_key("  teh cat \n", "full") != compute_cache_key("teh cat", "full")

    def test_level_is_part_of_the_key(self) -> None:
        assert compute_cache_key("teh cat", "full") != compute_cache_key("teh cat", "spelling")

    def test_interior_whitespace_matters(self) -> None:
        assert compute_cache_key("teh  cat", "full") != compute_cache_key("teh cat", "full")


class TestResultCache:
    def test_put_then_get_returns_lines(self, clock: FakeClock) -> None:
        cache = ResultCache(clock=clock)
        cache.put("k", ["a\n", "b\n"])

        assert cache.get("k") == ("a\n", "b\n")
        assert cache.stats.hits == 1

    def test_missing_key_counts_miss(self, clock: FakeClock) -> None:
        cache = ResultCache(clock=clock)

        assert cache.get("nope") is None
        assert cache.stats.misses == 1

    def test_entries_expire_after_ttl(self, clock: FakeClock) -> None:
        cache = ResultCache(ttl_seconds=900, clock=clock)
        cache.put("k", ["a\n"])

        clock.advance(900)
        assert cache.get("k") == ("a\n",)

        clock.advance(1)
        assert cache.get("k") is None
        assert cache.stats.expirations == 1
        assert "k" not in cache

    def test_least_recently_used_entry_is_evicted(self, clock: FakeClock) -> None:
        cache = ResultCache(max_entries=2, clock=clock)
        cache.put("a", ["1\n"])
        cache.put("b", ["2\n"])
        cache.get("a")

        cache.put("c", ["3\n"])

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert cache.stats.evictions == 1

    def test_overflow_sweeps_expired_entries_before_evicting(self, clock: FakeClock) -> None:
        cache = ResultCache(ttl_seconds=900, max_entries=2, clock=clock)
        cache.put("old", ["1\n"])
        clock.advance(1000)
        cache.put("b", ["2\n"])

        cache.put("c", ["3\n"])

        assert len(cache) == 2
        assert "old" not in cache
        assert cache.stats.expirations == 1
        assert cache.stats.evictions == 0

    def test_empty_results_are_cacheable(self, clock: FakeClock) -> None:
        cache = ResultCache(clock=clock)
        cache.put("k", [])

        assert cache.get("k") == ()

    def test_suggestions_round_trip_through_entry(self, clock: FakeClock) -> None:
        cache = ResultCache(clock=clock)
        item = suggestion("teh cat", "teh", "the")

        entry = cache.put_suggestions("k", [item])

        assert entry.suggestions == [item]

    def test_invalidate_and_clear(self, clock: FakeClock) -> None:
        cache = ResultCache(clock=clock)
        cache.put("a", [])
        cache.put("b", [])

        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False
        cache.clear()
        assert len(cache) == 0
