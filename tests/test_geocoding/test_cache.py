"""Tests for the in-memory result cache."""

import pytest

from conftest import FakeClock, make_result
from plottr.core.geocoding.cache import ResultCache, build_cache_key


class TestCacheKey:
    def test_text_normalized(self) -> None:
        a = build_cache_key("mapbox", "Main  Street ", "ie", 5, None, None)
        b = build_cache_key("mapbox", "main street", "IE", 5, None, None)
        assert a == b
        assert a.startswith("geocode:mapbox:")

    @pytest.mark.parametrize(
        "other",
        [
            ("nominatim", "main street", "ie", 5, None, None),
            ("mapbox", "main street", "gb", 5, None, None),
            ("mapbox", "main street", "ie", 6, None, None),
            ("mapbox", "main street", "ie", 5, (-6.26, 53.35), None),
            ("mapbox", "main street", "ie", 5, None, "ga"),
        ],
    )
    def test_every_parameter_distinguishes(self, other) -> None:
        base = build_cache_key("mapbox", "main street", "ie", 5, None, None)
        assert build_cache_key(*other) != base


class TestResultCache:
    @pytest.fixture
    def cache(self, clock: FakeClock) -> ResultCache:
        return ResultCache(ttl=300, max_entries=3, clock=clock)

    def test_miss_then_hit(self, cache: ResultCache) -> None:
        results = [make_result()]
        assert cache.get("k") is None
        cache.set("k", results)
        assert cache.get("k") == results
        assert (cache.hits, cache.misses) == (1, 1)

    def test_empty_results_cached(self, cache: ResultCache) -> None:
        cache.set("k", [])
        assert cache.get("k") == []

    def test_expires_after_ttl(self, cache: ResultCache, clock: FakeClock) -> None:
        cache.set("k", [make_result()])
        clock.advance(299)
        assert cache.get("k") is not None
        clock.advance(1)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_returned_list_is_a_copy(self, cache: ResultCache) -> None:
        cache.set("k", [make_result()])
        cache.get("k").clear()
        assert len(cache.get("k")) == 1

    def test_least_recently_used_evicted(self, cache: ResultCache) -> None:
        for key in ("a", "b", "c"):
            cache.set(key, [])
        cache.get("a")
        cache.set("d", [])

        assert cache.get("b") is None
        assert cache.get("a") == []
        assert len(cache) == 3

    def test_expired_entries_dropped_before_lru(
        self, cache: ResultCache, clock: FakeClock
    ) -> None:
        cache.set("old", [])
        clock.advance(301)
        cache.set("b", [])
        cache.set("c", [])
        cache.set("d", [])

        assert len(cache) == 3
        assert cache.get("b") == []

    def test_zero_ttl_disables_storage(self, clock: FakeClock) -> None:
        cache = ResultCache(ttl=0, clock=clock)
        cache.set("k", [make_result()])
        assert cache.get("k") is None

    def test_delete_and_clear(self, cache: ResultCache) -> None:
        cache.set("a", [])
        cache.set("b", [])
        assert cache.delete("a") is True
        assert cache.delete("a") is False

        cache.get("b")
        cache.clear()
        assert len(cache) == 0
        assert cache.stats()["hits"] == 0

    def test_stats(self, cache: ResultCache) -> None:
        cache.set("a", [])
        cache.get("a")
        cache.get("missing")

        stats = cache.stats()
        assert stats["entries"] == 1
        assert stats["hit_rate"] == pytest.approx(0.5)
        assert stats["max_entries"] == 3
        assert stats["ttl"] == 300
