"""Tests for the in-memory LRU/TTL result cache."""

from __future__ import annotations

import threading

import pytest

from backend.cache import ResultCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestResultCache:
    def test_set_and_get(self, clock) -> None:
        cache = ResultCache(capacity=3, default_ttl=60, clock=clock)
        cache.set("a", {"x": 1})
        assert cache.get("a") == {"x": 1}
        assert "a" in cache

    def test_missing_key(self) -> None:
        assert ResultCache().get("nope") is None

    def test_zero_ttl_is_never_stored(self, clock) -> None:
        cache = ResultCache(clock=clock)
        cache.set("k", "v", ttl=0)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_zero_ttl_removes_existing_value(self, clock) -> None:
        cache = ResultCache(clock=clock)
        cache.set("k", "old")
        cache.set("k", "new", ttl=0)
        assert cache.get("k") is None

    def test_expiry(self, clock) -> None:
        cache = ResultCache(default_ttl=10, clock=clock)
        cache.set("short", 1, ttl=5)
        cache.set("long", 2)
        clock.advance(5)
        assert cache.get("short") is None
        assert cache.get("long") == 2
        clock.advance(5)
        assert cache.get("long") is None

    def test_capacity_evicts_least_recently_used(self, clock) -> None:
        cache = ResultCache(capacity=3, clock=clock)
        for key in ("a", "b", "c"):
            cache.set(key, key)
        cache.get("a")  # "b" is now the LRU entry
        cache.set("d", "d")

        assert cache.get("b") is None
        assert [cache.get(k) for k in ("a", "c", "d")] == ["a", "c", "d"]
        assert len(cache) == 3

    def test_capacity_plus_one_evicts_exactly_one(self, clock) -> None:
        cache = ResultCache(capacity=4, clock=clock)
        for i in range(5):
            cache.set(f"k{i}", i)
        assert "k0" not in cache
        assert all(f"k{i}" in cache for i in range(1, 5))

    def test_expired_entries_evicted_before_live_ones(self, clock) -> None:
        cache = ResultCache(capacity=2, clock=clock)
        cache.set("stale", 1, ttl=1)
        cache.set("live", 2, ttl=100)
        clock.advance(2)
        cache.set("new", 3)
        assert cache.get("live") == 2
        assert cache.get("new") == 3

    def test_overwrite_does_not_evict(self, clock) -> None:
        cache = ResultCache(capacity=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        assert cache.get("a") == 10
        assert cache.get("b") == 2

    def test_delete_and_clear(self, clock) -> None:
        cache = ResultCache(clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert len(cache) == 0

    def test_stats_and_purge(self, clock) -> None:
        cache = ResultCache(capacity=10, clock=clock)
        cache.set("a", 1, ttl=1)
        cache.set("b", 2, ttl=100)
        clock.advance(5)
        assert cache.purge_expired() == 1
        assert cache.stats() == {"size": 1, "capacity": 10}

    def test_rejects_zero_capacity(self) -> None:
        with pytest.raises(ValueError):
            ResultCache(capacity=0)

    def test_concurrent_writers(self) -> None:
        cache = ResultCache(capacity=50)

        def _writer(offset: int) -> None:
            for i in range(200):
                cache.set(f"{offset}:{i}", i)

        threads = [threading.Thread(target=_writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(cache) == 50
