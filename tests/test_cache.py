"""Unit tests for the TTL cache."""

import pytest

from driftwatch.cache import TTLCache

from .conftest import FakeClock


class TestExpiry:
    def test_get_before_and_after_ttl(self, cache: TTLCache, clock: FakeClock):
        cache.set("k", [1, 2])

        clock.advance(59.9)
        assert cache.get("k") == [1, 2]

        clock.advance(0.1)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl_override(self, cache: TTLCache, clock: FakeClock):
        cache.set("short", "a", ttl_sec=5)
        cache.set("long", "b")

        clock.advance(10)

        assert "short" not in cache
        assert "long" in cache

    def test_overwrite_refreshes_expiry(self, cache: TTLCache, clock: FakeClock):
        cache.set("k", 1)
        clock.advance(50)
        cache.set("k", 2)
        clock.advance(50)

        assert cache.get("k") == 2

    def test_empty_list_is_a_hit(self, cache: TTLCache):
        cache.set("k", [])

        assert cache.get("k") == []
        assert "k" in cache


class TestEviction:
    def test_expired_entries_purged_first(self, clock: FakeClock):
        cache = TTLCache(ttl_sec=60, max_entries=2, clock=clock)
        cache.set("old", 1, ttl_sec=1)
        cache.set("keep", 2)
        clock.advance(5)

        cache.set("new", 3)

        assert cache.get("keep") == 2
        assert cache.get("new") == 3
        assert len(cache) == 2

    def test_soonest_expiry_evicted_when_full(self, clock: FakeClock):
        cache = TTLCache(ttl_sec=60, max_entries=2, clock=clock)
        cache.set("a", 1, ttl_sec=30)
        cache.set("b", 2, ttl_sec=10)

        cache.set("c", 3)

        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3

    def test_overwrite_when_full_does_not_evict(self, clock: FakeClock):
        cache = TTLCache(ttl_sec=60, max_entries=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.set("a", 10)

        assert cache.get("a") == 10
        assert cache.get("b") == 2


class TestInvalidation:
    def test_invalidate_single_key(self, cache: TTLCache):
        cache.set("k", 1)
        cache.invalidate("k")
        cache.invalidate("missing")

        assert cache.get("k") is None

    def test_invalidate_prefix(self, cache: TTLCache):
        cache.set("project:1:measure:a:thresholds", 1)
        cache.set("project:1:measure:b:thresholds", 2)
        cache.set("project:10:measure:a:thresholds", 3)

        removed = cache.invalidate_prefix("project:1:")

        assert removed == 2
        assert cache.get("project:10:measure:a:thresholds") == 3

    def test_clear(self, cache: TTLCache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()

        assert len(cache) == 0


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"ttl_sec": 0}, "ttl_sec"),
        ({"max_entries": 0}, "max_entries"),
    ],
)
def test_invalid_construction(kwargs, message):
    with pytest.raises(ValueError, match=message):
        TTLCache(**kwargs)
