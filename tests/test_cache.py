import logging

import pytest

from mcp_overseerr.common.cache import CacheCategory, CacheSettings, ResponseCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_cache_hit_and_ttl_expiry():
    clock = FakeClock()
    cache = ResponseCache(
        CacheSettings(ttl={CacheCategory.SEARCH: 10.0}), clock=clock
    )
    cache.set(CacheCategory.SEARCH, {"query": "Frieren", "page": 1}, "rows")

    clock.now = 9.0
    assert cache.get(CacheCategory.SEARCH, {"page": 1, "query": "Frieren"}) == "rows"

    clock.now = 10.5
    assert cache.get(CacheCategory.SEARCH, {"query": "Frieren", "page": 1}) is None
    assert len(cache) == 0


def test_categories_do_not_collide():
    cache = ResponseCache()
    cache.set(CacheCategory.SEARCH, {"id": 1}, "search")
    cache.set(CacheCategory.MEDIA_DETAILS, {"id": 1}, "details")
    assert cache.get(CacheCategory.SEARCH, {"id": 1}) == "search"
    assert cache.get(CacheCategory.MEDIA_DETAILS, {"id": 1}) == "details"


def test_eviction_removes_least_frequently_read_entry():
    cache = ResponseCache(CacheSettings(max_size=2))
    cache.set(CacheCategory.SEARCH, {"q": "a"}, "A")
    cache.set(CacheCategory.SEARCH, {"q": "b"}, "B")
    cache.get(CacheCategory.SEARCH, {"q": "a"})
    cache.get(CacheCategory.SEARCH, {"q": "a"})

    cache.set(CacheCategory.SEARCH, {"q": "c"}, "C")

    assert len(cache) == 2
    assert cache.get(CacheCategory.SEARCH, {"q": "a"}) == "A"
    assert cache.get(CacheCategory.SEARCH, {"q": "b"}) is None
    assert cache.get(CacheCategory.SEARCH, {"q": "c"}) == "C"


def test_overwrite_at_capacity_keeps_other_entries():
    cache = ResponseCache(CacheSettings(max_size=2))
    cache.set(CacheCategory.SEARCH, {"q": "a"}, "A")
    cache.set(CacheCategory.SEARCH, {"q": "b"}, "B")
    cache.set(CacheCategory.SEARCH, {"q": "b"}, "B2")
    assert cache.get(CacheCategory.SEARCH, {"q": "a"}) == "A"
    assert cache.get(CacheCategory.SEARCH, {"q": "b"}) == "B2"


def test_invalidate_by_category():
    cache = ResponseCache()
    cache.set(CacheCategory.SEARCH, {"q": "a"}, "A")
    cache.set(CacheCategory.REQUESTS, {"take": 20}, "list")
    cache.set(CacheCategory.REQUESTS, {"requestId": 1}, "one")

    assert cache.invalidate(CacheCategory.REQUESTS) == 2
    assert cache.get(CacheCategory.SEARCH, {"q": "a"}) == "A"
    assert cache.invalidate() == 1
    assert len(cache) == 0


def test_disabled_cache_never_stores():
    cache = ResponseCache(CacheSettings(enabled=False))
    cache.set(CacheCategory.SEARCH, {"q": "a"}, "A")
    assert cache.get(CacheCategory.SEARCH, {"q": "a"}) is None
    assert len(cache) == 0


def test_cache_failures_degrade_to_miss(caplog):
    cache = ResponseCache()

    class Unserialisable:
        def __str__(self) -> str:
            raise RuntimeError("boom")

    with caplog.at_level(logging.DEBUG, logger="mcp_overseerr.common.cache"):
        cache.set(CacheCategory.SEARCH, {"q": Unserialisable()}, "A")
        assert cache.get(CacheCategory.SEARCH, {"q": Unserialisable()}) is None
    assert len(cache) == 0
    assert "Cache store failed" in caplog.text
    assert "Cache lookup failed" in caplog.text


def test_stats_report_hit_rates():
    cache = ResponseCache()
    cache.set(CacheCategory.SEARCH, {"q": "a"}, "A")
    cache.get(CacheCategory.SEARCH, {"q": "a"})
    cache.get(CacheCategory.SEARCH, {"q": "b"})

    stats = cache.stats()
    assert stats["size"] == 1
    assert stats["maxSize"] == 1000
    assert stats["categories"]["search"] == {
        "hits": 1,
        "misses": 1,
        "hitRate": "50.0%",
    }
    assert stats["categories"]["requests"]["hitRate"] == "0%"


def test_settings_validation():
    with pytest.raises(ValueError):
        CacheSettings(max_size=0)
    with pytest.raises(ValueError):
        CacheSettings(ttl={CacheCategory.REQUESTS: 0})


def test_purge_expired_drops_only_stale_entries():
    clock = FakeClock()
    cache = ResponseCache(
        CacheSettings(
            ttl={CacheCategory.SEARCH: 10.0, CacheCategory.MEDIA_DETAILS: 100.0}
        ),
        clock=clock,
    )
    cache.set(CacheCategory.SEARCH, {"query": "Frieren"}, "rows")
    cache.set(CacheCategory.MEDIA_DETAILS, {"mediaId": 1429}, "details")

    clock.now = 50.0
    assert cache.purge_expired() == 1
    assert len(cache) == 1
    assert cache.stats()["size"] == 1
    assert cache.get(CacheCategory.MEDIA_DETAILS, {"mediaId": 1429}) == "details"
