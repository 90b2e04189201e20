from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from market_directory.search.cache import SearchCache
from market_directory.search.normalizer import build_intent


def test_cache_miss_then_hit():
    cache = SearchCache(ttl=60)
    intent = build_intent(plz="60311")
    assert cache.get(intent) is None
    cache.set(intent, "result")
    assert cache.get(intent) == "result"
    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 50.0


def test_cache_key_uses_normalized_intent():
    cache = SearchCache(ttl=60)
    cache.set(build_intent(query="Honig", plz=" 60311"), "result")
    assert cache.get(build_intent(query="Honig ", plz="60311")) == "result"


def test_cache_different_intents_miss():
    cache = SearchCache(ttl=60)
    cache.set(build_intent(city="Frankfurt"), "a")
    assert cache.get(build_intent(city="Berlin")) is None
    assert cache.get(build_intent(city="Frankfurt", search_type="offers")) is None
    assert cache.stats()["hits"] == 0


@patch("market_directory.search.cache.time.time")
def test_cache_entries_expire(mock_time):
    cache = SearchCache(ttl=10)
    intent = build_intent(plz="60311")
    mock_time.return_value = 1000.0
    cache.set(intent, "result")
    mock_time.return_value = 1011.0
    assert cache.get(intent) is None
    assert cache.stats()["size"] == 0


def test_clear_resets_stats():
    cache = SearchCache(ttl=60)
    intent = build_intent(plz="60311")
    cache.set(intent, "result")
    cache.get(intent)
    cache.clear()
    assert cache.stats() == {"size": 0, "hits": 0, "misses": 0, "hit_rate": 0.0}


def test_cache_entry_stale_after_valid_until():
    cache = SearchCache(ttl=300)
    intent = build_intent(query="honig")
    valid_until = datetime(2026, 3, 1, 12, 0, 30, tzinfo=timezone.utc)
    cache.set(intent, "result", valid_until=valid_until)

    assert cache.get(intent, now=valid_until - timedelta(seconds=1)) == "result"
    assert cache.get(intent, now=valid_until) is None
    assert cache.stats()["size"] == 0
