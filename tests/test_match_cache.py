from __future__ import annotations

import threading

import pytest

from tm_core.errors import ConfigurationError
from tm_core.match_cache import MatchCache


def test_inserting_past_capacity_evicts_least_recently_accessed_key() -> None:
    cache: MatchCache[str, str] = MatchCache(3)
    cache.put("a", "1")
    cache.put("b", "2")
    cache.put("c", "3")

    assert cache.get("a") == "1"
    cache.put("d", "4")

    assert len(cache) == 3
    assert cache.get("b") is None
    assert cache.get("a") == "1"
    assert cache.get("c") == "3"
    assert cache.get("d") == "4"


def test_reputting_existing_key_refreshes_without_eviction() -> None:
    cache: MatchCache[str, str] = MatchCache(2)
    cache.put("a", "1")
    cache.put("b", "2")
    cache.put("a", "updated")
    cache.put("c", "3")

    assert cache.get("a") == "updated"
    assert "b" not in cache
    assert cache.is_full


@pytest.mark.parametrize("capacity", [0, -5])
def test_non_positive_capacity_is_rejected(capacity: int) -> None:
    with pytest.raises(ConfigurationError):
        MatchCache(capacity)


def test_statistics_track_hits_and_misses_until_clear() -> None:
    cache: MatchCache[str, str] = MatchCache(10)
    cache.put("a", "1")
    cache.get("a")
    cache.get("a")
    cache.get("missing")

    stats = cache.statistics()
    assert stats.size == 1
    assert stats.max_size == 10
    assert stats.hits == 2
    assert stats.misses == 1
    assert stats.hit_rate == pytest.approx(2 / 3)

    cache.clear()
    cleared = cache.statistics()
    assert cleared.size == 0
    assert cleared.hits == 0
    assert cleared.hit_rate == 0.0
    assert cache.get("a") is None


def test_invalidate_by_key_and_by_language() -> None:
    cache: MatchCache[tuple[str, str, str, str], str] = MatchCache(10)
    cache.put(("attack", "fr", "", ""), "1")
    cache.put(("defend", "fr", "", ""), "2")
    cache.put(("attack", "de", "", ""), "3")

    assert cache.invalidate(("defend", "fr", "", "")) is True
    assert cache.invalidate(("defend", "fr", "", "")) is False
    assert cache.invalidate_language("fr") == 1
    assert len(cache) == 1
    assert ("attack", "de", "", "") in cache


def test_membership_check_does_not_touch_recency() -> None:
    cache: MatchCache[str, str] = MatchCache(2)
    cache.put("a", "1")
    cache.put("b", "2")

    assert "a" in cache
    cache.put("c", "3")

    assert "a" not in cache
    assert "b" in cache


def test_concurrent_writers_never_exceed_capacity() -> None:
    cache: MatchCache[str, int] = MatchCache(50)

    def _writer(offset: int) -> None:
        for index in range(500):
            cache.put(f"{offset}-{index}", index)
            cache.get(f"{offset}-{index // 2}")

    threads = [threading.Thread(target=_writer, args=(offset,)) for offset in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 50
    stats = cache.statistics()
    assert stats.hits + stats.misses == 8 * 500


def test_preload_fills_until_full_without_evicting_or_counting() -> None:
    cache: MatchCache[str, str] = MatchCache(3)
    cache.put("a", "1")

    added = cache.preload([("a", "x"), ("b", "2"), ("c", "3"), ("d", "4")])

    assert added == 2
    assert len(cache) == 3
    assert "d" not in cache
    assert cache.get("a") == "1"
    stats = cache.statistics()
    assert (stats.hits, stats.misses) == (1, 0)
