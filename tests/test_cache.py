"""
Unit tests for the TrailerCache module.

Tests cover:
- Key derivation (case, whitespace, punctuation, year)
- Get/set/put operations
- Lazy expiry on read and the explicit sweep
- Capacity eviction by oldest insertion time
- Statistics
"""

import pytest

from trailerscout.cache import TrailerCache, CacheEntry, derive_key
from trailerscout.schemas import Source, TrailerReference


def _ref(url="https://example.com/t", source=Source.KINOCHECK):
    return TrailerReference(url=url, source=source)


class TestDeriveKey:
    """Test cache key derivation."""

    def test_case_and_punctuation_collide(self):
        assert derive_key("The Matrix", 1999) == derive_key("the   matrix!!", 1999)

    def test_format(self):
        assert derive_key("Spider-Man: No Way Home", 2021) == "spidermannowayhome_2021"

    def test_unknown_year(self):
        assert derive_key("Dune") == "dune_unknown"

    def test_year_distinguishes(self):
        assert derive_key("Dune", 1984) != derive_key("Dune", 2021)

    def test_non_ascii_letters_dropped(self):
        assert derive_key("Amélie", 2001) == "amlie_2001"


class TestCacheInitialization:
    """Test cache construction."""

    def test_defaults(self):
        cache = TrailerCache()
        assert cache.max_size == 100
        assert cache.ttl == 24 * 60 * 60
        assert len(cache) == 0

    @pytest.mark.parametrize("kwargs", [{"max_size": 0}, {"ttl": 0}])
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            TrailerCache(**kwargs)


class TestBasicOperations:
    """Test get/set/put."""

    def test_put_and_get(self, cache, clock):
        entry = cache.put("dune_2021", _ref(), media_id="438631", title="Dune")

        assert entry.inserted_at == clock.now
        assert entry.expires_at == clock.now + 60
        assert cache.get("dune_2021") == entry
        assert cache.get("dune_2021").source == Source.KINOCHECK

    def test_get_missing(self, cache):
        assert cache.get("nothing_unknown") is None

    def test_set_replaces_existing(self, cache):
        cache.put("dune_2021", _ref("https://a"))
        cache.put("dune_2021", _ref("https://b", Source.TMDB))

        assert len(cache) == 1
        assert cache.get("dune_2021").reference.url == "https://b"

    def test_explicit_set(self, cache, clock):
        entry = CacheEntry(
            key="k_unknown",
            reference=_ref(),
            inserted_at=clock.now,
            expires_at=clock.now + 5,
        )
        cache.set("k_unknown", entry)
        assert "k_unknown" in cache


class TestExpiry:
    """Test TTL enforcement."""

    def test_entry_live_until_expiry(self, cache, clock):
        cache.put("dune_2021", _ref())
        clock.advance(60)
        assert cache.get("dune_2021") is not None

    def test_expired_entry_removed_on_read(self, cache, clock):
        cache.put("dune_2021", _ref())
        clock.advance(61)

        assert cache.get("dune_2021") is None
        assert "dune_2021" not in cache

    def test_read_does_not_extend_expiry(self, cache, clock):
        cache.put("dune_2021", _ref())
        clock.advance(50)
        assert cache.get("dune_2021") is not None
        clock.advance(11)
        assert cache.get("dune_2021") is None

    def test_cleanup_expired(self, cache, clock):
        cache.put("old_unknown", _ref())
        clock.advance(30)
        cache.put("new_unknown", _ref())
        clock.advance(31)

        assert cache.cleanup_expired() == 1
        assert "old_unknown" not in cache
        assert "new_unknown" in cache

    def test_cleanup_nothing_expired(self, cache):
        cache.put("a_unknown", _ref())
        assert cache.cleanup_expired() == 0


class TestCapacityEviction:
    """Test eviction at max size."""

    def test_oldest_inserted_evicted(self, clock):
        cache = TrailerCache(max_size=100, ttl=3600, clock=clock)
        for i in range(100):
            cache.put(f"title{i}_unknown", _ref(f"https://t/{i}"))
            clock.advance(1)

        cache.put("title100_unknown", _ref("https://t/100"))

        assert len(cache) == 100
        assert "title0_unknown" not in cache
        for i in range(1, 101):
            assert cache.get(f"title{i}_unknown") is not None

    def test_eviction_ignores_access_recency(self, clock):
        cache = TrailerCache(max_size=2, ttl=3600, clock=clock)
        cache.put("first_unknown", _ref())
        clock.advance(1)
        cache.put("second_unknown", _ref())
        clock.advance(1)

        # Reading the oldest entry does not protect it
        assert cache.get("first_unknown") is not None
        cache.put("third_unknown", _ref())

        assert "first_unknown" not in cache
        assert "second_unknown" in cache
        assert "third_unknown" in cache

    def test_replacing_key_at_capacity_does_not_evict(self, clock):
        cache = TrailerCache(max_size=2, ttl=3600, clock=clock)
        cache.put("a_unknown", _ref())
        cache.put("b_unknown", _ref())
        cache.put("a_unknown", _ref("https://new"))

        assert len(cache) == 2
        assert "b_unknown" in cache

    def test_size_never_exceeds_max(self, clock):
        cache = TrailerCache(max_size=5, ttl=3600, clock=clock)
        for i in range(50):
            cache.put(f"k{i}_unknown", _ref())
            clock.advance(0.5)
            assert len(cache) <= 5


class TestStatistics:
    """Test cache statistics."""

    def test_stats(self, cache, clock):
        cache.put("dune_2021", _ref(), title="Dune")
        clock.advance(10)
        cache.get("dune_2021")
        cache.get("missing_unknown")

        stats = cache.get_stats()
        assert stats["size"] == 1
        assert stats["max_size"] == 100
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_ratio"] == 0.5
        assert stats["entries"] == [
            {"key": "dune_2021", "title": "Dune", "source": "kinocheck", "age": 10}
        ]

    def test_clear(self, cache):
        cache.put("a_unknown", _ref())
        cache.put("b_unknown", _ref())

        assert cache.clear() == 2
        assert len(cache) == 0
        assert cache.get_stats()["evictions"] == 2

    def test_reset_stats(self, cache):
        cache.get("missing_unknown")
        cache.reset_stats()
        assert cache.get_stats()["misses"] == 0
