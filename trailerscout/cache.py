"""
In-Memory Trailer Cache with TTL and bounded size.

This module provides the process-local cache that sits in front of the
trailer providers. Keys are derived from a normalized (title, year) pair so
that lookups for the same conceptual title collide regardless of case,
whitespace or punctuation.

Key Features:
- Deterministic key derivation (lower-case, [a-z0-9] only, year or "unknown")
- Fixed TTL per entry (default 24h), no sliding expiration
- Lazy expiry on read plus an explicit sweep for unread entries
- Capacity eviction of the oldest-inserted entry
- Hit/miss/eviction statistics

Usage Example:
    >>> from trailerscout.cache import TrailerCache, derive_key
    >>> cache = TrailerCache(max_size=100)
    >>> key = derive_key("The Matrix", 1999)
    >>> key
    'thematrix_1999'
    >>> cache.get(key) is None
    True
"""

import re
import time
import logging
import threading
from typing import Dict, Any, Optional, Callable, List
from dataclasses import dataclass

from trailerscout.config import DEFAULT_CACHE_TTL
from trailerscout.metrics import track_cache_operation, track_cache_eviction, update_cache_size
from trailerscout.schemas import TrailerReference, Source

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r'[^a-z0-9]')


def derive_key(title: str, year: Optional[int] = None) -> str:
    """
    Derive the cache key for a title and optional year.

    Examples:
        >>> derive_key("The Matrix", 1999) == derive_key("the   matrix!!", 1999)
        True
        >>> derive_key("Dune")
        'dune_unknown'
    """
    normalized = _NON_ALNUM.sub('', (title or '').lower())
    return f"{normalized}_{year if year is not None else 'unknown'}"


@dataclass(frozen=True)
class CacheEntry:
    """
    A single cached resolution.

    Attributes:
        key: The derived cache key
        reference: The cached trailer reference
        inserted_at: When the entry was created (Unix timestamp)
        expires_at: inserted_at + TTL
        media_id: Catalog identifier, bookkeeping only
        title: Display title, bookkeeping only
    """
    key: str
    reference: TrailerReference
    inserted_at: float
    expires_at: float
    media_id: Optional[str] = None
    title: str = ""

    @property
    def source(self) -> Source:
        return self.reference.source

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass
class CacheStats:
    """
    Cache statistics.

    Attributes:
        hits: Number of lookups served from the cache
        misses: Number of lookups that found nothing usable
        evictions: Entries removed by expiry, capacity or manual clearing
    """
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests


class TrailerCache:
    """
    Bounded in-memory cache of trailer resolutions.

    Every public operation holds an internal lock for its whole duration, so
    a get/set/sweep is atomic with respect to resolutions running on other
    threads. Concurrent misses on the same key are not coalesced; the later
    ``set`` simply replaces the earlier entry.

    The eviction policy removes the entry with the smallest ``inserted_at``
    when a new key arrives at capacity. Reads do not refresh an entry's
    position or expiry.
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the trailer cache.

        Args:
            max_size: Maximum number of entries (default: 100)
            ttl: Time-to-live in seconds (default: 86400)
            clock: Callable returning the current time in seconds
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._stats = CacheStats()
        self._lock = threading.Lock()

        logger.info(f"TrailerCache initialized: ttl={self.ttl}s, max_size={self.max_size}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> Optional[CacheEntry]:
        """
        Return the live entry for ``key``, or None.

        An expired entry is deleted on the spot and reported as absent.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                track_cache_operation(hit=False)
                logger.debug(f"Cache miss: {key}")
                return None

            now = self._clock()
            if entry.is_expired(now):
                del self._entries[key]
                self._stats.misses += 1
                self._stats.evictions += 1
                track_cache_operation(hit=False)
                track_cache_eviction("expired")
                update_cache_size(len(self._entries))
                logger.debug(f"Cache expired: {key} (age: {now - entry.inserted_at:.1f}s)")
                return None

            self._stats.hits += 1
            track_cache_operation(hit=True)
            logger.debug(f"Cache hit: {key} (age: {now - entry.inserted_at:.1f}s)")
            return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        """
        Insert or replace the entry for ``key``.

        When ``key`` is new and the cache is full, the oldest-inserted entry
        is evicted first.
        """
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                oldest_key = min(self._entries, key=lambda k: self._entries[k].inserted_at)
                del self._entries[oldest_key]
                self._stats.evictions += 1
                track_cache_eviction("capacity")
                logger.debug(f"Cache capacity eviction: {oldest_key} (max_size reached)")

            self._entries[key] = entry
            update_cache_size(len(self._entries))
            logger.debug(f"Cache set: {key} (size: {len(self._entries)})")

    def put(
        self,
        key: str,
        reference: TrailerReference,
        media_id: Optional[str] = None,
        title: str = ""
    ) -> CacheEntry:
        """Build an entry stamped with the current time and the configured TTL, then store it."""
        now = self._clock()
        entry = CacheEntry(
            key=key,
            reference=reference,
            inserted_at=now,
            expires_at=now + self.ttl,
            media_id=media_id,
            title=title,
        )
        self.set(key, entry)
        return entry

    def cleanup_expired(self) -> int:
        """
        Remove every entry whose expiry has passed.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]

            if expired:
                self._stats.evictions += len(expired)
                track_cache_eviction("expired", len(expired))
                update_cache_size(len(self._entries))
                logger.info(f"Cleared {len(expired)} expired cache entries")
            return len(expired)

    def clear(self) -> int:
        """
        Remove all entries.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._stats.evictions += count
            track_cache_eviction("manual", count)
            update_cache_size(0)
            logger.info(f"Cache cleared: {count} entries")
            return count

    def entries(self) -> List[CacheEntry]:
        """Snapshot of the stored entries, expired ones included."""
        with self._lock:
            return list(self._entries.values())

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with size, max_size, hits, misses, evictions, hit_ratio
            and per-entry details (key, title, source, age in seconds)
        """
        with self._lock:
            now = self._clock()
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "hits": self._stats.hits,
                "misses": self._stats.misses,
                "evictions": self._stats.evictions,
                "hit_ratio": self._stats.hit_ratio,
                "entries": [
                    {
                        "key": key,
                        "title": entry.title,
                        "source": entry.source.value,
                        "age": now - entry.inserted_at,
                    }
                    for key, entry in self._entries.items()
                ],
            }

    def reset_stats(self) -> None:
        """Reset statistics without clearing cached data."""
        with self._lock:
            self._stats = CacheStats()
        logger.info("Cache statistics reset")
