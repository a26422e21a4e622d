"""
ResultCache - Async-safe in-process cache for processed city pages.

Features:
- TTL per entry, with a longer backend default when no TTL is given
- LRU eviction once max_size is reached
- Whole-value replacement under a single asyncio lock
"""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    data: T
    timestamp: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Check if entry is past its TTL."""
        return now >= self.expires_at


class ResultCache:
    """
    Cache-aside store keyed by request fingerprint.

    Usage:
        cache = ResultCache(max_size=100)
        key = cache.generate_key("France", 1, 10)

        entry = await cache.get(key)
        if entry:
            return entry.data

        result = await build_result()
        await cache.set(key, result, ttl=timedelta(seconds=60))
    """

    def __init__(
        self,
        prefix: str = "cities_",
        max_size: int = 100,
        default_ttl: timedelta = timedelta(minutes=10),
        debug: bool = False,
    ):
        self._memory: OrderedDict[str, CacheEntry[Any]] = OrderedDict()
        self._prefix = prefix
        self._max_size = max_size
        self._default_ttl = default_ttl
        self._debug = debug
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    def generate_key(self, country: str, page: int, limit: int) -> str:
        """
        Build the fingerprint for a city page request.

        The country is trimmed but keeps its case. page and limit are always
        the last two fields, so distinct triples never share a key.
        """
        return f"{self._prefix}{country.strip()}_{page}_{limit}"

    def _now(self) -> datetime:
        return datetime.now()

    async def get(self, key: str) -> CacheEntry[Any] | None:
        """
        Get entry from cache.

        Returns the entry if present and unexpired, None otherwise.
        """
        async with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                self._stats.misses += 1
                self._log(f"MISS: {key}")
                return None

            if entry.is_expired(self._now()):
                del self._memory[key]
                self._stats.misses += 1
                self._log(f"EXPIRED: {key}")
                return None

            self._memory.move_to_end(key)
            self._stats.hits += 1
            self._log(f"HIT: {key}")
            return entry

    async def set(self, key: str, data: Any, ttl: timedelta | None = None) -> None:
        """
        Set value in cache, replacing any previous entry for the key.

        Args:
            key: Cache key
            data: Data to cache
            ttl: Time to live (uses default if not specified)
        """
        ttl = ttl or self._default_ttl
        now = self._now()
        entry = CacheEntry(data=data, timestamp=now, expires_at=now + ttl)

        async with self._lock:
            if key in self._memory:
                self._memory.move_to_end(key)
            elif len(self._memory) >= self._max_size:
                self._evict_lru()

            self._memory[key] = entry
            self._log(f"SET: {key} (TTL: {ttl.total_seconds()}s)")

    async def delete(self, key: str) -> bool:
        """Delete a specific key from cache."""
        async with self._lock:
            if key in self._memory:
                del self._memory[key]
                self._log(f"DELETE: {key}")
                return True
            return False

    async def clear(self) -> None:
        """Clear all cache entries."""
        async with self._lock:
            count = len(self._memory)
            self._memory.clear()
            self._log(f"CLEAR: {count} entries removed")

    async def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        async with self._lock:
            now = self._now()
            expired_keys = [k for k, v in self._memory.items() if v.is_expired(now)]
            for key in expired_keys:
                del self._memory[key]

            if expired_keys:
                self._log(f"CLEANUP: {len(expired_keys)} expired entries removed")

            return len(expired_keys)

    def _evict_lru(self) -> None:
        """Evict the least recently used entry. Caller holds the lock."""
        if not self._memory:
            return

        oldest_key, _ = self._memory.popitem(last=False)
        self._stats.evictions += 1
        self._log(f"EVICT: {oldest_key}")

    def __len__(self) -> int:
        return len(self._memory)

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        self._stats.max_size = self._max_size
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[ResultCache] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
