"""
In-memory localization cache.

Memoizes the engine's own successful resolutions for the lifetime of one
batch run. Nothing is persisted and nothing expires.
"""
import asyncio
from typing import Optional

from internal.domain.entities import EntityId
from internal.domain.value_objects import CacheKey
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


class LocalizationCache:
    """
    Run-scoped map of ``CacheKey -> remote id``.

    ``lock(key)`` hands out one ``asyncio.Lock`` per key so that the
    check-then-create sequence for a natural key is never interleaved with
    another task working on the same key.
    """

    def __init__(self, name: str = "localization") -> None:
        """
        Initialize the cache.

        Args:
            name: Cache name for logging.
        """
        self._name = name
        self._entries: dict[CacheKey, EntityId] = {}
        self._locks: dict[CacheKey, asyncio.Lock] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: CacheKey) -> Optional[EntityId]:
        """
        Get a memoized id.

        Args:
            key: Cache key.

        Returns:
            The id, or None on a miss.
        """
        value = self._entries.get(key)
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        return value

    def set(self, key: CacheKey, value: EntityId) -> None:
        """
        Memoize an id.

        Args:
            key: Cache key.
            value: Remote id the key resolved to.
        """
        if value is None:
            raise ValueError("LocalizationCache does not store empty ids")
        self._entries[key] = value

    def has(self, key: CacheKey) -> bool:
        """Check whether a key is memoized."""
        return key in self._entries

    def lock(self, key: CacheKey) -> asyncio.Lock:
        """Get the lock guarding a key."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def clear(self) -> int:
        """
        Drop all entries.

        Returns:
            Number of entries dropped.
        """
        dropped = len(self._entries)
        self._entries.clear()
        self._locks.clear()
        logger.info("Localization cache cleared", cache=self._name, dropped=dropped)
        return dropped

    @property
    def stats(self) -> dict[str, int]:
        """Get hit/miss counters."""
        return {"size": len(self._entries), "hits": self._hits, "misses": self._misses}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return self.has(key)
