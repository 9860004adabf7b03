"""
Unit tests for the localization cache.
"""
import asyncio

import pytest

from internal.domain.errors import DomainValidationError
from internal.domain.value_objects import CacheKey, EntityKind, Locale
from internal.infrastructure.cache.localization_cache import LocalizationCache


@pytest.fixture
def key():
    return CacheKey(EntityKind.PARAMETER_TYPE, "Колір", Locale.UK)


class TestLocalizationCache:
    """Tests for LocalizationCache."""

    def test_get_and_set(self, cache, key):
        """Test a stored id is returned and counted as a hit."""
        assert cache.get(key) is None

        cache.set(key, "42")

        assert cache.get(key) == "42"
        assert key in cache
        assert len(cache) == 1
        assert cache.stats == {"size": 1, "hits": 1, "misses": 1}

    def test_keys_are_locale_scoped(self, cache, key):
        """Test the same natural key in another locale is a different entry."""
        cache.set(key, "42")

        assert cache.get(CacheKey(EntityKind.PARAMETER_TYPE, "Колір", Locale.RU)) is None
        assert cache.get(CacheKey(EntityKind.PARAMETER_VALUE, "Колір", Locale.UK)) is None

    def test_tuple_keys(self, cache):
        """Test composite natural keys are supported."""
        key = CacheKey(EntityKind.PARAMETER_VALUE, ("Червоний", "7"), Locale.UK)
        cache.set(key, "9")

        assert cache.get(CacheKey(EntityKind.PARAMETER_VALUE, ("Червоний", "7"), Locale.UK)) == "9"

    def test_empty_id_rejected(self, cache, key):
        """Test a missing id is never memoized."""
        with pytest.raises(ValueError):
            cache.set(key, None)
        assert not cache.has(key)

    def test_empty_key_rejected(self):
        """Test a cache key needs a natural key."""
        with pytest.raises(DomainValidationError):
            CacheKey(EntityKind.PRODUCT, "", Locale.UK)

    def test_clear(self, cache, key):
        """Test clearing drops every entry."""
        cache.set(key, "42")

        assert cache.clear() == 1
        assert len(cache) == 0

    def test_lock_per_key(self, cache, key):
        """Test the same key always gets the same lock."""
        other = CacheKey(EntityKind.PARAMETER_TYPE, "Розмір", Locale.UK)

        assert cache.lock(key) is cache.lock(key)
        assert cache.lock(key) is not cache.lock(other)

    @pytest.mark.asyncio
    async def test_lock_serializes_check_then_set(self, cache, key):
        """Test two tasks on one key never both see a miss."""
        misses = []

        async def find_or_create(value):
            async with cache.lock(key):
                if cache.get(key) is None:
                    misses.append(value)
                    await asyncio.sleep(0)
                    cache.set(key, value)
                return cache.get(key)

        results = await asyncio.gather(find_or_create("1"), find_or_create("2"))

        assert misses == ["1"]
        assert results == ["1", "1"]
