# src/cache/base_cache_store.py - v1
"""Abstract cache store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from compforge.cache.models import CacheStats


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends.

    Implementations must never raise on I/O problems: the cache is a
    performance optimization, not a source of truth.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""

    @abstractmethod
    async def set(
        self,
        key: str,
        value: Any,
        ttl_s: float | None = None,
        etag: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Store a value for ``ttl_s`` seconds (store default when None)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a cache entry. Missing keys are ignored."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry and reset counters."""

    @abstractmethod
    def stats(self) -> CacheStats:
        """Snapshot of hit/miss/write/eviction counters."""


class NullCacheStore(BaseCacheStore):
    """Always-miss store used when caching is disabled."""

    def __init__(self) -> None:
        self._stats = CacheStats()

    async def get(self, key: str) -> Any | None:
        self._stats.misses += 1
        return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl_s: float | None = None,
        etag: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        return None

    async def delete(self, key: str) -> None:
        return None

    async def clear(self) -> None:
        self._stats = CacheStats()

    def stats(self) -> CacheStats:
        return self._stats.model_copy()
