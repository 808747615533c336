# src/cache/cache_factory.py - v1
"""Factory for cache store instantiation."""

from __future__ import annotations

from compforge.cache.base_cache_store import BaseCacheStore, NullCacheStore
from compforge.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache store.

    Args:
        settings: Application settings. Defaults to a hybrid store under
            ``~/.compforge/cache``.

    Returns:
        HybridCacheStore, or NullCacheStore when caching is disabled.
    """
    if settings is not None and not settings.cache_enabled:
        return NullCacheStore()

    from compforge.cache.hybrid_store import HybridCacheStore

    if settings is None:
        return HybridCacheStore(base_dir="~/.compforge/cache")
    return HybridCacheStore(
        base_dir=settings.cache_root_path,
        default_ttl_s=settings.cache_default_ttl_s,
        max_entries=settings.cache_max_entries,
    )
