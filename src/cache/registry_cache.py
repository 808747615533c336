# src/cache/registry_cache.py - v1
"""Registry-aware helpers on top of a cache store.

Key scheme:
    component:<name>:<version>   full component, long TTL
    files:<name>:<version>       file payloads for one component version
    search:<digest>              search results for a hashed SearchFilter
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from compforge.cache.base_cache_store import BaseCacheStore
from compforge.cache.keys import query_key
from compforge.core.models import Component, ComponentFile, ComponentSummary

logger = logging.getLogger(__name__)

COMPONENT_TTL_S = 7 * 24 * 3600.0
SEARCH_TTL_S = 600.0

_summaries = TypeAdapter(list[ComponentSummary])
_files = TypeAdapter(list[ComponentFile])


def component_etag(component: Component) -> str:
    """Content fingerprint: MD5 over name, version and file count."""
    content = json.dumps(
        {"name": component.name, "version": component.version, "files": len(component.files)},
        sort_keys=True,
    )
    return hashlib.md5(content.encode("utf-8")).hexdigest()  # noqa: S324


class RegistryCache:
    """Typed get/set for components, file payloads and search results.

    Cached payloads are re-validated on read; anything that no longer
    parses is treated as a miss and dropped.
    """

    def __init__(
        self,
        store: BaseCacheStore,
        component_ttl_s: float = COMPONENT_TTL_S,
        search_ttl_s: float = SEARCH_TTL_S,
    ) -> None:
        self._store = store
        self._component_ttl_s = component_ttl_s
        self._search_ttl_s = search_ttl_s

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    async def cache_component(self, component: Component) -> None:
        payload = component.model_dump(mode="json")
        meta = {
            "name": component.name,
            "version": component.version,
            "category": component.category,
            "frameworks": sorted(component.frameworks),
        }
        etag = component_etag(component)
        await self._store.set(
            f"component:{component.name}:{component.version}",
            payload, ttl_s=self._component_ttl_s, etag=etag, metadata=meta,
        )
        # "latest" alias so unversioned lookups hit as well
        await self._store.set(
            f"component:{component.name}:latest",
            payload, ttl_s=self._component_ttl_s, etag=etag, metadata=meta,
        )

    async def get_cached_component(
        self, name: str, version: str | None = None
    ) -> Component | None:
        key = f"component:{name}:{version or 'latest'}"
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            return Component.model_validate(raw)
        except ValidationError:
            await self._drop(key)
            return None

    async def cache_files(
        self, name: str, files: list[ComponentFile], version: str = "latest"
    ) -> None:
        await self._store.set(
            f"files:{name}:{version}",
            [f.model_dump(mode="json") for f in files],
            ttl_s=self._component_ttl_s,
        )

    async def get_cached_files(
        self, name: str, version: str = "latest"
    ) -> list[ComponentFile] | None:
        key = f"files:{name}:{version}"
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            return _files.validate_python(raw)
        except ValidationError:
            await self._drop(key)
            return None

    async def cache_search_results(
        self, query: Any, results: list[ComponentSummary], ttl_s: float | None = None
    ) -> None:
        await self._store.set(
            query_key("search", query),
            [r.model_dump(mode="json") for r in results],
            ttl_s=ttl_s or self._search_ttl_s,
        )

    async def get_cached_search_results(self, query: Any) -> list[ComponentSummary] | None:
        key = query_key("search", query)
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            return _summaries.validate_python(raw)
        except ValidationError:
            await self._drop(key)
            return None

    async def warm(self, components: list[Component]) -> int:
        """Pre-populate the cache with full components and their files."""
        for component in components:
            await self.cache_component(component)
            await self.cache_files(component.name, component.files, component.version)
        logger.info("Warmed cache with %d components", len(components))
        return len(components)

    async def _drop(self, key: str) -> None:
        logger.debug("Dropping unparseable cache payload: %s", key)
        await self._store.delete(key)
