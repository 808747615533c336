# src/registry/client.py - v1
"""Cache-first registry client with retry and timeout around every fetch.

Lookup order for each call:
    1. RegistryCache (hashed search key / versioned files key)
    2. RegistrySource, each attempt raced against FETCH_TIMEOUT_S and
       retried with exponential backoff
    3. Validated result written back to the cache

Transport errors and timeouts surface as FetchFailedError once retries are
exhausted. ComponentNotFoundError and InvalidComponentError are not
transient and are raised on the first attempt.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from compforge.cache.registry_cache import RegistryCache
from compforge.concurrency.retry import retry
from compforge.concurrency.timeout import with_timeout
from compforge.config.settings import Settings
from compforge.core.errors import (
    ComponentNotFoundError,
    FetchFailedError,
    InvalidComponentError,
)
from compforge.core.models import ComponentFile, ComponentSummary, SearchFilter
from compforge.registry.source import RegistrySource
from compforge.registry.validation import validate_files, validate_summaries

logger = logging.getLogger(__name__)

_PERMANENT_ERRORS = (ComponentNotFoundError, InvalidComponentError)


def is_transient(error: BaseException) -> bool:
    """Errors worth retrying: everything except registry-level verdicts."""
    return not isinstance(error, _PERMANENT_ERRORS)


class RegistryClient:
    """Validated, cached access to a RegistrySource."""

    def __init__(
        self,
        source: RegistrySource,
        cache: RegistryCache,
        settings: Settings | None = None,
    ) -> None:
        self._source = source
        self._cache = cache
        self._settings = settings or Settings()

    async def search(self, query: SearchFilter | None = None) -> list[ComponentSummary]:
        """Search the registry, serving from cache when fresh."""
        query = query or SearchFilter()
        cached = await self._cache.get_cached_search_results(query)
        if cached is not None:
            logger.debug("Search cache hit (%d results)", len(cached))
            return cached

        raw = await self._fetch("search", lambda: self._source.search(query))
        summaries = validate_summaries(raw)
        await self._cache.cache_search_results(query, summaries)
        return summaries

    async def load_graph(self) -> dict[str, ComponentSummary]:
        """All registry components keyed by name (the dependency graph)."""
        summaries = await self.search(SearchFilter())
        graph: dict[str, ComponentSummary] = {}
        for summary in summaries:
            if summary.name in graph:
                logger.warning("Duplicate registry entry for '%s', keeping first", summary.name)
                continue
            graph[summary.name] = summary
        return graph

    async def get_files(
        self, name: str, version: str = "latest"
    ) -> tuple[list[ComponentFile], bool]:
        """File payloads for ``name`` and whether they came from the cache.

        ``version`` should come from the registry graph so a newly published
        version never reuses the payload cached for an older one.
        """
        cached = await self.cached_files(name, version)
        if cached is not None:
            return cached, True
        return await self.fetch_files(name, version), False

    async def cached_files(
        self, name: str, version: str = "latest"
    ) -> list[ComponentFile] | None:
        """Cached file payloads for ``name`` at ``version``, or None."""
        return await self._cache.get_cached_files(name, version)

    async def fetch_files(self, name: str, version: str = "latest") -> list[ComponentFile]:
        """Fetch file payloads from the source, bypassing the cache read."""
        raw = await self._fetch(name, lambda: self._source.get_files(name))
        files = validate_files(name, raw)
        await self._cache.cache_files(name, files, version)
        return files

    async def _fetch(self, target: str, call: Callable[[], Awaitable[Any]]) -> Any:
        s = self._settings
        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            return await with_timeout(
                call(), s.fetch_timeout_s, message=f"Fetching '{target}' timed out"
            )

        try:
            return await retry(
                attempt,
                retries=s.fetch_retries,
                initial_delay_s=s.fetch_retry_delay_s,
                backoff_factor=s.fetch_backoff_factor,
                retry_on=is_transient,
            )
        except _PERMANENT_ERRORS:
            raise
        except Exception as exc:
            raise FetchFailedError(target, attempts, exc) from exc
