# src/api/facade.py - v1
"""Public API facade: single entry point for installing components.

Usage:
    from compforge.api.facade import add_components
    outcome = await add_components(["table"], root="./my-app")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from compforge.cache.cache_factory import create_cache_store
from compforge.cache.registry_cache import RegistryCache
from compforge.config.settings import ConfigurationError, Settings
from compforge.core.models import Component, InstallOptions, InstallOutcome
from compforge.installer.batch_installer import BatchInstaller, ProgressCallback
from compforge.registry.client import RegistryClient
from compforge.registry.source import JsonFileRegistrySource
from compforge.workspace.detector import WorkspaceDetector

if TYPE_CHECKING:
    from compforge.cache.base_cache_store import BaseCacheStore
    from compforge.installer.filesystem import Filesystem
    from compforge.registry.source import RegistrySource

logger = logging.getLogger(__name__)


def build_registry_client(
    settings: Settings,
    source: RegistrySource | None = None,
    cache_store: BaseCacheStore | None = None,
) -> RegistryClient:
    """Wire a RegistryClient from settings and optional collaborators.

    Raises:
        ConfigurationError: No source given and REGISTRY_FILE is unset, or
            the registry file cannot be read as a registry document.
    """
    if source is None:
        if settings.registry_file is None:
            raise ConfigurationError(
                "No registry source: pass one explicitly or set REGISTRY_FILE"
            )
        try:
            source = JsonFileRegistrySource(settings.registry_file)
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Cannot load registry file {settings.registry_file}: {e}"
            ) from e
    store = cache_store if cache_store is not None else create_cache_store(settings)
    cache = RegistryCache(
        store,
        component_ttl_s=settings.cache_component_ttl_s,
        search_ttl_s=settings.cache_search_ttl_s,
    )
    return RegistryClient(source, cache, settings)


async def add_components(
    names: list[str],
    options: InstallOptions | Mapping[str, Any] | None = None,
    root: Path | str = ".",
    settings: Settings | None = None,
    source: RegistrySource | None = None,
    cache_store: BaseCacheStore | None = None,
    filesystem: Filesystem | None = None,
    progress: ProgressCallback | None = None,
    definitions: list[Component] | None = None,
) -> InstallOutcome:
    """Install components and their dependencies into the workspace at ``root``.

    Args:
        names: Requested component names.
        options: Overwrite / explicit path / dry-run switches.
        root: Target directory. Workspace detection walks up from here.
        settings: Global settings. Loaded from .env if None.
        source: Registry source. Defaults to the REGISTRY_FILE document.
        cache_store: Cache backend. Defaults to create_cache_store(settings).
        filesystem: Workspace filesystem. Defaults to the local disk.
        progress: Optional progress callback.
        definitions: Components loaded from local definition files. When
            given and no registry is configured, only they can be installed.

    Returns:
        InstallOutcome listing succeeded and failed components.

    Raises:
        ComponentNotFoundError: A requested or required name is not in the registry.
        FetchFailedError: The registry graph could not be loaded.
        ConfigurationError: Settings are inconsistent or no source is available.
    """
    settings = settings or Settings()
    registry = None
    if source is not None or settings.registry_file is not None or not definitions:
        registry = build_registry_client(settings, source, cache_store)
    installer = BatchInstaller(
        registry,
        detector=WorkspaceDetector(),
        filesystem=filesystem,
        settings=settings,
        progress=progress,
    )
    requested = [*names, *(d.name for d in definitions or [])]
    logger.info("Adding %s into %s", ", ".join(requested), Path(root))
    return await installer.install(names, options, root, definitions=definitions)
