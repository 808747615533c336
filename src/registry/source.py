# src/registry/source.py - v1
"""Registry metadata sources.

A source is the transport boundary: it returns raw, untrusted JSON-like
data and knows nothing about caching, retries or validation. Those are
layered on by registry.client.RegistryClient.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping

from compforge.core.errors import ComponentNotFoundError
from compforge.core.models import ComponentSummary, SearchFilter

logger = logging.getLogger(__name__)


class RegistrySource(ABC):
    """Interface for registry backends (HTTP API, file, in-memory)."""

    @abstractmethod
    async def search(self, query: SearchFilter) -> list[dict[str, Any]]:
        """Return raw component summaries matching ``query``."""

    @abstractmethod
    async def get_files(self, name: str) -> list[dict[str, Any]]:
        """Return raw ``{path, content, type}`` records for a component.

        Raises:
            ComponentNotFoundError: If the registry has no such component.
        """


class StaticRegistrySource(RegistrySource):
    """In-memory source over a ``{name: component_dict}`` mapping.

    An empty filter returns every record untouched, so malformed ones reach
    validation and fail loudly. Filtered queries skip records that do not parse.
    """

    def __init__(self, components: Mapping[str, Mapping[str, Any]]) -> None:
        self._components: dict[str, dict[str, Any]] = {}
        for name, data in components.items():
            if not isinstance(data, Mapping):
                raise ValueError(f"Registry entry '{name}' must be an object")
            self._components[name] = {**dict(data), "name": name}

    async def search(self, query: SearchFilter) -> list[dict[str, Any]]:
        rows = [_summary_view(c) for c in self._components.values()]
        if query == SearchFilter():
            return rows
        parsed: list[ComponentSummary] = []
        for row in rows:
            try:
                parsed.append(ComponentSummary.model_validate(row))
            except ValueError:
                continue
        keep = {c.name for c in query.apply(parsed)}
        return [r for r in rows if r.get("name") in keep]

    async def get_files(self, name: str) -> list[dict[str, Any]]:
        component = self._components.get(name)
        if component is None:
            raise ComponentNotFoundError([name])
        return list(component.get("files") or [])


class JsonFileRegistrySource(StaticRegistrySource):
    """Registry loaded from a JSON document on disk.

    Expected shape::

        {"version": "1.0.0", "components": {"button": {...}, ...}}

    A bare ``{"button": {...}}`` mapping is accepted too.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Registry file must contain a JSON object: {self.path}")
        components = data.get("components", data)
        if not isinstance(components, dict):
            raise ValueError(f"'components' must be an object in {self.path}")
        logger.info("Loaded registry file %s (%d components)", self.path, len(components))
        super().__init__(components)


def _summary_view(component: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in component.items() if k != "files"}
