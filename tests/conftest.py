# tests/conftest.py - v1
"""Shared test fixtures for all unit and integration tests.

Provides a sample registry, a controllable clock, settings pointing at
temp directories and a recording filesystem. No network, no home dir.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from compforge.cache.hybrid_store import HybridCacheStore
from compforge.cache.registry_cache import RegistryCache
from compforge.config.settings import Settings
from compforge.core.errors import WorkspaceWriteError
from compforge.installer.filesystem import Filesystem
from compforge.registry.client import RegistryClient
from compforge.registry.source import StaticRegistrySource


# === HELPERS ===


class FakeClock:
    """Manually advanced clock returning aware datetimes."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingFilesystem(Filesystem):
    """In-memory filesystem that records every call."""

    def __init__(self, existing: dict[Path, str] | None = None) -> None:
        self.files: dict[Path, str] = dict(existing or {})
        self.writes: list[Path] = []
        self.exists_calls: list[Path] = []
        self.fail_on: set[Path] = set()

    async def exists(self, path: Path) -> bool:
        self.exists_calls.append(path)
        return path in self.files

    async def read_text(self, path: Path) -> str:
        return self.files[path]

    async def write_text_atomic(self, path: Path, content: str) -> None:
        if path in self.fail_on:
            raise WorkspaceWriteError(str(path), "permission", PermissionError(13, "denied"))
        self.writes.append(path)
        self.files[path] = content


def _file(path: str, content: str, type_: str = "component") -> dict[str, Any]:
    return {"path": path, "content": content, "type": type_}


# === FIXTURES: Registry data ===


@pytest.fixture
def registry_data() -> dict[str, dict[str, Any]]:
    """Small registry: table -> button, dialog -> button + card."""
    return {
        "button": {
            "version": "1.2.0",
            "description": "Clickable button",
            "category": "form",
            "frameworks": ["react"],
            "files": [_file("components/ui/button.tsx", "export const Button = () => null;\n")],
        },
        "table": {
            "version": "2.0.0",
            "description": "Data table",
            "category": "data",
            "frameworks": ["react", "vue"],
            "dependencies": ["button"],
            "files": [
                _file(
                    "components/ui/table.tsx",
                    "import { Button } from '../components/ui/button';\n",
                ),
                _file("components/ui/table.css", ".table {}\n", "style"),
            ],
        },
        "card": {
            "description": "Content card",
            "category": "layout",
            "frameworks": ["react"],
            "files": [_file("components/ui/card.tsx", "export const Card = () => null;\n")],
        },
        "dialog": {
            "description": "Modal dialog",
            "category": "overlay",
            "frameworks": ["react"],
            "dependencies": ["button", "card"],
            "files": [_file("components/ui/dialog.tsx", "export const Dialog = () => null;\n")],
        },
    }


@pytest.fixture
def static_source(registry_data) -> StaticRegistrySource:
    return StaticRegistrySource(registry_data)


# === FIXTURES: Infrastructure ===


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings isolated from .env, with instant retries."""
    return Settings(
        _env_file=None,
        cache_root=tmp_path / "cache",
        fetch_retries=2,
        fetch_retry_delay_s=0.0,
        fetch_timeout_s=2.0,
        install_task_timeout_s=10.0,
    )


@pytest.fixture
def cache_store(tmp_path: Path, fake_clock: FakeClock) -> HybridCacheStore:
    return HybridCacheStore(tmp_path / "cache", default_ttl_s=60, max_entries=100, clock=fake_clock)


@pytest.fixture
def registry_cache(cache_store: HybridCacheStore) -> RegistryCache:
    return RegistryCache(cache_store)


@pytest.fixture
def registry_client(static_source, registry_cache, test_settings) -> RegistryClient:
    return RegistryClient(static_source, registry_cache, test_settings)


@pytest.fixture
def spy_fs() -> RecordingFilesystem:
    return RecordingFilesystem()


@pytest.fixture
def make_spy_fs():
    """Factory for RecordingFilesystem with pre-existing files."""
    return RecordingFilesystem


@pytest.fixture(autouse=True)
def _reset_compforge_logging():
    """Drop handlers installed by setup_logging() so streams do not leak across tests."""
    yield
    root = logging.getLogger("compforge")
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
