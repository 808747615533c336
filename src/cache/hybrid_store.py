# src/cache/hybrid_store.py - v1
"""Hybrid in-process + on-disk cache store (default when CACHE_ENABLED=true).

Layout under ``base_dir``:

    entries/<sha256(key)>.json   one file per entry
    index.json                   advisory counters, safe to delete

Lookups hit the in-process map first, then the entry file. Disk hits are
promoted to the in-process map without extending their expiry. Eviction is
FIFO by creation time across every known entry (memory and disk), not LRU.

Every disk error is swallowed: read failures count as misses, write
failures are logged at WARNING.
"""

from __future__ import annotations

import base64
import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from compforge.cache.base_cache_store import BaseCacheStore
from compforge.cache.keys import entry_filename
from compforge.cache.models import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

INDEX_VERSION = "1.0.0"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HybridCacheStore(BaseCacheStore):
    """Two-tier cache: process-local dict backed by JSON entry files.

    Args:
        base_dir: Cache root (``~`` is expanded). Created on first write.
        default_ttl_s: TTL used when ``set`` gets no explicit ttl.
        max_entries: Entry-count limit enforced after every write.
        clock: Injectable time source returning aware datetimes.
    """

    def __init__(
        self,
        base_dir: Path | str,
        default_ttl_s: float = 3600.0,
        max_entries: int = 1000,
        clock: Clock | None = None,
    ) -> None:
        if default_ttl_s <= 0:
            raise ValueError("default_ttl_s must be > 0")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._root = Path(base_dir).expanduser()
        self._entries_dir = self._root / "entries"
        self._index_path = self._root / "index.json"
        self._default_ttl_s = default_ttl_s
        self._max_entries = max_entries
        self._clock = clock or _utcnow
        self._memory: dict[str, CacheEntry] = {}
        # key -> created_at for every entry known on either tier
        self._catalog: dict[str, datetime] = {}
        self._stats = CacheStats()
        self._load_index()
        self._load_catalog()

    # --- public API ---

    async def get(self, key: str) -> Any | None:
        """Return the cached value or None (absent, expired or unreadable)."""
        now = self._clock()

        entry = self._memory.get(key)
        if entry is not None:
            if not entry.is_expired(now):
                self._stats.hits += 1
                return _decode(entry)
            self._memory.pop(key, None)

        entry = self._read_entry(key)
        if entry is None:
            self._stats.misses += 1
            return None

        if entry.is_expired(now):
            logger.debug("Cache entry expired: %s", key)
            self._remove(key)
            self._stats.misses += 1
            self._save_index()
            return None

        self._memory[key] = entry
        self._catalog.setdefault(key, entry.created_at)
        self._stats.hits += 1
        return _decode(entry)

    async def set(
        self,
        key: str,
        value: Any,
        ttl_s: float | None = None,
        etag: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Store ``value`` in both tiers, then enforce the entry limit."""
        ttl = self._default_ttl_s if ttl_s is None else ttl_s
        if ttl <= 0:
            raise ValueError(f"ttl_s must be > 0, got {ttl}")

        now = self._clock()
        data, encoding = _encode(value)
        entry = CacheEntry(
            key=key,
            data=data,
            encoding=encoding,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl),
            etag=etag,
            metadata=metadata,
        )

        self._memory[key] = entry
        self._catalog[key] = now
        self._write_entry(entry)
        self._stats.writes += 1

        self._enforce_limit()
        self._save_index()

    async def delete(self, key: str) -> None:
        """Remove ``key`` from both tiers."""
        self._remove(key)
        self._save_index()

    async def clear(self) -> None:
        """Drop every entry and reset counters."""
        self._memory.clear()
        self._catalog.clear()
        try:
            shutil.rmtree(self._entries_dir, ignore_errors=False)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to clear cache directory %s: %s", self._entries_dir, e)
        self._stats = CacheStats()
        self._save_index()

    def stats(self) -> CacheStats:
        snapshot = self._stats.model_copy()
        snapshot.entries = len(self._catalog)
        return snapshot

    async def get_entry(self, key: str) -> CacheEntry | None:
        """Return the raw entry (with etag/metadata) without touching counters."""
        entry = self._memory.get(key) or self._read_entry(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry

    # --- internals ---

    def _entry_path(self, key: str) -> Path:
        return self._entries_dir / entry_filename(key)

    def _read_entry(self, key: str) -> CacheEntry | None:
        path = self._entry_path(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug("Failed to read cache entry %s: %s", key, e)
            return None
        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.debug("Corrupt cache entry %s: %s", key, e)
            return None
        if entry.key != key:
            # digest collision or hand-edited file
            return None
        return entry

    def _write_entry(self, entry: CacheEntry) -> None:
        path = self._entry_path(entry.key)
        try:
            _atomic_write(path, entry.model_dump_json())
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to write cache entry %s: %s", entry.key, e)

    def _remove(self, key: str) -> None:
        self._memory.pop(key, None)
        self._catalog.pop(key, None)
        try:
            self._entry_path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to delete cache entry %s: %s", key, e)

    def _enforce_limit(self) -> None:
        overflow = len(self._catalog) - self._max_entries
        if overflow <= 0:
            return
        oldest = sorted(self._catalog.items(), key=lambda kv: kv[1])[:overflow]
        for key, _ in oldest:
            self._remove(key)
            self._stats.evictions += 1
        logger.debug("Evicted %d cache entries (limit %d)", overflow, self._max_entries)

    def _load_catalog(self) -> None:
        """Rebuild key -> created_at from entry files left by earlier runs."""
        if not self._entries_dir.is_dir():
            return
        for path in self._entries_dir.glob("*.json"):
            try:
                entry = CacheEntry.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValidationError):
                continue
            self._catalog[entry.key] = entry.created_at

    def _load_index(self) -> None:
        try:
            raw = json.loads(self._index_path.read_text(encoding="utf-8"))
            self._stats = CacheStats.model_validate(raw.get("stats", {}))
        except FileNotFoundError:
            return
        except (OSError, ValueError, AttributeError, ValidationError) as e:
            logger.debug("Ignoring unreadable cache index %s: %s", self._index_path, e)

    def _save_index(self) -> None:
        payload = {
            "version": INDEX_VERSION,
            "stats": self._stats.model_dump(),
            "entries": len(self._catalog),
            "updated": self._clock().isoformat(),
        }
        try:
            _atomic_write(self._index_path, json.dumps(payload, indent=2))
        except OSError as e:
            logger.debug("Failed to save cache index: %s", e)


def _encode(value: Any) -> tuple[Any, str]:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii"), "bytes"
    return value, "json"


def _decode(entry: CacheEntry) -> Any:
    if entry.encoding == "bytes":
        return base64.b64decode(entry.data)
    return entry.data


def _atomic_write(path: Path, text: str) -> None:
    """Write ``text`` to a sibling temp file, then rename over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
