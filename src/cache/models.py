# src/cache/models.py - v1
"""Cache domain models: CacheEntry, CacheStats."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


class CacheEntry(BaseModel):
    """Single cached value with its freshness window.

    ``data`` holds any JSON-compatible value. Raw bytes are stored base64
    encoded with ``encoding="bytes"`` and decoded back on read.
    """

    key: str
    data: Any = None
    encoding: Literal["json", "bytes"] = "json"
    created_at: datetime
    expires_at: datetime
    etag: str | None = None
    metadata: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _expiry_after_creation(self) -> CacheEntry:
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")
        return self

    def is_expired(self, now: datetime) -> bool:
        """True once ``now`` is strictly past ``expires_at``."""
        return now > self.expires_at


class CacheStats(BaseModel):
    """Aggregate counters, persisted to the advisory index file."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    evictions: int = 0
    entries: int = Field(default=0, exclude=True)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0
