# src/cache/keys.py - v1
"""Stable cache key derivation.

Keys must be identical across runs for the on-disk cache to be reused, so
only deterministic digests (SHA-256 over canonical JSON) are used here;
Python's salted ``hash()`` is never involved.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from pydantic import BaseModel


def digest(text: str) -> str:
    """SHA-256 hex digest of a UTF-8 string (64 chars, filename safe)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def canonical_json(query: Any) -> str:
    """Serialize a query deterministically: sorted keys, no whitespace.

    Pydantic models are dumped in JSON mode with unset/None fields dropped,
    so ``SearchFilter(category="form")`` and ``{"category": "form"}`` agree.
    Sets are sorted so their iteration order cannot leak into the key.
    """
    if isinstance(query, BaseModel):
        query = query.model_dump(mode="json", exclude_none=True, exclude_defaults=True)
    return json.dumps(query, sort_keys=True, separators=(",", ":"), default=_encode_default)


def query_key(namespace: str, query: Any) -> str:
    """Hash a structured query into ``"<namespace>:<digest>"``."""
    return f"{namespace}:{digest(canonical_json(query))}"


def entry_filename(key: str) -> str:
    """File name for a cache key. Fixed length regardless of key size."""
    return f"{digest(key)}.json"


def _encode_default(obj: Any) -> Any:
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
