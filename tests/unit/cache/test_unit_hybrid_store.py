# tests/unit/cache/test_unit_hybrid_store.py - v1
"""Tests for cache/hybrid_store.py: TTL, promotion, FIFO eviction, index."""

from __future__ import annotations

import json

import pytest

from compforge.cache.hybrid_store import HybridCacheStore
from compforge.cache.keys import entry_filename


def _store(tmp_path, clock, **kwargs) -> HybridCacheStore:
    return HybridCacheStore(tmp_path / "cache", clock=clock, **kwargs)


class TestGetSet:
    @pytest.mark.asyncio
    async def test_roundtrip_json_value(self, cache_store):
        await cache_store.set("k", {"a": [1, 2]})
        assert await cache_store.get("k") == {"a": [1, 2]}

    @pytest.mark.asyncio
    async def test_missing_key_is_none(self, cache_store):
        assert await cache_store.get("nope") is None
        assert cache_store.stats().misses == 1

    @pytest.mark.asyncio
    async def test_bytes_come_back_as_bytes(self, tmp_path, fake_clock):
        store = _store(tmp_path, fake_clock)
        await store.set("blob", b"\x00\xffdata")
        fresh = _store(tmp_path, fake_clock)
        assert await fresh.get("blob") == b"\x00\xffdata"

    @pytest.mark.asyncio
    async def test_entry_file_named_by_digest(self, tmp_path, cache_store):
        await cache_store.set("component:button:latest", 1)
        path = tmp_path / "cache" / "entries" / entry_filename("component:button:latest")
        assert path.is_file()
        assert json.loads(path.read_text())["key"] == "component:button:latest"

    @pytest.mark.asyncio
    async def test_non_positive_ttl_rejected(self, cache_store):
        with pytest.raises(ValueError, match="ttl_s"):
            await cache_store.set("k", 1, ttl_s=0)

    @pytest.mark.asyncio
    async def test_etag_and_metadata_kept(self, cache_store):
        await cache_store.set("k", 1, etag="abc", metadata={"name": "button"})
        entry = await cache_store.get_entry("k")
        assert entry.etag == "abc"
        assert entry.metadata == {"name": "button"}

    def test_invalid_constructor_args(self, tmp_path):
        with pytest.raises(ValueError):
            HybridCacheStore(tmp_path, default_ttl_s=0)
        with pytest.raises(ValueError):
            HybridCacheStore(tmp_path, max_entries=0)


class TestExpiry:
    @pytest.mark.asyncio
    async def test_value_visible_until_expiry(self, cache_store, fake_clock):
        await cache_store.set("k", "v", ttl_s=10)
        fake_clock.advance(10)
        assert await cache_store.get("k") == "v"

    @pytest.mark.asyncio
    async def test_expired_is_miss(self, cache_store, fake_clock):
        await cache_store.set("k", "v", ttl_s=10)
        fake_clock.advance(11)
        assert await cache_store.get("k") is None

    @pytest.mark.asyncio
    async def test_expired_entry_not_resurrected_from_disk(self, tmp_path, fake_clock):
        store = _store(tmp_path, fake_clock)
        await store.set("k", "v", ttl_s=10)
        fake_clock.advance(11)
        assert await store.get("k") is None
        assert not (tmp_path / "cache" / "entries" / entry_filename("k")).exists()

        fresh = _store(tmp_path, fake_clock)
        assert await fresh.get("k") is None

    @pytest.mark.asyncio
    async def test_disk_hit_does_not_extend_expiry(self, tmp_path, fake_clock):
        await _store(tmp_path, fake_clock).set("k", "v", ttl_s=10)
        fresh = _store(tmp_path, fake_clock)
        fake_clock.advance(5)
        assert await fresh.get("k") == "v"
        fake_clock.advance(6)
        assert await fresh.get("k") is None


class TestPersistence:
    @pytest.mark.asyncio
    async def test_disk_entry_served_after_restart(self, tmp_path, fake_clock):
        await _store(tmp_path, fake_clock).set("k", [1])
        fresh = _store(tmp_path, fake_clock)
        assert await fresh.get("k") == [1]
        assert fresh.stats().hits == 1

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_miss(self, tmp_path, fake_clock):
        store = _store(tmp_path, fake_clock)
        path = tmp_path / "cache" / "entries" / entry_filename("k")
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, tmp_path, fake_clock):
        blocker = tmp_path / "blocked"
        blocker.write_text("a file, not a directory")
        store = HybridCacheStore(blocker, clock=fake_clock)
        await store.set("k", "v")
        # memory tier still serves it
        assert await store.get("k") == "v"


class TestEviction:
    @pytest.mark.asyncio
    async def test_fifo_by_creation_not_access(self, tmp_path, fake_clock):
        store = _store(tmp_path, fake_clock, max_entries=2)
        await store.set("a", 1)
        fake_clock.advance(1)
        await store.set("b", 2)
        fake_clock.advance(1)
        # touching "a" does not protect it
        assert await store.get("a") == 1
        await store.set("c", 3)

        assert await store.get("a") is None
        assert await store.get("b") == 2
        assert await store.get("c") == 3
        assert store.stats().evictions == 1

    @pytest.mark.asyncio
    async def test_disk_only_entries_count_toward_limit(self, tmp_path, fake_clock):
        first = _store(tmp_path, fake_clock, max_entries=2)
        await first.set("old", 1)
        fake_clock.advance(1)
        await first.set("mid", 2)
        fake_clock.advance(1)

        second = _store(tmp_path, fake_clock, max_entries=2)
        assert second.stats().entries == 2
        await second.set("new", 3)
        assert second.stats().entries == 2
        assert await second.get("old") is None
        assert await second.get("new") == 3


class TestDeleteClearStats:
    @pytest.mark.asyncio
    async def test_delete_removes_both_tiers(self, tmp_path, fake_clock):
        store = _store(tmp_path, fake_clock)
        await store.set("k", 1)
        await store.delete("k")
        assert await store.get("k") is None
        assert await _store(tmp_path, fake_clock).get("k") is None

    @pytest.mark.asyncio
    async def test_delete_missing_key_is_noop(self, cache_store):
        await cache_store.delete("ghost")

    @pytest.mark.asyncio
    async def test_clear_resets_counters(self, cache_store):
        await cache_store.set("k", 1)
        await cache_store.get("k")
        await cache_store.get("x")
        await cache_store.clear()
        stats = cache_store.stats()
        assert (stats.hits, stats.misses, stats.writes, stats.entries) == (0, 0, 0, 0)
        assert await cache_store.get("k") is None

    @pytest.mark.asyncio
    async def test_counters(self, cache_store):
        await cache_store.set("k", 1)
        await cache_store.get("k")
        await cache_store.get("k")
        await cache_store.get("x")
        stats = cache_store.stats()
        assert stats.writes == 1
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(2 / 3)

    @pytest.mark.asyncio
    async def test_index_file_written_and_reloaded(self, tmp_path, fake_clock):
        store = _store(tmp_path, fake_clock)
        await store.set("k", 1)
        await store.get("k")
        index = json.loads((tmp_path / "cache" / "index.json").read_text())
        assert index["stats"]["writes"] == 1
        assert index["stats"]["hits"] == 1
        assert "updated" in index

        assert _store(tmp_path, fake_clock).stats().hits == 1

    @pytest.mark.asyncio
    async def test_corrupt_index_ignored(self, tmp_path, fake_clock):
        (tmp_path / "cache").mkdir()
        (tmp_path / "cache" / "index.json").write_text("garbage")
        store = _store(tmp_path, fake_clock)
        assert store.stats().hits == 0
