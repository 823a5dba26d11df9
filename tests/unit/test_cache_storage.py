"""
Unit Tests for Cache Partition Storage

These tests verify that CacheStorage / CachePartition:
- Keep partitions isolated from each other
- Store copies stamped with cached_at
- Overwrite entries per key (last writer wins)
- Evict oldest entries first when trimmed
- Search partitions in the requested order

Run with:
    pytest tests/unit/test_cache_storage.py -v
"""

import pytest

from core.schemas import CachedResponse
from storage.cache_storage import CacheStorage


def make_response(body: bytes, status: int = 200) -> CachedResponse:
    return CachedResponse(status=status, headers={"Content-Type": "text/plain"}, body=body)


@pytest.fixture
def storage():
    """Fresh in-memory storage"""
    return CacheStorage()


# ============================================
# Tests for Partition Management
# ============================================

class TestPartitions:
    """Tests for opening, listing and deleting partitions"""

    @pytest.mark.asyncio
    async def test_open_creates_partition_once(self, storage):
        first = await storage.open("static")
        second = await storage.open("static")
        assert first is second
        assert await storage.names() == ["static"]

    @pytest.mark.asyncio
    async def test_names_keep_creation_order(self, storage):
        await storage.open("b")
        await storage.open("a")
        assert await storage.names() == ["b", "a"]

    @pytest.mark.asyncio
    async def test_delete_partition(self, storage):
        await storage.put("old-v1", "GET /", make_response(b"x"))
        assert await storage.delete("old-v1") is True
        assert await storage.has("old-v1") is False
        assert await storage.delete("old-v1") is False

    @pytest.mark.asyncio
    async def test_partitions_are_isolated(self, storage):
        await storage.put("static", "GET /", make_response(b"static"))
        assert await storage.get("runtime", "GET /") is None
        assert (await storage.get("static", "GET /")).body == b"static"


# ============================================
# Tests for Entry Operations
# ============================================

class TestEntries:
    """Tests for get/put/trim on a partition"""

    @pytest.mark.asyncio
    async def test_put_stamps_cached_at(self, storage):
        original = make_response(b"hello")
        await storage.put("runtime", "GET /a", original)

        stored = await storage.get("runtime", "GET /a")
        assert stored.cached_at is not None
        assert stored.cached_at.tzinfo is not None
        assert original.cached_at is None

    @pytest.mark.asyncio
    async def test_stored_entry_is_a_copy(self, storage):
        original = make_response(b"hello")
        await storage.put("runtime", "GET /a", original)
        original.headers["X-Mutated"] = "1"

        stored = await storage.get("runtime", "GET /a")
        assert "X-Mutated" not in stored.headers

        stored.headers["X-Reader"] = "1"
        again = await storage.get("runtime", "GET /a")
        assert "X-Reader" not in again.headers

    @pytest.mark.asyncio
    async def test_put_overwrites_key(self, storage):
        await storage.put("runtime", "GET /a", make_response(b"v1"))
        await storage.put("runtime", "GET /a", make_response(b"v2"))

        partition = await storage.open("runtime")
        assert len(partition) == 1
        assert (await partition.get("GET /a")).body == b"v2"

    @pytest.mark.asyncio
    async def test_trim_evicts_oldest_first(self, storage):
        partition = await storage.open("runtime")
        for name in ("a", "b", "c", "d"):
            await partition.put(f"GET /{name}", make_response(name.encode()))

        evicted = await partition.trim(2)

        assert evicted == ["GET /a", "GET /b"]
        assert await partition.keys() == ["GET /c", "GET /d"]

    @pytest.mark.asyncio
    async def test_overwrite_refreshes_position(self, storage):
        partition = await storage.open("runtime")
        await partition.put("GET /a", make_response(b"a"))
        await partition.put("GET /b", make_response(b"b"))
        await partition.put("GET /a", make_response(b"a2"))

        await partition.trim(1)

        assert await partition.keys() == ["GET /a"]

    @pytest.mark.asyncio
    async def test_delete_entry(self, storage):
        partition = await storage.open("runtime")
        await partition.put("GET /a", make_response(b"a"))
        assert await partition.delete("GET /a") is True
        assert await partition.delete("GET /a") is False


# ============================================
# Tests for match()
# ============================================

class TestMatch:
    """Tests for multi-partition lookup"""

    @pytest.mark.asyncio
    async def test_match_respects_search_order(self, storage):
        await storage.put("static", "GET /", make_response(b"static"))
        await storage.put("runtime", "GET /", make_response(b"runtime"))

        hit = await storage.match("GET /", ["runtime", "static"])
        assert hit.body == b"runtime"

        hit = await storage.match("GET /", ["static", "runtime"])
        assert hit.body == b"static"

    @pytest.mark.asyncio
    async def test_match_defaults_to_all_partitions(self, storage):
        await storage.put("static", "GET /", make_response(b"shell"))
        assert (await storage.match("GET /")).body == b"shell"

    @pytest.mark.asyncio
    async def test_match_miss_returns_none(self, storage):
        assert await storage.match("GET /missing", ["runtime", "static"]) is None
