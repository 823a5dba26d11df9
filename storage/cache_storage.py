"""
Cache Partition Storage

In-memory storage of cached responses, organised as named partitions.

A partition is an isolated key-value store mapping a request identity
("GET /favicon.png") to a CachedResponse. The storage object owns every
partition; nothing about cache state lives at module level.

Operations are coroutines so that a shared backend can replace the
in-memory dictionaries without changing callers. Writes are whole-entry
overwrites (last writer wins), so no locking is needed.

Usage:
    storage = CacheStorage()
    static = await storage.open("trading-journal-static-v2")
    await static.put("GET /", response)
    hit = await storage.match("GET /", ["trading-journal-runtime-v2", "trading-journal-static-v2"])
"""

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Tuple

from core.logging import get_logger, log_cache_event
from core.schemas import CachedResponse
from core.utils.time import current_utc_datetime


class CachePartition:
    """
    A single named partition.

    Entries keep insertion order; writing an existing key moves it to the
    newest position, which is what trim() relies on to evict oldest first.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: "OrderedDict[str, CachedResponse]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[CachedResponse]:
        """Return the stored response for key, or None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry.model_copy(deep=True)

    async def put(self, key: str, response: CachedResponse) -> None:
        """
        Store a copy of response under key, replacing any previous entry.

        The stored copy is stamped with cached_at.
        """
        stored = response.model_copy(
            update={"cached_at": current_utc_datetime()},
            deep=True
        )
        self._entries.pop(key, None)
        self._entries[key] = stored
        log_cache_event(self.name, "put", key, f"status={response.status}")

    async def delete(self, key: str) -> bool:
        """Remove a single entry. Returns True if it existed."""
        return self._entries.pop(key, None) is not None

    async def keys(self) -> List[str]:
        """Entry keys, oldest first."""
        return list(self._entries.keys())

    async def items(self) -> List[Tuple[str, CachedResponse]]:
        """(key, response) pairs, oldest first."""
        return [(k, v.model_copy(deep=True)) for k, v in self._entries.items()]

    async def trim(self, max_entries: int) -> List[str]:
        """
        Evict oldest entries until at most max_entries remain.

        Returns:
            Keys that were evicted
        """
        evicted = []
        while len(self._entries) > max_entries:
            key, _ = self._entries.popitem(last=False)
            evicted.append(key)
            log_cache_event(self.name, "evict", key)
        return evicted


class CacheStorage:
    """
    Owner of all cache partitions.

    Attributes:
        _partitions: Partition name -> CachePartition, in creation order
    """

    def __init__(self) -> None:
        self._partitions: Dict[str, CachePartition] = {}
        self._logger = get_logger(__name__)

    async def open(self, name: str) -> CachePartition:
        """Return the named partition, creating it if needed."""
        partition = self._partitions.get(name)
        if partition is None:
            partition = CachePartition(name)
            self._partitions[name] = partition
            self._logger.debug(f"Created cache partition '{name}'")
        return partition

    async def has(self, name: str) -> bool:
        return name in self._partitions

    async def names(self) -> List[str]:
        """Names of all existing partitions, in creation order."""
        return list(self._partitions.keys())

    async def delete(self, name: str) -> bool:
        """
        Delete a whole partition.

        Returns:
            True if the partition existed
        """
        removed = self._partitions.pop(name, None)
        if removed is not None:
            log_cache_event(name, "deleted", details=f"{len(removed)} entries dropped")
            return True
        return False

    async def get(self, partition: str, key: str) -> Optional[CachedResponse]:
        """Look up key in one partition; missing partitions are treated as empty."""
        target = self._partitions.get(partition)
        if target is None:
            return None
        return await target.get(key)

    async def put(self, partition: str, key: str, response: CachedResponse) -> None:
        """Store response under key in the named partition (created on demand)."""
        target = await self.open(partition)
        await target.put(key, response)

    async def match(self, key: str, partitions: Optional[Iterable[str]] = None) -> Optional[CachedResponse]:
        """
        Find key in the given partitions, searched in order.

        Args:
            key: Request identity
            partitions: Partition names to search (defaults to all, in creation order)

        Returns:
            The first stored response found, or None
        """
        search = list(partitions) if partitions is not None else list(self._partitions.keys())
        for name in search:
            hit = await self.get(name, key)
            if hit is not None:
                log_cache_event(name, "hit", key)
                return hit
        return None
