"""
Storage Package

Handles persistence of cached responses for the offline gateway.

Current implementation:
- In-memory named cache partitions (static and runtime)

The partition API is asynchronous so a shared backend can be dropped in
without changing the cache manager.
"""

from storage.cache_storage import CachePartition, CacheStorage

__all__ = ["CachePartition", "CacheStorage"]
