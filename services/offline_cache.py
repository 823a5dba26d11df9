"""
Offline Cache Manager

Request-classification and caching policy for the trading journal front end.
The manager sits between the application and its origin server and is driven
by the host through four lifecycle methods:

    on_install()            precache the static manifest (best effort)
    on_activate()           drop partitions of other versions, claim clients
    on_intercept(request)   route one request; None means "not intercepted"
    on_message(message)     CLEAR_CACHE / SKIP_WAITING control messages

Routing:
    - non-GET               not intercepted, never cached
    - /api/...              network only; offline -> 503 JSON error
    - everything else       stale-while-revalidate from the runtime partition,
                            falling back to the static partition; offline ->
                            cached "/" for navigations, else 503 "Offline"

Background revalidation is fire-and-forget: one attempt, not awaited by the
response path, failures only logged at debug level. In-flight tasks are
referenced from self._background until they finish so the event loop does
not garbage-collect them; drain() waits for them without cancelling.

Usage:
    manager = OfflineCacheManager(CacheStorage(), client.fetch)
    await manager.on_install()
    await manager.on_activate()
    response = await manager.on_intercept(ResourceRequest(url="/favicon.png"))
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

from core.logging import get_logger
from core.schemas import CachedResponse, ResourceRequest
from storage.cache_storage import CacheStorage


Fetcher = Callable[[ResourceRequest], Awaitable[CachedResponse]]

OFFLINE_API_ERROR = {"error": "Offline", "message": "No internet connection"}

ROOT_DOCUMENT_KEY = "GET /"


def offline_api_response() -> CachedResponse:
    """Synthesized 503 returned for /api/ requests when the origin is unreachable."""
    return CachedResponse(
        status=503,
        headers={"Content-Type": "application/json"},
        body=json.dumps(OFFLINE_API_ERROR).encode("utf-8")
    )


def offline_static_response() -> CachedResponse:
    """Synthesized 503 returned for uncached assets when the origin is unreachable."""
    return CachedResponse(
        status=503,
        headers={"Content-Type": "text/plain; charset=utf-8"},
        body=b"Offline"
    )


class OfflineCacheManager:
    """
    Install/activate/intercept handler for the offline gateway.

    Attributes:
        storage: Owner of the cache partitions
        fetch: Coroutine performing one network request (raises on failure)
        static_cache_name: Partition filled at install time only
        runtime_cache_name: Partition filled while serving requests
        precache: Paths stored in the static partition at install time
        api_prefix: Path prefix of network-only requests
        runtime_max_entries: Size limit of the runtime partition
        state: "parsed", "installed" or "activated"
        clients_claimed: True once activation has taken control of clients
    """

    def __init__(
        self,
        storage: CacheStorage,
        fetch: Fetcher,
        static_cache_name: str = "trading-journal-static-v2",
        runtime_cache_name: str = "trading-journal-runtime-v2",
        precache: Optional[Iterable[str]] = None,
        api_prefix: str = "/api/",
        runtime_max_entries: int = 50
    ) -> None:
        self.storage = storage
        self.fetch = fetch
        self.static_cache_name = static_cache_name
        self.runtime_cache_name = runtime_cache_name
        self.precache: List[str] = list(precache) if precache is not None else ["/", "/favicon.png", "/src/main.tsx"]
        self.api_prefix = api_prefix
        self.runtime_max_entries = runtime_max_entries

        self.state = "parsed"
        self.clients_claimed = False
        self._background: Set[asyncio.Task] = set()
        self._logger = get_logger(__name__)

    @classmethod
    def from_settings(cls, storage: CacheStorage, fetch: Fetcher, settings) -> "OfflineCacheManager":
        """Build a manager from the application Settings object."""
        return cls(
            storage,
            fetch,
            static_cache_name=settings.static_cache_name,
            runtime_cache_name=settings.runtime_cache_name,
            precache=settings.precache_list,
            api_prefix=settings.api_prefix,
            runtime_max_entries=settings.runtime_cache_max_entries
        )

    # ============================================
    # Lifecycle
    # ============================================

    async def on_install(self) -> int:
        """
        Precache the static manifest.

        Each entry is fetched independently; network errors and non-2xx
        responses are logged and skipped, never aborting installation.

        Returns:
            Number of manifest entries stored
        """
        self._logger.info(f"Installing: precaching {len(self.precache)} resources into '{self.static_cache_name}'")
        static = await self.storage.open(self.static_cache_name)
        cached = 0

        for path in self.precache:
            request = ResourceRequest(url=path)
            try:
                response = await self.fetch(request)
            except Exception as e:
                self._logger.warning(f"Failed to precache {path}: {e}")
                continue

            if not response.ok:
                self._logger.warning(f"Failed to precache {path}: HTTP {response.status}")
                continue

            await static.put(request.cache_key, response)
            cached += 1

        self.state = "installed"
        self._logger.info(f"Installed: {cached}/{len(self.precache)} resources precached")
        return cached

    async def on_activate(self) -> List[str]:
        """
        Delete partitions of other cache versions and claim all clients.

        Returns:
            Names of the deleted partitions
        """
        keep = {self.static_cache_name, self.runtime_cache_name}
        deleted = []

        for name in await self.storage.names():
            if name not in keep:
                await self.storage.delete(name)
                deleted.append(name)

        self.state = "activated"
        self.clients_claimed = True

        if deleted:
            self._logger.info(f"Activated: removed old partitions {', '.join(deleted)}")
        else:
            self._logger.info("Activated: no old partitions to remove")
        return deleted

    async def on_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Handle a control message from a client.

        Supported types:
            CLEAR_CACHE: delete every partition, reply {"type": "CACHE_CLEARED"}
            SKIP_WAITING: activate now if installed but not yet active

        Returns:
            Reply message, or None when there is nothing to reply
        """
        msg_type = message.get("type") if message else None

        if msg_type == "CLEAR_CACHE":
            names = await self.storage.names()
            for name in names:
                await self.storage.delete(name)
            self._logger.info(f"Cache cleared on request ({len(names)} partitions)")
            return {"type": "CACHE_CLEARED"}

        if msg_type == "SKIP_WAITING":
            if self.state == "installed":
                await self.on_activate()
            return None

        self._logger.debug(f"Ignoring unknown message type: {msg_type!r}")
        return None

    # ============================================
    # Interception
    # ============================================

    async def on_intercept(self, request: ResourceRequest) -> Optional[CachedResponse]:
        """
        Route one outgoing request.

        Args:
            request: The request made by the application

        Returns:
            The response to hand back, or None if the request is not
            intercepted (non-GET) and must go to the network untouched
        """
        if request.method != "GET":
            return None

        if request.path.startswith(self.api_prefix):
            return await self._network_only(request)

        return await self._stale_while_revalidate(request)

    async def _network_only(self, request: ResourceRequest) -> CachedResponse:
        try:
            return await self.fetch(request)
        except Exception as e:
            self._logger.warning(f"API request offline: {request.url} ({e})")
            return offline_api_response()

    async def _stale_while_revalidate(self, request: ResourceRequest) -> CachedResponse:
        key = request.cache_key
        cached = await self.storage.match(key, [self.runtime_cache_name, self.static_cache_name])

        if cached is not None:
            self._spawn_revalidation(request)
            return cached

        try:
            response = await self.fetch(request)
        except Exception as e:
            self._logger.warning(f"Offline and not cached: {request.url} ({e})")
            return await self._offline_fallback(request)

        if response.ok:
            await self._store_runtime(key, response)
        return response

    async def _offline_fallback(self, request: ResourceRequest) -> CachedResponse:
        if request.is_navigation:
            shell = await self.storage.match(ROOT_DOCUMENT_KEY)
            if shell is not None:
                return shell
        return offline_static_response()

    async def _store_runtime(self, key: str, response: CachedResponse) -> None:
        runtime = await self.storage.open(self.runtime_cache_name)
        await runtime.put(key, response)
        await runtime.trim(self.runtime_max_entries)

    # ============================================
    # Background Revalidation
    # ============================================

    def _spawn_revalidation(self, request: ResourceRequest) -> None:
        task = asyncio.create_task(self._revalidate(request))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _revalidate(self, request: ResourceRequest) -> None:
        try:
            response = await self.fetch(request)
        except Exception as e:
            self._logger.debug(f"Background refresh failed for {request.url}: {e}")
            return

        if response.ok:
            await self._store_runtime(request.cache_key, response)
            self._logger.debug(f"Background refresh stored {request.url}")
        else:
            self._logger.debug(f"Background refresh skipped {request.url}: HTTP {response.status}")

    @property
    def pending_refreshes(self) -> int:
        """Number of background refreshes still in flight."""
        return len(self._background)

    async def drain(self) -> None:
        """Wait for in-flight background refreshes to settle (never cancels them)."""
        while True:
            pending = [task for task in self._background if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
