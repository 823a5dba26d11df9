"""
FastAPI Application - Trading Journal Offline Gateway

Hosts the offline cache manager in front of the trading journal origin
server and exposes the trade metrics calculator.

Every request that does not hit one of the gateway's own routes is handed
to the cache manager:
    - non-GET requests are forwarded to the origin untouched
    - /api/ requests always go to the origin (503 JSON error when offline)
    - everything else is served stale-while-revalidate from the cache

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000

Docs:
    - Swagger: http://localhost:8000/_gateway/docs
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict, List, Optional
from contextlib import asynccontextmanager

from core.schemas import (
    AverageRRRequest,
    CachedResponse,
    CacheEntryInfo,
    GatewayMessage,
    ResourceRequest,
    RRRSummary,
    Trade,
)
from core.logging import logger
from core.config import settings, validate_configuration
from core.utils.time import seconds_since
from services.network_client import NetworkClient, NetworkError, filter_headers
from services.offline_cache import OfflineCacheManager
from services.trade_metrics import format_rrr, rrr_summary, trade_rrr
from storage.cache_storage import CacheStorage


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the cache install/activate lifecycle on startup."""
    logger.info("=== Gateway Starting ===")
    try:
        validate_configuration()
        await network.start()
        await cache_manager.on_install()
        await cache_manager.on_activate()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await cache_manager.drain()
        await network.close()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Trading Journal Offline Gateway",
    description=(
        "Offline-capable gateway in front of the trading journal origin.\n\n"
        "## Gateway Endpoints\n"
        "- `GET /_gateway/health` - Lifecycle state and cache partitions\n"
        "- `GET /_gateway/cache` - Cached entries per partition\n"
        "- `POST /_gateway/messages` - Control messages (CLEAR_CACHE, SKIP_WAITING)\n"
        "- `POST /_gateway/metrics/rrr` - Risk:reward ratio of one trade\n"
        "- `POST /_gateway/metrics/average-rr` - Average risk:reward over trades\n\n"
        "## Proxied Requests\n"
        "- Non-GET: forwarded to the origin, never cached\n"
        "- `/api/*`: network only, `503 {error, message}` when offline\n"
        "- Other GET: cache first with background refresh, `503 Offline` or the cached "
        "app shell when offline"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/_gateway/docs",
    redoc_url=None,
    openapi_url="/_gateway/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

network = NetworkClient(settings.origin_base_url, timeout=settings.request_timeout)
storage = CacheStorage()
cache_manager = OfflineCacheManager.from_settings(storage, network.fetch, settings)


# ============================================
# Helpers
# ============================================

async def to_resource_request(request: Request) -> ResourceRequest:
    """
    Convert an incoming Starlette request into a ResourceRequest.

    The URL is rebuilt from the raw ASGI path so percent-encoded
    characters (%3F, %2F) reach the origin and the cache key unchanged.
    """
    raw_path = request.scope.get("raw_path")
    url = raw_path.split(b"?", 1)[0].decode("latin-1") if raw_path else request.url.path
    query = request.scope.get("query_string", b"")
    if query:
        url = f"{url}?{query.decode('latin-1')}"

    headers = dict(request.headers)
    mode = headers.get("sec-fetch-mode")
    if mode is None and request.method == "GET" and "text/html" in headers.get("accept", ""):
        mode = "navigate"

    body = await request.body() if request.method != "GET" else b""

    return ResourceRequest(
        method=request.method,
        url=url,
        headers=headers,
        body=body,
        mode=mode
    )


def to_http_response(response: CachedResponse) -> Response:
    return Response(
        content=response.body,
        status_code=response.status,
        headers=filter_headers(response.headers)
    )


# ============================================
# Gateway Endpoints
# ============================================

@app.get("/_gateway/health", tags=["Gateway"])
async def health_check():
    """Lifecycle state and existing cache partitions."""
    return {
        "status": "healthy" if cache_manager.state == "activated" else "starting",
        "state": cache_manager.state,
        "clients_claimed": cache_manager.clients_claimed,
        "partitions": await storage.names(),
        "pending_refreshes": cache_manager.pending_refreshes,
        "origin": settings.origin_base_url
    }


@app.get("/_gateway/cache", response_model=Dict[str, List[CacheEntryInfo]], tags=["Gateway"])
async def list_cache(partition: Optional[str] = None):
    """List cached entries, optionally for a single partition."""
    if partition is not None:
        if not await storage.has(partition):
            raise HTTPException(status_code=404, detail=f"Unknown cache partition: {partition}")
        names = [partition]
    else:
        names = await storage.names()

    listing: Dict[str, List[CacheEntryInfo]] = {}
    for name in names:
        target = await storage.open(name)
        listing[name] = [
            CacheEntryInfo(
                key=key,
                status=entry.status,
                content_type=entry.header("content-type"),
                size=len(entry.body),
                cached_at=entry.cached_at,
                age_seconds=seconds_since(entry.cached_at) if entry.cached_at else None
            )
            for key, entry in await target.items()
        ]
    return listing


@app.post("/_gateway/messages", tags=["Gateway"])
async def post_message(message: GatewayMessage):
    """Send a control message to the cache manager."""
    reply = await cache_manager.on_message(message.model_dump())
    return {"reply": reply}


@app.post("/_gateway/metrics/rrr", tags=["Metrics"])
async def compute_rrr(trade: Trade):
    """Risk:reward ratio of a single trade (null when the prices are unusable)."""
    ratio = trade_rrr(trade)
    return {"rrr": ratio, "display": format_rrr(ratio)}


@app.post("/_gateway/metrics/average-rr", response_model=RRRSummary, tags=["Metrics"])
async def compute_average_rr(payload: AverageRRRequest):
    """Average risk:reward ratio over the trades that have one."""
    return rrr_summary(payload.trades)


# ============================================
# Interception (catch-all, must stay last)
# ============================================

@app.api_route(
    "/{full_path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    include_in_schema=False
)
async def intercept(full_path: str, request: Request):
    """Route every other request through the offline cache manager."""
    resource = await to_resource_request(request)

    if cache_manager.clients_claimed:
        response = await cache_manager.on_intercept(resource)
        if response is not None:
            return to_http_response(response)

    try:
        response = await network.fetch(resource)
    except NetworkError as e:
        logger.error(f"Pass-through request failed: {resource.method} {resource.url}: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to reach origin: {str(e)}")

    return to_http_response(response)
