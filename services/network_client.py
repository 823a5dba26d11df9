"""
Origin Network Client

Async HTTP client the gateway uses to reach the trading journal origin
server. It performs exactly one attempt per request and returns the origin's
response as a CachedResponse, whatever its status. Only transport failures
(connection refused, DNS errors, timeouts) raise, as NetworkError.

Usage:
    async with NetworkClient("http://localhost:5000") as client:
        response = await client.fetch(ResourceRequest(url="/favicon.png"))
        print(response.status, len(response.body))
"""

import asyncio
import time
from typing import Dict, Optional

import aiohttp
from pydantic import ValidationError

from core.logging import get_logger, log_network_request
from core.schemas import CachedResponse, ResourceRequest


# Hop-by-hop and transport headers never forwarded in either direction.
# aiohttp already decodes the body, so content-encoding/length no longer apply.
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
    "content-encoding",
}


def filter_headers(headers) -> Dict[str, str]:
    """Drop hop-by-hop headers, keeping the last value of repeated keys."""
    return {
        key: value
        for key, value in headers.items()
        if key.lower() not in HOP_BY_HOP_HEADERS
    }


class NetworkError(RuntimeError):
    """Raised when the origin could not be reached at all."""


class NetworkClient:
    """
    Async HTTP client for the journal origin server

    Attributes:
        base_url: Origin base URL, e.g. "http://localhost:5000"
        timeout: Total timeout for one request in seconds
        session: aiohttp ClientSession for HTTP requests

    Notes:
        - Use as an async context manager, or call start()/close() explicitly
          when the lifetime is managed by the application lifespan
        - No retries: a failed fetch is reported once and the caller decides
          what to serve instead
    """

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Session Management
    # ============================================

    async def start(self) -> None:
        """Create the HTTP session if it does not exist yet."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                auto_decompress=True
            )
            self.logger.debug("NetworkClient session created")

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()
            self.logger.debug("NetworkClient session closed")
        self.session = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ============================================
    # Fetch
    # ============================================

    def build_url(self, request: ResourceRequest) -> str:
        """
        Resolve an origin-relative request URL against the base URL.

        Example:
            >>> NetworkClient("http://localhost:5000/").build_url(ResourceRequest(url="/api/trades"))
            'http://localhost:5000/api/trades'
        """
        return f"{self.base_url}{request.url}"

    async def fetch(self, request: ResourceRequest) -> CachedResponse:
        """
        Send request to the origin and read the full response.

        Args:
            request: The intercepted or passed-through request

        Returns:
            CachedResponse with the origin's status, headers and body
            (non-2xx statuses are returned, not raised)

        Raises:
            RuntimeError: If the session was never started
            NetworkError: If the origin is unreachable, the request timed out
                or the response could not be represented
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' or start().")

        url = self.build_url(request)
        started = time.monotonic()

        try:
            async with self.session.request(
                request.method,
                url,
                headers=filter_headers(request.headers),
                data=request.body or None,
                allow_redirects=False
            ) as resp:
                body = await resp.read()
                log_network_request(request.method, url, resp.status, time.monotonic() - started)
                return CachedResponse(
                    status=resp.status,
                    headers=filter_headers(resp.headers),
                    body=body
                )

        except asyncio.TimeoutError:
            log_network_request(request.method, url)
            raise NetworkError(f"Timeout after {self.timeout:.0f}s on {request.method} {url}")

        except aiohttp.ClientError as e:
            log_network_request(request.method, url)
            raise NetworkError(f"Request failed on {request.method} {url}: {e}")

        except ValidationError as e:
            # e.g. a status outside 100-599
            raise NetworkError(f"Invalid response on {request.method} {url}: {e.error_count()} error(s)")
