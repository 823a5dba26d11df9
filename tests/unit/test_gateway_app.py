"""
Integration Tests for the Gateway Application

These tests drive app.main through FastAPI's TestClient with the origin
replaced by an in-memory fake. They verify that:
- Startup installs and activates the cache
- Intercepted requests follow the cache manager's policy
- Non-GET requests are forwarded untouched (502 when the origin is down)
- Gateway and metrics endpoints return the expected payloads

Run with:
    pytest tests/unit/test_gateway_app.py -v
"""

import pytest
from fastapi.testclient import TestClient

import app.main as gateway
from core.schemas import CachedResponse, ResourceRequest
from services.network_client import NetworkError
from storage.cache_storage import CacheStorage


class FakeOrigin:
    """In-memory origin; every fetch raises NetworkError while offline."""

    def __init__(self):
        self.routes = {
            "/": CachedResponse(status=200, headers={"Content-Type": "text/html"}, body=b"<html>shell</html>"),
            "/favicon.png": CachedResponse(status=200, headers={"Content-Type": "image/png"}, body=b"PNG"),
            "/src/main.tsx": CachedResponse(status=200, headers={"Content-Type": "text/plain"}, body=b"main"),
        }
        self.offline = False
        self.calls = []

    async def fetch(self, request: ResourceRequest) -> CachedResponse:
        self.calls.append(request)
        if self.offline:
            raise NetworkError("origin unreachable")
        return self.routes.get(request.url, CachedResponse(status=404, body=b"Not Found"))


@pytest.fixture
def origin(monkeypatch):
    origin = FakeOrigin()
    storage = CacheStorage()
    monkeypatch.setattr(gateway, "storage", storage)
    monkeypatch.setattr(gateway.cache_manager, "storage", storage)
    monkeypatch.setattr(gateway.cache_manager, "fetch", origin.fetch)
    monkeypatch.setattr(gateway.network, "fetch", origin.fetch)
    return origin


@pytest.fixture
def client(origin):
    with TestClient(gateway.app) as test_client:
        yield test_client


# ============================================
# Tests for Startup
# ============================================

class TestStartup:
    """Lifespan runs install and activate"""

    def test_health_reports_activated(self, client):
        resp = client.get("/_gateway/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["state"] == "activated"
        assert data["clients_claimed"] is True
        assert gateway.settings.static_cache_name in data["partitions"]

    def test_manifest_precached(self, client):
        resp = client.get("/_gateway/cache", params={"partition": gateway.settings.static_cache_name})

        assert resp.status_code == 200
        keys = [entry["key"] for entry in resp.json()[gateway.settings.static_cache_name]]
        assert keys == ["GET /", "GET /favicon.png", "GET /src/main.tsx"]

    def test_unknown_partition_is_404(self, client):
        resp = client.get("/_gateway/cache", params={"partition": "nope"})
        assert resp.status_code == 404


# ============================================
# Tests for Interception
# ============================================

class TestInterception:
    """Requests routed through the catch-all"""

    def test_static_asset_served(self, client):
        resp = client.get("/favicon.png")

        assert resp.status_code == 200
        assert resp.content == b"PNG"
        assert resp.headers["content-type"] == "image/png"

    def test_api_offline_returns_structured_error(self, client, origin):
        origin.offline = True

        resp = client.get("/api/trades")

        assert resp.status_code == 503
        assert resp.json() == {"error": "Offline", "message": "No internet connection"}

    def test_offline_navigation_gets_shell(self, client, origin):
        origin.offline = True

        resp = client.get("/journal", headers={"Sec-Fetch-Mode": "navigate"})

        assert resp.status_code == 200
        assert resp.content == b"<html>shell</html>"

    def test_html_accept_counts_as_navigation(self, client, origin):
        origin.offline = True

        resp = client.get("/portfolio", headers={"Accept": "text/html,application/xhtml+xml"})

        assert resp.content == b"<html>shell</html>"

    def test_offline_asset_returns_503_text(self, client, origin):
        origin.offline = True

        resp = client.get("/assets/chart.js")

        assert resp.status_code == 503
        assert resp.text == "Offline"

    def test_percent_encoded_path_reaches_origin_unchanged(self, client, origin):
        origin.routes["/files/report%3Fv1.js"] = CachedResponse(status=200, body=b"report")
        origin.routes["/files/a%2Fb.js"] = CachedResponse(status=200, body=b"ab")

        first = client.get("/files/report%3Fv1.js")
        second = client.get("/files/a%2Fb.js")

        assert first.content == b"report"
        assert second.content == b"ab"
        assert [call.url for call in origin.calls[-2:]] == ["/files/report%3Fv1.js", "/files/a%2Fb.js"]

        runtime = gateway.settings.runtime_cache_name
        keys = [entry["key"] for entry in client.get("/_gateway/cache", params={"partition": runtime}).json()[runtime]]
        assert "GET /files/report%3Fv1.js" in keys
        assert "GET /files/a%2Fb.js" in keys

    def test_query_string_forwarded(self, client, origin):
        origin.routes["/api/trades?limit=5&sort=desc"] = CachedResponse(status=200, body=b"[]")

        resp = client.get("/api/trades?limit=5&sort=desc")

        assert resp.status_code == 200
        assert origin.calls[-1].url == "/api/trades?limit=5&sort=desc"

    def test_post_forwarded_untouched(self, client, origin):
        origin.routes["/api/trades"] = CachedResponse(status=201, body=b'{"id": "t1"}')

        resp = client.post("/api/trades", json={"entryPrice": 100})

        assert resp.status_code == 201
        forwarded = origin.calls[-1]
        assert forwarded.method == "POST"
        assert b"entryPrice" in forwarded.body
        assert gateway.cache_manager.pending_refreshes == 0

    def test_post_with_origin_down_is_502(self, client, origin):
        origin.offline = True

        resp = client.post("/api/trades", json={})

        assert resp.status_code == 502


# ============================================
# Tests for Gateway Endpoints
# ============================================

class TestGatewayEndpoints:
    """Messages and metrics"""

    def test_clear_cache_message(self, client):
        resp = client.post("/_gateway/messages", json={"type": "CLEAR_CACHE"})

        assert resp.status_code == 200
        assert resp.json() == {"reply": {"type": "CACHE_CLEARED"}}
        assert client.get("/_gateway/health").json()["partitions"] == []

    def test_rrr_endpoint(self, client):
        resp = client.post("/_gateway/metrics/rrr", json={
            "entryPrice": 100, "slPrice": 90, "tpPrice": 120, "direction": "Long"
        })

        assert resp.status_code == 200
        assert resp.json() == {"rrr": 2.0, "display": "1:2.0"}

    def test_rrr_endpoint_invalid_trade(self, client):
        resp = client.post("/_gateway/metrics/rrr", json={
            "entryPrice": 100, "slPrice": 110, "tpPrice": 80, "direction": "Long"
        })

        assert resp.json() == {"rrr": None, "display": "N/A"}

    def test_average_rr_endpoint(self, client):
        resp = client.post("/_gateway/metrics/average-rr", json={"trades": [
            {"entryPrice": 100, "slPrice": 90, "tpPrice": 120, "direction": "Long", "pnl": 200},
            {"entryPrice": 100, "slPrice": 110, "tpPrice": 80, "direction": "Long"},
        ]})

        assert resp.status_code == 200
        assert resp.json() == {"average_rr": 2.0, "valid_count": 1, "trade_count": 2, "display": "1:2.0"}
