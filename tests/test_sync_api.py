import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.routes import sync as sync_routes
from app.config.settings import Settings, get_settings
from app.main import app
from app.services.sync_service import REQUEST_FAILED_WARNING, UNAVAILABLE_WARNING

ZERO_COUNTS = {"dishes": 0, "ingredients": 0, "orders": 0, "analytics": 0}


def _client_with_backend(handler):
    async def override_transport():
        return httpx.MockTransport(handler)

    def override_settings():
        return Settings(api_base_url="http://backend.test", cache_dir="unused", sync_timeout_seconds=1.0)

    app.dependency_overrides[sync_routes.get_sync_transport] = override_transport
    app.dependency_overrides[get_settings] = override_settings
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


def test_recognized_envelope_is_passed_through():
    envelope = {
        "success": True,
        "data": {"lastSync": "2024-05-01T09:00:00Z", "recordsSynced": {"dishes": 3}},
        "extra": "kept",
    }
    client = _client_with_backend(lambda request: httpx.Response(200, json=envelope))

    response = client.post("/api/sync")

    assert response.status_code == 200
    assert response.json() == envelope


def test_unrecognized_success_payload_is_wrapped():
    client = _client_with_backend(lambda request: httpx.Response(200, json={"lastSync": "2024-05-01"}))

    response = client.post("/api/sync")

    assert response.json() == {"success": True, "data": {"lastSync": "2024-05-01"}}


def test_upstream_transport_failure_returns_fallback():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    client = _client_with_backend(handler)

    response = client.post("/api/sync")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["warning"] == REQUEST_FAILED_WARNING
    assert body["data"]["recordsSynced"] == ZERO_COUNTS
    assert body["data"]["lastSync"]


def test_upstream_error_status_returns_fallback():
    client = _client_with_backend(lambda request: httpx.Response(500, json={"success": False}))

    response = client.post("/api/sync")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["warning"] == UNAVAILABLE_WARNING
    assert body["data"]["recordsSynced"] == ZERO_COUNTS


def test_non_json_success_returns_fallback():
    client = _client_with_backend(lambda request: httpx.Response(200, content=b"ok"))

    body = client.post("/api/sync").json()

    assert body["warning"] == UNAVAILABLE_WARNING


def test_forwards_to_backend_sync_endpoint():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": {}})

    client = _client_with_backend(handler)
    client.post("/api/sync")

    assert seen[0].method == "POST"
    assert str(seen[0].url) == "http://backend.test/api/sync"


def test_status_probe_and_health():
    client = TestClient(app)

    status = client.get("/api/sync").json()
    assert status["success"] is True
    assert status["data"]["status"] == "ok"
    assert client.get("/health").json() == {"status": "ok"}
