from pathlib import Path
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.services.gateway import RemoteGateway
from app.services.local_cache import LocalCache
from app.services.store import SyncStore

BASE_URL = "http://api.test"


class FakeBackend:
    """Route table answering gateway requests through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, *, status: int = 200, json: Any = None, content: Optional[bytes] = None) -> None:
        def _respond(_request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status, content=content)
            if json is None:
                return httpx.Response(status)
            return httpx.Response(status, json=json)

        self.routes[(method, path)] = _respond

    def fail(self, method: str, path: str, message: str = "Connection refused") -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError(message, request=request)

        self.routes[(method, path)] = _raise

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        return route(request)

    def gateway(self) -> RemoteGateway:
        return RemoteGateway(BASE_URL, transport=httpx.MockTransport(self.handler))


@pytest.fixture(name="backend")
def backend_fixture() -> FakeBackend:
    return FakeBackend()


@pytest.fixture(name="cache")
def cache_fixture(tmp_path: Path) -> LocalCache:
    return LocalCache(tmp_path / "cache")


@pytest.fixture(name="store")
def store_fixture(backend: FakeBackend, cache: LocalCache) -> SyncStore:
    return SyncStore(backend.gateway(), cache)
