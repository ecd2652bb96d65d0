"""
Shared fixtures for YApi service tests.
"""

import asyncio
import json
from collections import defaultdict, deque
from typing import Any, Callable, Deque, Dict, List

import httpx
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.config import YApiSettings
from shared.metrics import MetricsCollector
from service_yapi.app.adapters import YApiClient
from service_yapi.app.caching import ExpiringCache

BASE_URL = "http://yapi.example.com"

Responder = Callable[[httpx.Request], httpx.Response]


class FakeYApi:
    """Scripted YApi transport that records every request.

    Responses are queued per path; the last queued response for a path is
    reused for every further request to it. Unscripted paths answer 404.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._routes: Dict[str, Deque[Responder]] = defaultdict(deque)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        # Yield so that concurrent callers interleave the way real I/O would.
        await asyncio.sleep(0)
        queue = self._routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, text="Not Found")
        responder = queue.popleft() if len(queue) > 1 else queue[0]
        return responder(request)

    def reply_with(self, path: str, responder: Responder) -> "FakeYApi":
        self._routes[path].append(responder)
        return self

    def reply(
        self,
        path: str,
        data: Any = None,
        *,
        errcode: int = 0,
        errmsg: str = "成功！",
        status_code: int = 200,
    ) -> "FakeYApi":
        payload = {"errcode": errcode, "errmsg": errmsg, "data": data}
        return self.reply_with(path, lambda request: httpx.Response(status_code, json=payload))

    def fail_with(self, path: str, exc: Exception) -> "FakeYApi":
        def raise_error(request: httpx.Request) -> httpx.Response:
            raise exc
        return self.reply_with(path, raise_error)

    def login(self, session: str = "sess-1", uid: int = 11) -> "FakeYApi":
        def logged_in(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"errcode": 0, "errmsg": "成功！", "data": {"uid": uid}},
                headers=[
                    ("set-cookie", f"_yapi_token={session}; Path=/"),
                    ("set-cookie", f"_yapi_uid={uid}; Path=/"),
                ],
            )
        return self.reply_with("/api/user/login", logged_in)

    def calls(self, path: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    @staticmethod
    def body(request: httpx.Request) -> Dict[str, Any]:
        return json.loads(request.content)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep host YAPI_* variables and .env files out of the tests."""
    for name in list(os.environ):
        if name.upper().startswith("YAPI_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fake_yapi():
    return FakeYApi()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metrics():
    return MetricsCollector("yapi-test")


@pytest.fixture
def make_client(fake_yapi, metrics, clock):
    """Factory building a client wired to the fake transport and clock."""

    def _make(eager_login: bool = False, **overrides) -> YApiClient:
        values = {"base_url": BASE_URL}
        values.update(overrides)
        settings = YApiSettings(**values)
        return YApiClient(
            settings,
            transport=fake_yapi.transport,
            metrics=metrics,
            cache=ExpiringCache(settings.cache_ttl, clock=clock),
            eager_login=eager_login,
        )

    return _make
