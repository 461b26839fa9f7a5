"""
Shared fixtures: isolated singletons, a manual clock and an httpx transport
patch so no test touches the network or a database.
"""

from __future__ import annotations

import httpx
import pytest

from cache import query as query_module
from cache import tiered as tiered_module
from cache.local import LocalCache
from cache.query import QueryClient
from cache.remote import RemoteCache
from cache.tiered import TieredCache
from realtime import hub as hub_module
from realtime.hub import RealtimeHub


class ManualClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture(autouse=True)
def _isolated_singletons(monkeypatch):
    monkeypatch.delenv("UPSTASH_REDIS_REST_URL", raising=False)
    monkeypatch.delenv("UPSTASH_REDIS_REST_TOKEN", raising=False)
    hub = RealtimeHub()
    cache = TieredCache(LocalCache(), RemoteCache(url="", token=""))
    client = QueryClient(retry=0)
    hub_module.set_hub(hub)
    tiered_module.set_cache(cache)
    query_module.set_query_client(client)
    yield
    hub_module.set_hub(None)
    tiered_module.set_cache(None)
    query_module.set_query_client(None)


@pytest.fixture
def hub() -> RealtimeHub:
    return hub_module.get_hub()


@pytest.fixture
def mock_http(monkeypatch):
    """
    Route every httpx.AsyncClient through `handler`.

    Usage: `requests = mock_http(handler)`; the returned list collects every
    request the code under test sent.
    """

    def _install(handler):
        seen: list[httpx.Request] = []

        def _recording(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        real_client = httpx.AsyncClient

        def _client(*args, **kwargs):
            kwargs["transport"] = httpx.MockTransport(_recording)
            return real_client(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", _client)
        return seen

    return _install
