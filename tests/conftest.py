from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

_REAL_ASYNC_CLIENT = httpx.AsyncClient


class MockHttp:
    """Routes every httpx.AsyncClient request to one handler and records it."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self, *args, **kwargs) -> httpx.AsyncClient:
        kwargs.pop("transport", None)
        return _REAL_ASYNC_CLIENT(*args, transport=httpx.MockTransport(self._handle), **kwargs)

    def urls(self) -> list[str]:
        return [str(request.url) for request in self.requests]


@pytest.fixture
def mock_http(monkeypatch):
    def install(handler: Callable[[httpx.Request], httpx.Response]) -> MockHttp:
        mock = MockHttp(handler)
        monkeypatch.setattr(httpx, "AsyncClient", mock.client)
        return mock

    return install


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    monkeypatch.setenv("RELAY_AGENT_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.chdir(tmp_path)
