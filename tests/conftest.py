"""Pytest fixtures for netimport tests.

Network access is simulated with `httpx.MockTransport`; caches live under
`tmp_path`.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import pytest

SRC = Path(__file__).resolve().parent.parent / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from netimport.adapters.fetcher import HttpFetcher  # noqa: E402
from netimport.adapters.http_client import build_async_client  # noqa: E402
from netimport.core.config import LoaderSettings  # noqa: E402

BASE_URL = "https://cdn.example/"


@dataclass
class FakeOrigin:
    """In-memory HTTP origin.

    `routes` maps URL -> (status, body, headers). Requests are recorded. When
    `offline` is set every request fails with a connection error. A request
    carrying `if-none-match` equal to the route's etag gets a 304.
    """

    routes: dict[str, tuple[int, str, dict[str, str]]] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)
    offline: bool = False

    def add(self, url: str, body: str, *, status: int = 200, headers: dict[str, str] | None = None) -> None:
        self.routes[url] = (status, body, headers or {})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("network disabled", request=request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        status, body, headers = route
        etag = headers.get("etag")
        if etag and request.headers.get("if-none-match") == etag:
            return httpx.Response(304, headers=headers)
        return httpx.Response(status, text=body, headers=headers)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class StubFetcher:
    """`SourceFetcher` serving fixed sources and recording requested URLs."""

    def __init__(self, sources: dict[str, str] | None = None) -> None:
        self.sources = dict(sources or {})
        self.calls: list[str] = []

    async def fetch(self, url: str) -> str:
        from netimport.core.errors import FetchError

        self.calls.append(url)
        if url not in self.sources:
            raise FetchError(url, "404 Not Found")
        return self.sources[url]


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def settings(cache_dir: Path) -> LoaderSettings:
    return LoaderSettings(_env_file=None, base_url=BASE_URL, cache_dir=cache_dir)


@pytest.fixture
def origin() -> FakeOrigin:
    return FakeOrigin()


@pytest.fixture
def make_fetcher(settings: LoaderSettings, origin: FakeOrigin):
    """Factory for `HttpFetcher`s sharing one cache and one fake origin."""

    def _make(custom: LoaderSettings | None = None) -> HttpFetcher:
        active = custom or settings
        client = build_async_client(active, transport=origin.transport)
        return HttpFetcher(active, client=client)

    return _make


@pytest.fixture
def stub_fetcher() -> StubFetcher:
    return StubFetcher()
