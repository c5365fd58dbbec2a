"""Module source fetcher with a stale-while-revalidate cache.

- `file:` URLs are read from disk and never cached.
- `http:`/`https:` URLs race a cache lookup against a (conditional) network
  request. A cached copy answers immediately; the network request keeps
  running in the background and refreshes the cache on a 200.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx

from netimport.adapters.content_cache import ContentCache
from netimport.adapters.http_client import build_async_client
from netimport.core.concurrency import race_with_fallback
from netimport.core.config import LoaderSettings
from netimport.core.errors import CacheMissError, FetchError, UnsupportedSchemeError

logger = logging.getLogger(__name__)


class HttpFetcher:
    """Fetches module sources over HTTP(S) and from local files.

    Use as an async context manager (or call `aclose`) so background
    revalidations finish before the HTTP client closes.
    """

    def __init__(
        self,
        settings: LoaderSettings | None = None,
        *,
        cache: ContentCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or LoaderSettings()
        self.cache = cache or ContentCache(self._settings.resolved_cache_dir())
        self._client = client or build_async_client(self._settings)
        self._background: set[asyncio.Task] = set()

    async def __aenter__(self) -> HttpFetcher:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def drain(self) -> None:
        """Wait for background revalidations still in flight."""

        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self._client.aclose()

    async def fetch(self, url: str) -> str:
        started = time.perf_counter()
        scheme = urlsplit(url).scheme
        if scheme == "file":
            status, text = "(file)", self._from_file(url)
        elif scheme in ("http", "https"):
            status, text = await race_with_fallback(
                self._from_cache(url),
                self._from_network(url),
                background=self._background,
            )
        else:
            raise UnsupportedSchemeError(url, scheme)

        elapsed_ms = round((time.perf_counter() - started) * 1000)
        level = logging.INFO if self._settings.verbose else logging.DEBUG
        logger.log(level, "%s %s %d %dms", url, status, len(text), elapsed_ms)
        return text

    def _from_file(self, url: str) -> str:
        path = Path(url2pathname(urlsplit(url).path))
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise FetchError(url, exc.strerror or str(exc)) from exc
        except UnicodeDecodeError as exc:
            raise FetchError(url, str(exc)) from exc

    async def _from_cache(self, url: str) -> tuple[str, str]:
        metadata = self.cache.lookup(url)
        if metadata is None:
            raise CacheMissError(url)
        return "(cache)", self.cache.read(url, metadata)

    async def _from_network(self, url: str) -> tuple[str, str]:
        metadata = self.cache.lookup(url)
        headers = metadata.conditional_headers() if metadata else {}
        response = await self._get(url, headers)

        if response.status_code == 304 and metadata is not None:
            try:
                body = self.cache.read(url, metadata)
            except CacheMissError:
                # Body vanished under valid metadata: ask again without validators.
                response = await self._get(url, {})
            else:
                self._write_cache(url, self.cache.touch, metadata)
                return str(response.status_code), body

        if not response.is_success:
            raise FetchError(url, f"{response.status_code} {response.reason_phrase}".strip())

        text = response.text or ""
        self._write_cache(url, self.cache.store, url, text, response.headers)
        return str(response.status_code), text

    def _write_cache(self, url: str, write: Callable[..., object], *args: Any) -> None:
        try:
            write(*args)
        except OSError as exc:
            logger.debug("cache write for %s failed: %s", url, exc)

    async def _get(self, url: str, headers: dict[str, str]) -> httpx.Response:
        try:
            return await self._client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise FetchError(url, str(exc) or exc.__class__.__name__) from exc
