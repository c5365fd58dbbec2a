"""httpx wrapper.

- Standardises timeout, headers and redirect policy for module downloads.
- Tests pass a `transport` (e.g. `httpx.MockTransport`) instead of the network.
"""

from __future__ import annotations

import httpx

from netimport.core.config import LoaderSettings

SOURCE_ACCEPT = "text/x-python, application/x-python, text/plain;q=0.9, */*;q=0.8"


def build_async_client(
    settings: LoaderSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` for module downloads.

    `settings.http_timeout_seconds = None` disables the timeout entirely.
    """

    settings = settings or LoaderSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": SOURCE_ACCEPT,
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )
