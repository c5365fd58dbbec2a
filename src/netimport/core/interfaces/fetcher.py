"""Contract for source retrieval.

The builder depends on this structural contract only, so the HTTP/cache
adapter can be swapped for a stub in tests.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SourceFetcher(Protocol):
    """Minimal contract for fetching module source text.

    Rules:
    - `fetch` is asynchronous because it performs network or file I/O.
    - Failures raise `FetchError`.
    """

    async def fetch(self, url: str) -> str:
        """Return the source text stored at `url`."""

        ...
