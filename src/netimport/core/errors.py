"""Error taxonomy for the loader.

Only `FetchError` and `UnsupportedSchemeError` are expected to reach callers
of `import_module`; errors raised while compiling or executing module code
propagate unmodified.
"""

from __future__ import annotations


class NetImportError(Exception):
    """Base class for loader errors."""


class FetchError(NetImportError):
    """Retrieving the source for `url` failed."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Error fetching {url}: {reason}")
        self.url = url
        self.reason = reason


class UnsupportedSchemeError(NetImportError):
    """A specifier resolved to a URL outside the supported scheme set."""

    def __init__(self, url: str, scheme: str) -> None:
        super().__init__(f"Unsupported URL scheme: {scheme or '(none)'} ({url})")
        self.url = url
        self.scheme = scheme


class ModuleStateError(NetImportError):
    """A module was driven through an illegal lifecycle transition."""


class CacheMissError(LookupError):
    """No usable cache entry exists for a URL. Never leaves the fetcher."""
