"""I/O adapters: HTTP client, on-disk content cache and source fetcher."""

from netimport.adapters.content_cache import ContentCache, cache_key
from netimport.adapters.fetcher import HttpFetcher
from netimport.adapters.http_client import build_async_client
from netimport.adapters.import_map_loader import load_import_map

__all__ = [
    "ContentCache",
    "HttpFetcher",
    "build_async_client",
    "cache_key",
    "load_import_map",
]
