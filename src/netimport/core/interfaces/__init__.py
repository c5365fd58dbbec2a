"""Structural contracts (Protocols) used by the core services."""

from netimport.core.interfaces.fetcher import SourceFetcher

__all__ = ["SourceFetcher"]
