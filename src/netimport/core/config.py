"""Loader configuration.

- Centralises environment variables (pydantic-settings) for the loader.
- One settings object is passed into `ModuleLoader`; every top-level import
  works on its own snapshot (see `snapshot`).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from netimport.core.domain.models import ImportMap

DEFAULT_BASE_URL = "https://cdn.skypack.dev/"


def get_default_cache_dir() -> Path:
    """Per-user fetch cache directory.

    Rules:
    - Windows: `%TEMP%/netimport/fetch`.
    - Elsewhere: `$XDG_CACHE_HOME/netimport/fetch`, or `~/.cache/netimport/fetch`.
    """

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("TEMP", str(Path.home())))
        return base / "netimport" / "fetch"

    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / "netimport" / "fetch"
    return Path.home() / ".cache" / "netimport" / "fetch"


class LoaderSettings(BaseSettings):
    """Central configuration for module loading.

    Every field may come from the environment with the `NETIMPORT_` prefix,
    e.g. `NETIMPORT_BASE_URL` or `NETIMPORT_IMPORT_MAP='{"imports": {...}}'`.
    """

    model_config = SettingsConfigDict(
        env_prefix="NETIMPORT_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        min_length=1,
        description="Prefix for bare specifiers that carry no scheme.",
    )
    import_map: ImportMap = Field(
        default_factory=ImportMap,
        description="Bare specifier -> URL or version token.",
    )
    import_map_path: Path | None = Field(
        default=None,
        description="Optional import_map.json; inline `import_map` entries win.",
    )
    verbose: bool = Field(
        default=False,
        description="Log URL, status class, body length and elapsed time per fetch.",
    )
    cache_dir: Path | None = Field(
        default=None,
        description="Fetch cache directory (None = platform default).",
    )
    http_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Timeout per request (seconds). None waits indefinitely.",
    )
    user_agent: str = Field(
        default="netimport/0.1",
        min_length=1,
        description="User-Agent sent with module requests.",
    )
    native_modules: list[str] = Field(
        default_factory=list,
        description="Extra top-level names served from the host instead of fetched.",
    )
    share_modules: bool = Field(
        default=False,
        description="Reuse one module per URL inside a single import graph.",
    )

    def resolved_cache_dir(self) -> Path:
        return self.cache_dir or get_default_cache_dir()
