"""Content-addressable cache of fetched module sources.

Layout (two files per URL, both named after `cache_key(url)`):
- `<cache_dir>/<key>`: response body.
- `<cache_dir>/<key>.json`: `CacheMetadata` (`url`, `file`, `headers`, `checked_at`).

An entry is rewritten wholesale on every successful fetch. Unreadable or
invalid metadata counts as a miss. A body without metadata is never trusted.
"""

from __future__ import annotations

import base64
import hashlib
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from pathlib import Path


from netimport.core.domain.models import VALIDATOR_HEADERS, CacheMetadata
from netimport.core.errors import CacheMissError


def cache_key(url: str) -> str:
    """Unpadded RFC 4648 base32 of the SHA-256 digest of `url`."""

    digest = hashlib.sha256(url.encode("utf-8")).digest()
    return base64.b32encode(digest).decode("ascii").rstrip("=")


class ContentCache:
    """On-disk cache keyed by `cache_key(url)`."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def body_path(self, url: str) -> Path:
        return self.directory / cache_key(url)

    def metadata_path(self, url: str) -> Path:
        return self.directory / f"{cache_key(url)}.json"

    def lookup(self, url: str) -> CacheMetadata | None:
        try:
            raw = self.metadata_path(url).read_text(encoding="utf-8")
            return CacheMetadata.model_validate_json(raw)
        except (OSError, ValueError):
            return None

    def read(self, url: str, metadata: CacheMetadata | None = None) -> str:
        """Return the cached body for `url` or raise `CacheMissError`."""

        metadata = metadata or self.lookup(url)
        if metadata is None:
            raise CacheMissError(url)
        try:
            return Path(metadata.file).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CacheMissError(url) from exc

    def store(self, url: str, body: str, headers: Mapping[str, str]) -> CacheMetadata:
        """Write body and metadata for `url`, replacing any previous entry."""

        self.directory.mkdir(parents=True, exist_ok=True)
        body_file = self.body_path(url)
        metadata = CacheMetadata(
            url=url,
            file=str(body_file),
            headers={k: headers[k] for k in VALIDATOR_HEADERS if headers.get(k)},
            checked_at=datetime.now(timezone.utc),
        )
        body_file.write_text(body, encoding="utf-8")
        self.metadata_path(url).write_text(metadata.model_dump_json(), encoding="utf-8")
        return metadata

    def touch(self, metadata: CacheMetadata) -> CacheMetadata:
        """Record that the origin confirmed the cached body (304)."""

        refreshed = metadata.model_copy(update={"checked_at": datetime.now(timezone.utc)})
        self.metadata_path(metadata.url).write_text(refreshed.model_dump_json(), encoding="utf-8")
        return refreshed

    def remove(self, url: str) -> bool:
        removed = False
        for path in (self.body_path(url), self.metadata_path(url)):
            if path.exists():
                path.unlink()
                removed = True
        return removed

    def entries(self) -> Iterator[CacheMetadata]:
        if not self.directory.is_dir():
            return
        for path in sorted(self.directory.glob("*.json")):
            try:
                yield CacheMetadata.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                continue

    def clear(self) -> int:
        """Delete every cache file; returns how many files were removed."""

        if not self.directory.is_dir():
            return 0
        count = 0
        for path in self.directory.iterdir():
            if path.is_file():
                path.unlink()
                count += 1
        return count
