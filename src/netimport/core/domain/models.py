"""Domain models (Pydantic v2).

These models describe *what* is persisted or configured, not *how* it is
fetched: the import map a caller hands to the resolver and the metadata file
stored next to every cached body.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

# Response headers kept in cache metadata: the validators used for
# conditional revalidation.
VALIDATOR_HEADERS: tuple[str, ...] = ("etag", "last-modified")


class ImportMap(BaseModel):
    """`{"imports": {<specifier>: <URL-or-version>}}`.

    Values without a scheme (and not starting with `/` or `.`) are version
    tokens, expanded to `<specifier>@<version>` against the base URL.
    """

    model_config = ConfigDict(frozen=True)

    imports: dict[str, str] = Field(
        default_factory=dict,
        description="Bare specifier -> fully-qualified URL or version token.",
    )

    def merged_over(self, other: ImportMap) -> ImportMap:
        """Return a map with `other`'s entries overridden by this map's."""

        return ImportMap(imports={**other.imports, **self.imports})


class CacheMetadata(BaseModel):
    """Contents of `<cache_dir>/<hash(url)>.json`."""

    url: str = Field(..., min_length=1, description="Origin URL of the cached body.")
    file: str = Field(..., min_length=1, description="Path of the body file.")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Validator headers (etag / last-modified) of the last 200.",
    )
    checked_at: datetime | None = Field(
        default=None,
        description="Last time the origin confirmed the body (200 or 304).",
    )

    def conditional_headers(self) -> dict[str, str]:
        """Request headers that revalidate this entry."""

        out: dict[str, str] = {}
        if self.headers.get("etag"):
            out["if-none-match"] = self.headers["etag"]
        if self.headers.get("last-modified"):
            out["if-modified-since"] = self.headers["last-modified"]
        return out
