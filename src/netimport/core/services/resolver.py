"""Specifier resolution.

Maps `(specifier, referencing URL, import map)` to the URL that identifies a
module. Pure and synchronous: no I/O happens here.

Order:
1) builtin name -> `python:<name>`
2) explicit location (`/`, `.`, or a scheme) -> used as-is / joined to the referrer
3) import-map key -> mapped URL, or `<name>@<version>` under the base URL
4) anything else -> base URL prefix (root) or joined to the referrer (nested)
"""

from __future__ import annotations

import re
import sys
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import urljoin, urlsplit

from netimport.core.config import DEFAULT_BASE_URL
from netimport.core.domain.models import ImportMap
from netimport.core.errors import UnsupportedSchemeError

BUILTIN_SCHEME = "python"
SOURCE_SCHEMES = frozenset({"http", "https", "file"})
SUPPORTED_SCHEMES = SOURCE_SCHEMES | {BUILTIN_SCHEME}

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


def host_builtin_names() -> frozenset[str]:
    """Top-level module names the host interpreter ships."""

    return frozenset(sys.stdlib_module_names) | frozenset(sys.builtin_module_names)


def is_explicit_location(specifier: str) -> bool:
    return specifier.startswith(("/", ".")) or bool(_SCHEME_RE.match(specifier))


def ensure_supported(url: str) -> str:
    scheme = urlsplit(url).scheme.lower()
    if scheme not in SUPPORTED_SCHEMES:
        raise UnsupportedSchemeError(url, scheme)
    return url


class SpecifierResolver:
    """Resolves specifiers against a base URL and a set of builtin names."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        native_modules: Iterable[str] = (),
        builtin_names: frozenset[str] | None = None,
    ) -> None:
        self.base_url = base_url
        names = host_builtin_names() if builtin_names is None else builtin_names
        self.builtin_names = names | frozenset(native_modules)

    def is_builtin(self, specifier: str) -> bool:
        parts = specifier.split(".")
        if not all(part.isidentifier() for part in parts):
            return False
        return parts[0] in self.builtin_names

    def resolve(
        self,
        specifier: str,
        referencing_url: str | None,
        import_map: ImportMap | None = None,
    ) -> str:
        """Return the URL for `specifier`.

        `referencing_url` is None for a top-level import; explicit relative
        locations then resolve against the current working directory.
        """

        imports = import_map.imports if import_map is not None else {}

        if self.is_builtin(specifier):
            url = f"{BUILTIN_SCHEME}:{specifier}"
        elif is_explicit_location(specifier):
            url = self._join(specifier, referencing_url)
        elif specifier in imports:
            mapped = imports[specifier]
            if is_explicit_location(mapped):
                url = self._join(mapped, referencing_url)
            else:
                url = self.base_url + f"{specifier}@{mapped}"
        elif referencing_url is None:
            url = self.base_url + specifier
        else:
            url = urljoin(referencing_url, specifier)

        return ensure_supported(url)

    @staticmethod
    def _join(location: str, referencing_url: str | None) -> str:
        if _SCHEME_RE.match(location):
            return location
        base = referencing_url or Path.cwd().as_uri() + "/"
        return urljoin(base, location)
