"""Dynamic module loading from URLs, local paths, bare names and builtins."""

from netimport.core.config import LoaderSettings
from netimport.core.domain import ImportMap, Namespace
from netimport.core.errors import FetchError, NetImportError, UnsupportedSchemeError
from netimport.core.services import ModuleLoader, dynamic_import

__all__ = [
    "FetchError",
    "ImportMap",
    "LoaderSettings",
    "ModuleLoader",
    "NetImportError",
    "Namespace",
    "UnsupportedSchemeError",
    "dynamic_import",
]
