"""Domain types: configuration models and runtime module records."""

from netimport.core.domain.models import CacheMetadata, ImportMap
from netimport.core.domain.module import (
    Context,
    ImportRequest,
    Module,
    ModuleState,
    Namespace,
)

__all__ = [
    "CacheMetadata",
    "Context",
    "ImportMap",
    "ImportRequest",
    "Module",
    "ModuleState",
    "Namespace",
]
