"""Core services: resolve -> build -> link -> evaluate."""

from netimport.core.services.builder import ModuleBuilder
from netimport.core.services.evaluator import ModuleEvaluator
from netimport.core.services.linker import ModuleLinker
from netimport.core.services.loader import ModuleLoader, dynamic_import
from netimport.core.services.resolver import SpecifierResolver

__all__ = [
    "ModuleBuilder",
    "ModuleEvaluator",
    "ModuleLinker",
    "ModuleLoader",
    "SpecifierResolver",
    "dynamic_import",
]
