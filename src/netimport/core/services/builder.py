"""Module construction.

Turns a resolved URL into an unevaluated `Module`:
- `http`/`https`/`file`: fetch source, compile it, record its module-level
  imports and declared exports.
- `python:`: import the host module now, copy its attributes at evaluation time.
"""

from __future__ import annotations

import ast
import importlib
from collections.abc import Callable, Iterator
from urllib.parse import urlsplit

from netimport.core.domain.module import Context, ImportRequest, Module
from netimport.core.errors import UnsupportedSchemeError
from netimport.core.interfaces.fetcher import SourceFetcher
from netimport.core.services.resolver import BUILTIN_SCHEME, SOURCE_SCHEMES

SourceTransform = Callable[[str, str], str]


_COMPOUND_BLOCKS = ("body", "orelse", "finalbody")


def _module_level(body: list[ast.stmt], nested: bool = False) -> Iterator[tuple[ast.stmt, bool]]:
    """Statements executed in module scope, each with whether it is nested.

    Descends into `if`/`try`/`with`/`for`/`while`/`match` blocks but never
    into function or class bodies.
    """

    for node in body:
        yield node, nested
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            continue
        blocks = [getattr(node, name, None) for name in _COMPOUND_BLOCKS]
        blocks.extend(handler.body for handler in getattr(node, "handlers", ()))
        blocks.extend(case.body for case in getattr(node, "cases", ()))
        for block in blocks:
            if isinstance(block, list) and block and isinstance(block[0], ast.stmt):
                yield from _module_level(block, True)


def scan_imports(tree: ast.Module) -> list[ImportRequest]:
    """Import requests of the module-level statements, in order."""

    requests: dict[tuple[int, str], ImportRequest] = {}
    for node, nested in _module_level(tree.body):
        if isinstance(node, ast.Import):
            found = [ImportRequest(alias.name, 0, nested) for alias in node.names]
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                found = [ImportRequest(node.module, node.level, nested)]
            else:
                found = [ImportRequest(alias.name, node.level, nested) for alias in node.names]
        else:
            continue
        for request in found:
            seen = requests.get(request.key)
            if seen is None or (seen.optional and not request.optional):
                requests[request.key] = request
    return list(requests.values())


def _literal_all(node: ast.stmt) -> list[str] | None:
    if not isinstance(node, ast.Assign):
        return None
    if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in node.targets):
        return None
    if not isinstance(node.value, (ast.List, ast.Tuple)):
        return None
    names = [e.value for e in node.value.elts if isinstance(e, ast.Constant)]
    if not all(isinstance(n, str) for n in names):
        return None
    return names


def _bound_names(target: ast.expr) -> list[str]:
    if isinstance(target, ast.Name):
        return [target.id]
    if isinstance(target, (ast.Tuple, ast.List)):
        return [n for elt in target.elts for n in _bound_names(elt)]
    return []


def declared_exports(tree: ast.Module) -> tuple[str, ...]:
    """`__all__` if given literally, else public module-level definitions.

    Definitions inside module-level `if`/`try`/`with` blocks count; imported
    names do not.
    """

    names: list[str] = []
    for node, _ in _module_level(tree.body):
        explicit = _literal_all(node)
        if explicit is not None:
            return tuple(explicit)
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            names.append(node.name)
        elif isinstance(node, ast.Assign):
            for target in node.targets:
                names.extend(_bound_names(target))
        elif isinstance(node, (ast.AnnAssign, ast.For, ast.AsyncFor)):
            names.extend(_bound_names(node.target))
    return tuple(dict.fromkeys(n for n in names if not n.startswith("_")))


def native_export_names(native: object) -> tuple[str, ...]:
    explicit = getattr(native, "__all__", None)
    if isinstance(explicit, (list, tuple)):
        return tuple(explicit)
    return tuple(n for n in vars(native) if not n.startswith("_"))


class ModuleBuilder:
    """Builds module records bound to a shared `Context`."""

    def __init__(self, fetcher: SourceFetcher, *, transform: SourceTransform | None = None) -> None:
        self._fetcher = fetcher
        self._transform = transform

    async def build(self, url: str, context: Context) -> Module:
        scheme = urlsplit(url).scheme.lower()
        if scheme in SOURCE_SCHEMES:
            source = await self._fetcher.fetch(url)
            if self._transform is not None:
                source = self._transform(source, url)
            return self.from_source(url, source, context)
        if scheme == BUILTIN_SCHEME:
            return self.synthetic(url, context)
        raise UnsupportedSchemeError(url, scheme)

    def from_source(self, url: str, source: str, context: Context) -> Module:
        tree = ast.parse(source, filename=url)
        code = compile(tree, url, "exec")
        record = Module(
            url=url,
            context=context,
            export_names=declared_exports(tree),
            module=context.new_module_object(url),
            code=code,
            requests=scan_imports(tree),
        )
        record.module.__loader__ = record
        return record

    def synthetic(self, url: str, context: Context) -> Module:
        native = importlib.import_module(url.split(":", 1)[1])
        return Module(
            url=url,
            context=context,
            export_names=native_export_names(native),
            module=context.new_module_object(url),
            native=native,
        )
