"""Runtime module records shared by the builder, linker and evaluator.

A `Module` is owned by the linker until evaluated; the `Namespace` produced
by evaluation belongs to the caller. A `Context` is created once per
top-level import and threaded through every module of that graph.
"""

from __future__ import annotations

import builtins
import importlib
import types
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from netimport.core.errors import ModuleStateError


class ModuleState(str, Enum):
    """Module lifecycle."""

    UNLINKED = "unlinked"
    LINKING = "linking"
    LINKED = "linked"
    EVALUATING = "evaluating"
    EVALUATED = "evaluated"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ModuleState.EVALUATED, ModuleState.FAILED)


_TRANSITIONS: dict[ModuleState, set[ModuleState]] = {
    ModuleState.UNLINKED: {ModuleState.LINKING},
    ModuleState.LINKING: {ModuleState.LINKED},
    ModuleState.LINKED: {ModuleState.EVALUATING},
    ModuleState.EVALUATING: {ModuleState.EVALUATED},
}

# Attributes a synthetic module keeps as its own when copying a native one.
_MODULE_IDENTITY = frozenset(
    {"__name__", "__file__", "__loader__", "__spec__", "__builtins__", "__cached__"}
)


@dataclass(frozen=True)
class ImportRequest:
    """One module-level import statement target, as seen in module source.

    `level` is the number of leading dots of a relative import; `name` is the
    dotted module path after them. `optional` marks imports nested in a
    module-level compound statement (`try`, `if`, ...): when their target
    cannot be fetched they are left to the host import at run time.
    """

    name: str
    level: int = 0
    optional: bool = False

    @property
    def key(self) -> tuple[int, str]:
        return (self.level, self.name)


class Namespace(Mapping[str, Any]):
    """Read-only view of a module's exports (also attribute-accessible)."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any]) -> None:
        self._values = dict(values)

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(name) from None

    def __dir__(self) -> list[str]:
        return sorted(self._values)

    def __repr__(self) -> str:
        return f"Namespace({', '.join(sorted(self._values))})"


class Context:
    """Global bindings shared by every module of one top-level import.

    Modules execute with `__builtins__` set to `self.builtins`, whose
    `__import__` serves linked dependencies and defers everything else to
    the host import system.
    """

    def __init__(self, extra_globals: Mapping[str, Any] | None = None) -> None:
        self._native_import = builtins.__import__
        self.builtins: dict[str, Any] = dict(vars(builtins))
        if extra_globals:
            self.builtins.update(extra_globals)
        self.builtins["__import__"] = self._import

    def new_module_object(self, url: str) -> types.ModuleType:
        obj = types.ModuleType(url)
        obj.__file__ = url
        obj.__builtins__ = self.builtins  # type: ignore[attr-defined]
        return obj

    def _import(
        self,
        name: str,
        globals: Mapping[str, Any] | None = None,
        locals: Mapping[str, Any] | None = None,
        fromlist: tuple[str, ...] | list[str] | None = (),
        level: int = 0,
    ) -> Any:
        record = (globals or {}).get("__loader__")
        if isinstance(record, Module) and record.context is self:
            if not name and level:
                found = {n: record.links.get((level, n)) for n in fromlist or ()}
                if found and all(found.values()):
                    package = types.ModuleType(record.url)
                    for attr, dep in found.items():
                        setattr(package, attr, dep.module)  # type: ignore[union-attr]
                    return package
            else:
                dep = record.links.get((level, name))
                if dep is not None:
                    return _bind_import(name, dep, fromlist)
        return self._native_import(name, globals, locals, fromlist or (), level)


def _bind_import(name: str, dep: Module, fromlist: Any) -> types.ModuleType:
    """Value `__import__` must return for `name` when `dep` is linked to it."""

    if fromlist and dep.native is not None:
        _load_native_submodules(dep, fromlist)
    if fromlist or "." not in name:
        return dep.module

    parts = name.split(".")
    if dep.native is not None:
        # `import os.path` binds the real top-level package.
        return importlib.import_module(parts[0])

    top = types.ModuleType(parts[0])
    current = top
    for part in parts[1:-1]:
        child = types.ModuleType(part)
        setattr(current, part, child)
        current = child
    setattr(current, parts[-1], dep.module)
    return top


def _load_native_submodules(dep: Module, fromlist: Any) -> None:
    # `from collections import abc` may name a submodule the host has not
    # imported yet; load it the way the host's own fromlist handling does.
    package = dep.native
    if not hasattr(package, "__path__"):
        return
    for attr in fromlist:
        if attr == "*" or hasattr(dep.module, attr):
            continue
        try:
            value = importlib.import_module(f"{package.__name__}.{attr}")
        except ModuleNotFoundError:
            continue
        setattr(dep.module, attr, value)


@dataclass(eq=False)
class Module:
    """A module record identified by its resolved URL.

    Source-backed records carry compiled `code`; synthetic records wrap a
    `native` host module whose attributes are copied when evaluated.
    """

    url: str
    context: Context
    export_names: tuple[str, ...]
    module: types.ModuleType
    code: types.CodeType | None = None
    native: types.ModuleType | None = None
    requests: list[ImportRequest] = field(default_factory=list)
    links: dict[tuple[int, str], Module] = field(default_factory=dict)
    state: ModuleState = ModuleState.UNLINKED

    @property
    def synthetic(self) -> bool:
        return self.native is not None

    def transition(self, new: ModuleState) -> None:
        if new is ModuleState.FAILED and not self.state.terminal:
            self.state = new
            return
        if new not in _TRANSITIONS.get(self.state, set()):
            raise ModuleStateError(
                f"{self.url}: cannot go from {self.state.value} to {new.value}"
            )
        self.state = new

    def execute(self) -> None:
        """Run the module's top-level code once."""

        if self.native is not None:
            for name, value in vars(self.native).items():
                if name not in _MODULE_IDENTITY:
                    setattr(self.module, name, value)
            return

        assert self.code is not None
        exec(self.code, self.module.__dict__)

    def namespace(self) -> Namespace:
        scope = self.module.__dict__
        names: Any = self.export_names
        if not self.synthetic and isinstance(scope.get("__all__"), (list, tuple)):
            names = scope["__all__"]
        return Namespace({n: scope[n] for n in names if n in scope})
