"""Recursive linking of a module graph.

Every module-level import request of a module is resolved and built, then
the new dependency is linked in turn, until nothing reachable is unresolved.

Rules:
- A URL already on the current import path is reused (cycles terminate and
  see a partially initialised module, as with the host import system).
- Otherwise each import site builds its own module, unless `share_modules`
  is set, in which case one module per URL serves the whole graph.
- Imports nested in module-level `try`/`if` blocks are optional: a target
  that cannot be fetched is skipped so the module's own fallback runs.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from urllib.parse import urlsplit

from netimport.core.domain.models import ImportMap
from netimport.core.domain.module import ImportRequest, Module, ModuleState
from netimport.core.errors import NetImportError
from netimport.core.services.builder import ModuleBuilder
from netimport.core.services.resolver import SpecifierResolver

logger = logging.getLogger(__name__)


def _url_suffix(url: str) -> str:
    return PurePosixPath(urlsplit(url).path).suffix


class ModuleLinker:
    def __init__(
        self,
        resolver: SpecifierResolver,
        builder: ModuleBuilder,
        import_map: ImportMap | None = None,
        *,
        share_modules: bool = False,
    ) -> None:
        self._resolver = resolver
        self._builder = builder
        self._import_map = import_map or ImportMap()
        self._shared: dict[str, Module] | None = {} if share_modules else None

    def specifier_for(self, request: ImportRequest, referencing_url: str) -> str:
        """Translate an import statement target into a specifier.

        Module-name imports inherit the importer's file suffix, so
        `import helpers` inside `.../main.py` asks for `helpers.py`.
        """

        if request.level == 0:
            if self._resolver.is_builtin(request.name):
                return request.name
            if request.name in self._import_map.imports:
                return request.name
            prefix = ""
        elif request.level == 1:
            prefix = "./"
        else:
            prefix = "../" * (request.level - 1)
        return prefix + request.name.replace(".", "/") + _url_suffix(referencing_url)

    async def link(self, module: Module) -> None:
        if self._shared is not None:
            self._shared.setdefault(module.url, module)
        await self._link(module, ())

    async def _link(self, module: Module, ancestors: tuple[Module, ...]) -> None:
        module.transition(ModuleState.LINKING)
        path = ancestors + (module,)
        try:
            for request in module.requests:
                try:
                    module.links[request.key] = await self._dependency(module, request, path)
                except NetImportError as exc:
                    if not request.optional:
                        raise
                    # The host import raises ImportError for it at run time.
                    logger.debug("leaving %s unlinked in %s: %s", request.name, module.url, exc)
        except Exception:
            module.transition(ModuleState.FAILED)
            raise
        module.transition(ModuleState.LINKED)

    async def _dependency(
        self, module: Module, request: ImportRequest, path: tuple[Module, ...]
    ) -> Module:
        specifier = self.specifier_for(request, module.url)
        url = self._resolver.resolve(specifier, module.url, self._import_map)
        dep = self._reuse(url, path)
        if dep is None:
            logger.debug("linking %s -> %s", module.url, url)
            dep = await self._builder.build(url, module.context)
            if self._shared is not None:
                self._shared[url] = dep
        if dep.state is ModuleState.UNLINKED:
            try:
                await self._link(dep, path)
            except NetImportError:
                if self._shared is not None:
                    self._shared.pop(url, None)
                raise
        return dep

    def _reuse(self, url: str, path: tuple[Module, ...]) -> Module | None:
        for ancestor in path:
            if ancestor.url == url:
                return ancestor
        if self._shared is not None:
            return self._shared.get(url)
        return None
