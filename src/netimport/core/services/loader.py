"""Top-level import orchestration.

`ModuleLoader.import_module` resolves a specifier, builds the root module,
links the graph and evaluates it. Each call works on a snapshot of the
settings and a fresh `Context`; nothing is reused between calls except the
fetcher's on-disk cache.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from netimport.adapters.fetcher import HttpFetcher
from netimport.adapters.import_map_loader import load_import_map
from netimport.core.config import LoaderSettings
from netimport.core.domain.module import Context, Namespace
from netimport.core.interfaces.fetcher import SourceFetcher
from netimport.core.log import configure_logging
from netimport.core.services.builder import ModuleBuilder, SourceTransform
from netimport.core.services.evaluator import ModuleEvaluator
from netimport.core.services.linker import ModuleLinker
from netimport.core.services.resolver import SpecifierResolver


class ModuleLoader:
    """Imports modules from URLs, local paths, bare names and builtins.

    Example:
        async with ModuleLoader(LoaderSettings(base_url="https://cdn.example/")) as loader:
            ns = await loader.import_module("leftpad@1.0.0")
    """

    def __init__(
        self,
        settings: LoaderSettings | None = None,
        *,
        fetcher: SourceFetcher | None = None,
        transform: SourceTransform | None = None,
    ) -> None:
        self.settings = settings or LoaderSettings()
        # A caller-supplied fetcher is shared by every import and never closed
        # here; otherwise each import gets its own from the settings snapshot.
        self.fetcher = fetcher
        self._transform = transform
        self._owned: list[HttpFetcher] = []

    async def __aenter__(self) -> ModuleLoader:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        owned, self._owned = self._owned, []
        for fetcher in owned:
            await fetcher.aclose()

    def _fetcher_for(self, settings: LoaderSettings) -> SourceFetcher:
        if self.fetcher is not None:
            return self.fetcher
        fetcher = HttpFetcher(settings)
        self._owned.append(fetcher)
        return fetcher

    def snapshot(self) -> LoaderSettings:
        """Deep copy of the settings used by a single import."""

        snap = self.settings.model_copy(deep=True)
        if snap.import_map_path is not None:
            from_file = load_import_map(snap.import_map_path)
            snap = snap.model_copy(update={"import_map": snap.import_map.merged_over(from_file)})
        return snap

    async def import_module(
        self,
        specifier: str,
        *,
        globals: Mapping[str, Any] | None = None,
    ) -> Namespace:
        """Import `specifier` and return its exports.

        `globals` are extra bindings visible to every module of the graph.
        """

        settings = self.snapshot()
        configure_logging(settings.verbose)
        resolver = SpecifierResolver(settings.base_url, native_modules=settings.native_modules)
        url = resolver.resolve(specifier, None, settings.import_map)

        context = Context(globals)
        builder = ModuleBuilder(self._fetcher_for(settings), transform=self._transform)
        module = await builder.build(url, context)

        linker = ModuleLinker(
            resolver,
            builder,
            settings.import_map,
            share_modules=settings.share_modules,
        )
        await linker.link(module)
        return await ModuleEvaluator().evaluate(module)


def dynamic_import(
    specifier: str,
    settings: LoaderSettings | None = None,
    *,
    globals: Mapping[str, Any] | None = None,
) -> Namespace:
    """Synchronous one-shot import on a fresh event loop."""

    async def run() -> Namespace:
        async with ModuleLoader(settings) as loader:
            return await loader.import_module(specifier, globals=globals)

    return asyncio.run(run())
