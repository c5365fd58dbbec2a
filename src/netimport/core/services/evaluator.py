"""Evaluation of a linked module graph.

Dependencies run before their importers (post-order). Modules already
running or finished in the same graph (cycles, shared modules) are skipped.
Errors raised by module code propagate unchanged.
"""

from __future__ import annotations

import asyncio

from netimport.core.domain.module import Module, ModuleState, Namespace
from netimport.core.errors import ModuleStateError


class ModuleEvaluator:
    async def evaluate(self, module: Module) -> Namespace:
        if module.state is not ModuleState.LINKED:
            raise ModuleStateError(
                f"{module.url}: expected a linked module, got {module.state.value}"
            )
        await self._run(module)
        return module.namespace()

    async def _run(self, module: Module) -> None:
        if module.state in (ModuleState.EVALUATING, ModuleState.EVALUATED):
            return
        module.transition(ModuleState.EVALUATING)
        try:
            for dep in module.links.values():
                await self._run(dep)
            module.execute()
        except Exception:
            module.transition(ModuleState.FAILED)
            raise
        module.transition(ModuleState.EVALUATED)
        await asyncio.sleep(0)
