"""Race-with-fallback combinator.

All branches start together; the first one to *succeed* settles the race.
A failing branch contributes nothing and never cancels its siblings; branches
still running when the race settles keep running in the background.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _forget(task: asyncio.Task, background: set[asyncio.Task]) -> None:
    background.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("background branch failed: %r", exc)


async def race_with_fallback(
    *branches: Awaitable[T],
    background: set[asyncio.Task] | None = None,
) -> T:
    """Return the result of the first branch that succeeds.

    If every branch fails, the exception of the last branch (in argument
    order) is raised. Branches left running are added to `background` (when
    given) and removed from it once they finish.
    """

    if not branches:
        raise ValueError("race_with_fallback needs at least one branch")

    tasks = [asyncio.ensure_future(b) for b in branches]
    pending: set[asyncio.Future] = set(tasks)
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in tasks:
                if task in done and not task.cancelled() and task.exception() is None:
                    return task.result()
    finally:
        for task in pending:
            if background is not None:
                background.add(task)  # type: ignore[arg-type]
                task.add_done_callback(lambda t: _forget(t, background))  # type: ignore[arg-type]
            else:
                task.add_done_callback(lambda t: _forget(t, set()))  # type: ignore[arg-type]

    for task in reversed(tasks):
        if task.cancelled():
            continue
        exc = task.exception()
        if exc is not None:
            raise exc
    raise asyncio.CancelledError()
