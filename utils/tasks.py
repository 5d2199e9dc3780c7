"""Detached background tasks whose failures are logged and dropped."""

import asyncio
import logging
from typing import Any, Coroutine, Set

logger = logging.getLogger(__name__)

_detached: Set[asyncio.Task] = set()


def spawn_detached(coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task:
    """Run `coro` without awaiting it.

    Used where the caller must not block on the work (creating the user
    record while the welcome message goes out). Errors are logged under
    `name` and never reach the caller.
    """
    task = asyncio.ensure_future(coro)
    _detached.add(task)

    def _done(finished: asyncio.Task) -> None:
        _detached.discard(finished)
        if finished.cancelled():
            return
        exc = finished.exception()
        if exc is not None:
            logger.error("Background task %s failed", name, exc_info=exc)

    task.add_done_callback(_done)
    return task
