"""Fire-and-forget work queue for best-effort side effects.

Work dispatched here runs on the event loop after the caller moves on. The
caller never observes the outcome: failures are logged and dropped.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundDispatcher:
    """Schedules coroutines without awaiting them and logs their failures."""

    def __init__(self) -> None:
        # Strong references; the loop only keeps weak ones to running tasks.
        self._tasks: set[asyncio.Task[Any]] = set()

    def dispatch(self, coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task[Any]:
        """Schedule `coro` on the running loop and return immediately."""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_done(t, description))
        return task

    def _on_done(self, task: asyncio.Task[Any], description: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background task cancelled: %s", description)
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background task failed: %s: %s", description, exc)
        else:
            logger.debug("Background task completed: %s", description)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding task; used at shutdown and in tests."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
