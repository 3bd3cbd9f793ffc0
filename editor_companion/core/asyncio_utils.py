"""Fire-and-forget tasks on the host's event loop.

Both the companion channel (stream readers, exit monitor) and the deferred
queue (scheduled flushes) start tasks nobody awaits directly. ``BackgroundTasks`` holds a reference to
each one and logs its failure when it finishes; the owner can cancel or await
the whole set.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional, Set

from .logging_utils import LoggerLike, as_component_logger


class BackgroundTasks:

    def __init__(self, logger: LoggerLike = None, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.logger = as_component_logger(logger, fallback="BackgroundTasks")
        self._loop = loop
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def __bool__(self) -> bool:
        return bool(self._tasks)

    def start(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Schedule ``coro``; an exception it raises is logged under ``name``."""
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(
                "Unhandled exception in %s", task.get_name(),
                exc_info=(type(error), error, error.__traceback__),
            )

    async def wait(self) -> None:
        """Wait until every task started so far (and any they start) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


__all__ = ["BackgroundTasks"]
