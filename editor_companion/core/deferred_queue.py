"""
Deferred Completion Queue.

Work that must not run from arbitrary reentrant call sites (a callback from
the companion, a play-mode notification) is queued here and executed at the
next tick of the host's event loop, in FIFO order, one task at a time.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .asyncio_utils import BackgroundTasks
from .errors import DeferredTaskError
from .logging_utils import get_module_logger

ErrorPolicy = Callable[["DeferredTask", BaseException], None]


@dataclass
class DeferredTask:
    """A unit of work plus every argument it needs.

    Arguments are captured at enqueue time so the task never reaches back
    into state that a reload may have discarded in the meantime.
    """

    name: str
    func: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)

    async def run(self) -> Any:
        result = self.func(*self.args, **self.kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result


class DeferredCompletionQueue:

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        error_policy: Optional[ErrorPolicy] = None,
    ):
        self.logger = get_module_logger("DeferredQueue")
        self._loop = loop
        self._error_policy = error_policy
        self._pending: List[DeferredTask] = []
        self._flush_scheduled = False
        self._flush_lock = asyncio.Lock()
        self._flushes = BackgroundTasks(self.logger, loop)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def enqueue(self, task: DeferredTask) -> None:
        """Append ``task`` and schedule a flush on the next loop iteration."""
        self._pending.append(task)
        self.logger.debug("Queued %s (%d pending)", task.name, len(self._pending))

        if not self._flush_scheduled:
            self._flush_scheduled = True
            self._get_loop().call_soon(self._start_flush)

    def defer(self, name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> DeferredTask:
        task = DeferredTask(name=name, func=func, args=args, kwargs=kwargs)
        self.enqueue(task)
        return task

    def _start_flush(self) -> None:
        self._flush_scheduled = False
        self._flushes.start(self.flush(), name="deferred-flush")

    async def flush(self) -> None:
        """Run every pending task in order.

        A failing task does not stop its successors. Once the queue is empty
        a DeferredTaskError listing the failures is raised, chained to the
        first of them.
        """
        async with self._flush_lock:
            failures: List[Tuple[str, BaseException]] = []

            while self._pending:
                task = self._pending.pop(0)
                try:
                    await task.run()
                    self.logger.debug("Completed %s", task.name)
                except Exception as exc:
                    self.logger.error("Deferred task %s failed: %s", task.name, exc, exc_info=True)
                    failures.append((task.name, exc))
                    self._apply_error_policy(task, exc)

            if failures:
                raise DeferredTaskError(failures) from failures[0][1]

    def _apply_error_policy(self, task: DeferredTask, exc: BaseException) -> None:
        if self._error_policy is None:
            return
        try:
            self._error_policy(task, exc)
        except Exception:
            self.logger.exception("Error policy raised while handling %s", task.name)

    async def drain(self) -> None:
        """Wait for every flush scheduled so far to finish."""
        while self._flush_scheduled or self._flushes:
            if self._flushes:
                await self._flushes.wait()
            else:
                await asyncio.sleep(0)
