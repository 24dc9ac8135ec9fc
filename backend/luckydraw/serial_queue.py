# luckydraw/serial_queue.py
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _log_orphaned_failure(task: asyncio.Task) -> None:
    # only reached for failures nobody awaited: the caller was cancelled
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Queued task failed after its caller went away", exc_info=exc)


class SerialQueue:
    """Run async tasks strictly one after another, in arrival order.

    asyncio.Lock wakes waiters first-in first-out, so task N+1 starts only
    after task N has returned or raised. A failing task does not block the
    ones queued behind it. Cancelling the caller does not cancel the task:
    once queued it runs to completion.
    """

    def __init__(self):
        self._lock = asyncio.Lock()

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        inner = asyncio.ensure_future(self._run_locked(task))
        try:
            return await asyncio.shield(inner)
        except asyncio.CancelledError:
            if not inner.done():
                inner.add_done_callback(_log_orphaned_failure)
            raise

    async def _run_locked(self, task: Callable[[], Awaitable[T]]) -> T:
        async with self._lock:
            return await task()
