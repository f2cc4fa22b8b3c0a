"""Strictly ordered queue for requests against one remote run."""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

log = logging.getLogger(__name__)

type Operation[T] = Callable[[], Awaitable[T]]
type ErrorHandler = Callable[[Exception], None]


def log_error(exc: Exception) -> None:
    """Default failure handler: log and carry on."""
    log.error("Queued operation failed: %s", exc, exc_info=exc)


@dataclass(frozen=True, kw_only=True)
class QueueTask[T]:
    """One unit of ordered work and the future its caller waits on."""

    operation: Operation[T]
    future: asyncio.Future[T | None]
    on_error: ErrorHandler


@dataclass(kw_only=True)
class RequestQueue:
    """Runs enqueued operations one at a time, in enqueue order.

    Each task has its own failure boundary: an operation that raises is handed
    to the task's error handler and its future resolves to ``None``, so a
    failing task never stops the ones queued behind it.

    An operation that is cancelled cancels its own future only. Cancelling the
    worker cancels the futures of every task that has not settled yet.
    """

    _tasks: deque[QueueTask[Any]] = field(default_factory=deque, init=False)
    _worker: asyncio.Task[None] | None = field(default=None, init=False)
    _unsettled: int = field(default=0, init=False)

    @property
    def pending(self) -> int:
        """Number of tasks that have not settled yet."""
        return self._unsettled

    def enqueue[T](
        self,
        operation: Operation[T],
        *,
        on_error: ErrorHandler | None = None,
    ) -> asyncio.Future[T | None]:
        """Append an operation to the queue.

        Must be called from within a running event loop.

        Args:
            operation: Coroutine function run once all earlier tasks settled
            on_error: Called with the exception if the operation raises

        Returns:
            Future resolving to the operation's result, or None if it failed

        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T | None] = loop.create_future()
        self._tasks.append(
            QueueTask(operation=operation, future=future, on_error=on_error or log_error)
        )
        self._unsettled += 1

        if self._worker is None:
            self._worker = loop.create_task(self._drain())

        return future

    async def join(self) -> None:
        """Wait until every task enqueued so far has settled."""
        while self._worker is not None:
            await asyncio.wait({self._worker})

    async def _drain(self) -> None:
        worker = asyncio.current_task()
        try:
            while self._tasks:
                task = self._tasks.popleft()
                try:
                    result = await self._run(task)
                except BaseException as exc:
                    task.future.cancel()
                    # Only a cancelled operation is skipped, a cancelled worker stops
                    if isinstance(exc, asyncio.CancelledError) and not (
                        worker is not None and worker.cancelling()
                    ):
                        log.warning("Queued operation was cancelled")
                        continue
                    raise
                finally:
                    self._unsettled -= 1
                if not task.future.done():
                    task.future.set_result(result)
        finally:
            self._worker = None
            while self._tasks:
                self._tasks.popleft().future.cancel()
                self._unsettled -= 1

    async def _run[T](self, task: QueueTask[T]) -> T | None:
        try:
            return await task.operation()
        except Exception as exc:
            try:
                task.on_error(exc)
            except Exception:
                log.exception("Error handler failed for queued operation")
            return None
