"""
Paced request queue for outbound API calls.
"""

from __future__ import annotations
import asyncio
from collections import deque
from typing import Any, Awaitable, Callable, Optional, Set, Tuple, TypeVar

from tmail.logging import logger, LoggerLike

T = TypeVar("T")

TaskFn = Callable[[], Awaitable[Any]]


class AsyncRequestQueue:
    """
    Bounded-concurrency FIFO executor with pacing between tasks.

    At most ``max_concurrent`` tasks run at once. A finished task keeps its
    slot for ``delay_seconds`` so the next one cannot start right away, which
    keeps traffic from looking bursty. Each task's outcome goes only to the
    future returned by ``submit``.
    """

    def __init__(
        self,
        max_concurrent: int = 2,
        delay_seconds: float = 0.1,
        log: Optional[LoggerLike] = None,
    ):
        """
        Initialize the queue.

        Args:
            max_concurrent: Maximum number of tasks running simultaneously (default: 2)
            delay_seconds: Pause after each task settles before its slot frees (default: 0.1)
            log: Optional logger; defaults to the shared loguru logger
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be non-negative, got {delay_seconds}")
        self.max_concurrent = max_concurrent
        self.delay_seconds = delay_seconds
        self._log = log or logger
        self._pending: deque[Tuple[TaskFn, asyncio.Future]] = deque()
        self._running = 0
        self._workers: Set[asyncio.Task] = set()

    @property
    def running(self) -> int:
        """Number of occupied slots (including slots in their pacing delay)."""
        return self._running

    @property
    def pending(self) -> int:
        """Number of submitted tasks not yet started."""
        return len(self._pending)

    def submit(self, fn: Callable[[], Awaitable[T]]) -> "asyncio.Future[T]":
        """
        Enqueue a zero-argument coroutine function.

        Returns:
            Future settling with the function's result or exception
        """
        future = asyncio.get_running_loop().create_future()
        self._pending.append((fn, future))
        self._dispatch()
        return future

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Submit ``fn`` and wait for its outcome."""
        return await self.submit(fn)

    def _dispatch(self) -> None:
        while self._running < self.max_concurrent and self._pending:
            fn, future = self._pending.popleft()
            self._running += 1
            self._log.debug(f"Dispatching queued request ({self._running}/{self.max_concurrent} running, {len(self._pending)} waiting)")
            worker = asyncio.ensure_future(self._run_task(fn, future))
            self._workers.add(worker)
            worker.add_done_callback(self._workers.discard)

    async def _run_task(self, fn: TaskFn, future: asyncio.Future) -> None:
        try:
            result = await fn()
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as e:
            if not future.done():
                future.set_exception(e)
        else:
            if not future.done():
                future.set_result(result)
        finally:
            try:
                if self.delay_seconds > 0:
                    await asyncio.sleep(self.delay_seconds)
            finally:
                self._running -= 1
                self._dispatch()
