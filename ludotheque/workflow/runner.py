"""
Process-wide single-concurrency task runner.

Every unit of work that talks to the lookup service goes through one
runner, whichever partition submitted it. At most one task executes at a
time and a fixed delay separates consecutive tasks.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Optional

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[Any]]


@dataclass
class _PendingTask:
    factory: TaskFactory
    future: asyncio.Future
    label: str = ''
    keep_on_clear: bool = False


class TaskRunner:
    """
    FIFO runner executing one coroutine at a time.

    submit() returns a future resolved with the task's result or exception.
    clear() discards every task not yet started, except those submitted
    with keep_on_clear; the futures of discarded tasks are cancelled so
    awaiting callers always wake up.

    Example:
        runner = TaskRunner(task_delay=1.0)
        future = runner.submit(lambda: process(rom), label=rom)
        result = await future
    """

    def __init__(self, task_delay: float = 1.0):
        """
        Args:
            task_delay: Seconds to wait after each task before the next one
        """
        self.task_delay = task_delay
        self._pending: Deque[_PendingTask] = deque()
        self._wakeup = asyncio.Event()
        self._worker: Optional[asyncio.Task] = None
        self._active = False
        self.completed = 0
        self.discarded = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def busy(self) -> bool:
        """True while a task is executing or waiting to execute."""
        return self._active or bool(self._pending)

    def submit(self, factory: TaskFactory, label: str = '', keep_on_clear: bool = False) -> asyncio.Future:
        """
        Queue a unit of work.

        Args:
            factory: Zero-argument callable returning an awaitable
            label: Name used in log messages
            keep_on_clear: Survive clear(), for housekeeping that must run
                after whatever task is executing

        Returns:
            Future for the task outcome
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending.append(_PendingTask(factory, future, label, keep_on_clear))
        self._wakeup.set()
        self._ensure_worker()
        return future

    def clear(self) -> int:
        """
        Discard queued tasks without running them.

        The task currently executing (if any) is left to finish, and tasks
        submitted with keep_on_clear stay queued.

        Returns:
            Number of tasks discarded
        """
        count = 0
        kept: Deque[_PendingTask] = deque()
        while self._pending:
            task = self._pending.popleft()
            if task.keep_on_clear:
                kept.append(task)
                continue
            if not task.future.done():
                task.future.cancel()
            count += 1
        self._pending.extend(kept)
        self.discarded += count
        if count:
            logger.info(f"Discarded {count} queued task(s)")
        return count

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            if not self._pending:
                self._wakeup.clear()
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=30.0)
                except asyncio.TimeoutError:
                    if not self._pending:
                        return
                continue

            task = self._pending.popleft()
            if task.future.done():
                continue

            self._active = True
            try:
                result = await task.factory()
            except asyncio.CancelledError:
                task.future.cancel()
                raise
            except Exception as e:
                logger.debug(f"Task {task.label or '?'} failed: {e}")
                if not task.future.done():
                    task.future.set_exception(e)
            else:
                if not task.future.done():
                    task.future.set_result(result)
            finally:
                self._active = False
                self.completed += 1

            if self.task_delay > 0:
                await asyncio.sleep(self.task_delay)

    async def shutdown(self) -> None:
        """Discard all queued work and stop the worker task."""
        self.clear()
        while self._pending:
            self._pending.popleft().future.cancel()
        if self._worker and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                logger.debug("Task runner worker stopped")
        self._worker = None
