"""
Partition-level sync scheduler.

One partition runs at a time. Further requests wait in a FIFO queue and
start after a short debounce once the running batch finishes. The
scheduler also owns the status projection read by clients: running
partition, queue, recent log lines and progress.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Tuple

from ludotheque.cancellation import CancellationToken, SyncCancelled

from .options import SyncOptions
from .runner import TaskRunner

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """Scheduler lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class SyncProgress:
    """Completed and total work items of the running batch."""
    current: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {'current': self.current, 'total': self.total}


@dataclass
class PendingSync:
    """A queued partition sync request."""
    system: str
    options: SyncOptions


BatchFunction = Callable[[str, SyncOptions, CancellationToken, 'SyncScheduler'], Awaitable[Any]]


class SyncScheduler:
    """
    Serialises partition syncs and tracks their status.

    The batch function does the actual work. It receives the partition,
    the options, a cancellation token and the scheduler itself, which it
    uses to report log lines and progress.

    Example:
        scheduler = SyncScheduler(runner, engine.run_batch)
        accepted, message = scheduler.enqueue('nes', SyncOptions.bulk())
        await scheduler.wait_idle()
    """

    def __init__(
        self,
        runner: TaskRunner,
        batch: BatchFunction,
        restart_delay: float = 2.0,
        stop_grace: float = 3.0,
        log_capacity: int = 100
    ):
        """
        Args:
            runner: Process-wide task runner, drained on stop()
            batch: Coroutine function running one partition sync
            restart_delay: Pause before the next queued partition starts
            stop_grace: Pause after stop() before returning to idle
            log_capacity: Number of log lines kept for status()
        """
        self.runner = runner
        self._batch = batch
        self.restart_delay = restart_delay
        self.stop_grace = stop_grace

        self.state = SchedulerState.IDLE
        self.running_system: Optional[str] = None
        self.pending: Deque[PendingSync] = deque()
        self.logs: Deque[str] = deque(maxlen=log_capacity)
        self.progress = SyncProgress()
        self.token = CancellationToken()

        self._driver: Optional[asyncio.Task] = None
        self._grace: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()

    # Status

    @property
    def is_syncing(self) -> bool:
        return self.running_system is not None

    def is_active(self, system: str) -> bool:
        """True when the partition is running or queued."""
        return system == self.running_system or any(p.system == system for p in self.pending)

    def log(self, system: str, message: str) -> None:
        """Record a progress line for status() and the application log."""
        stamp = datetime.now().strftime('%H:%M:%S')
        self.logs.append(f"[{stamp}] [{system}] {message}")
        logger.info(f"[{system}] {message}")

    def set_progress(self, current: int, total: Optional[int] = None) -> None:
        self.progress.current = current
        if total is not None:
            self.progress.total = total

    def status(self) -> Dict[str, Any]:
        """Snapshot of the scheduler for status endpoints."""
        return {
            'runningSystem': self.running_system,
            'pendingQueue': [p.system for p in self.pending],
            'logs': list(self.logs),
            'progress': self.progress.to_dict(),
            'isSyncing': self.is_syncing,
            'state': self.state.value,
        }

    async def wait_idle(self) -> None:
        """Block until no partition is running or queued."""
        await self._idle.wait()

    # Transitions

    def enqueue(self, system: str, options: SyncOptions) -> Tuple[bool, str]:
        """
        Request a sync of one partition.

        Returns:
            (accepted, message). A partition that is already running or
            queued is ignored, as is any request while a stop is pending.
        """
        if self.state is SchedulerState.STOPPING:
            return False, "Stop in progress, request ignored"

        if self.is_active(system):
            logger.debug(f"Ignoring sync request for {system}: already running or queued")
            return False, f"{system} is already running or queued"

        job = PendingSync(system, options)
        if self.state is SchedulerState.IDLE:
            self._start(job)
            return True, f"{system} sync started"

        self.pending.append(job)
        self.log(system, f"Queued (position {len(self.pending)})")
        return True, f"{system} queued at position {len(self.pending)}"

    def stop(self) -> bool:
        """
        Stop the running batch and drop everything queued.

        Tasks not yet dispatched are discarded; a task already executing
        finishes and its result is kept. The scheduler returns to idle
        after the grace period once the running batch has wound down.

        Returns:
            False if nothing was running
        """
        if self.state is not SchedulerState.RUNNING:
            return False

        self.state = SchedulerState.STOPPING
        dropped = len(self.pending)
        self.pending.clear()
        self.token.cancel('Stop requested')
        self.runner.clear()
        if self.running_system:
            self.log(self.running_system, f"Stopping sync ({dropped} queued partition(s) dropped)")
        self._grace = asyncio.create_task(self._finish_stop())
        return True

    def _start(self, job: PendingSync) -> None:
        self.state = SchedulerState.RUNNING
        self.running_system = job.system
        self._idle.clear()
        self._driver = asyncio.create_task(self._drive(job))

    async def _drive(self, job: PendingSync) -> None:
        current: Optional[PendingSync] = job
        while current is not None:
            await self._run_batch(current)

            if self.state is not SchedulerState.RUNNING or not self.pending:
                break

            current = self.pending.popleft()
            self.running_system = current.system
            self.progress = SyncProgress()
            await asyncio.sleep(self.restart_delay)
            if self.state is not SchedulerState.RUNNING:
                break

        if self.state is SchedulerState.RUNNING:
            self._reset()

    async def _run_batch(self, job: PendingSync) -> None:
        self.token = CancellationToken()
        self.progress = SyncProgress()
        try:
            await self._batch(job.system, job.options, self.token, self)
        except SyncCancelled:
            self.log(job.system, "Sync stopped by user")
        except Exception as e:
            logger.error(f"Sync of {job.system} aborted: {e}", exc_info=True)
            self.log(job.system, f"Sync aborted: {e}")

    async def _finish_stop(self) -> None:
        await asyncio.sleep(self.stop_grace)
        if self._driver is not None and not self._driver.done():
            await asyncio.wait({self._driver})
        if self.state is SchedulerState.STOPPING:
            self._reset()
            logger.info("Scheduler idle after stop")

    def _reset(self) -> None:
        self.state = SchedulerState.IDLE
        self.running_system = None
        self.pending.clear()
        self._idle.set()

    async def shutdown(self) -> None:
        """Stop any activity and wait for background tasks to end."""
        self.stop()
        for task in (self._driver, self._grace):
            if task is not None and not task.done():
                await asyncio.wait({task})
