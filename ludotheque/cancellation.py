"""Cooperative cancellation for sync batches."""

import asyncio


class SyncCancelled(Exception):
    """Raised by a task that observes a cancelled token."""
    pass


class CancellationToken:
    """
    Stop flag shared by every task of one sync batch.

    Cancellation never interrupts an awaited call; tasks check the token
    before each expensive step (API query, hashing, download).

    Example:
        token = CancellationToken()
        ...
        token.raise_if_cancelled()
        result = await resolver.resolve(...)
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason = ''

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = 'Stop requested') -> None:
        """Mark the token cancelled. Idempotent."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise SyncCancelled if cancel() has been called."""
        if self._event.is_set():
            raise SyncCancelled(self.reason)

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()
