"""FIFO async semaphore used to cap simultaneous storage operations."""

import asyncio
import math
from collections import deque
from typing import Awaitable, Callable, TypeVar

from file_manager.exceptions import ConfigurationError

T = TypeVar("T")


def coerce_max(value) -> int:
    """Validate a gate bound: a finite number >= 1, floats floored, bools rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError("AsyncSemaphore max must be a positive number.")
    if not math.isfinite(value) or value < 1:
        raise ConfigurationError("AsyncSemaphore max must be a positive number.")
    return int(math.floor(value))


class AsyncSemaphore:
    """
    Admit at most `max` tasks at a time through run().

    Waiters are resumed strictly in arrival order; a released slot is handed
    directly to the oldest waiter instead of going back to the pool, so a
    late caller can never overtake a queued one.
    """

    def __init__(self, max: int) -> None:
        self._max = coerce_max(max)
        self._available = self._max
        self._waiters: deque[asyncio.Future] = deque()

    @property
    def max(self) -> int:
        return self._max

    @property
    def available(self) -> int:
        return self._available

    @property
    def waiting(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        await self.acquire()
        try:
            return await task()
        finally:
            self.release()

    async def acquire(self) -> None:
        # Cancelled or served waiters are always removed from the deque
        if self._available > 0 and not self._waiters:
            self._available -= 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was already handed over; pass it on.
                self.release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        if self._available < self._max:
            self._available += 1
