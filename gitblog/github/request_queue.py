"""Serialized, paced dispatch of outbound API requests."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PacedRequestQueue:
    """Run submitted calls one at a time, in submission order, spaced apart.

    ``asyncio.Lock`` wakes waiters first-in first-out and does not let a new
    caller jump ahead of queued waiters, so the lock itself is the queue.
    Spacing is measured from the previous call's dispatch time. A call that
    raises releases the lock like any other, so later calls still run.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_dispatch: float | None = None

    async def submit(self, call: Callable[[], Awaitable[T]]) -> T:
        """Wait for this call's turn, then run it and return its result."""
        async with self._lock:
            if self._last_dispatch is not None:
                wait = self._last_dispatch + self.min_interval - self._clock()
                if wait > 0:
                    logger.debug("Pacing outbound request for %.3fs", wait)
                    await self._sleep(wait)
            self._last_dispatch = self._clock()
            return await call()
