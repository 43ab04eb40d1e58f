# infrastructure/transport/rate_limiter.py
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from pyrate_limiter import Duration, Limiter, Rate

POLL_INTERVAL_SEC = 0.025


class RateLimiter:
    """
    Paces one direction of a stream to `bytes_per_second`.

    Every transferred byte is one unit of weight in a pyrate-limiter bucket
    holding one second worth of data. A transfer that does not fit yet
    waits on the event loop until the window has room. Data is never
    dropped.
    """

    def __init__(
        self,
        bytes_per_second: int,
        name: str = "stream",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        poll_interval: float = POLL_INTERVAL_SEC,
    ):
        if bytes_per_second <= 0:
            raise ValueError("bytes_per_second must be positive")
        self.bytes_per_second = bytes_per_second
        self._name = name
        self._sleep = sleep
        self._poll_interval = poll_interval
        self._limiter = Limiter(
            Rate(bytes_per_second, int(Duration.SECOND)),
            raise_when_fail=False,
            max_delay=None,
        )

    def max_chunk(self, wanted: int) -> int:
        """At most one second worth of data per transfer, so a weight always fits the bucket."""
        return max(1, min(wanted, self.bytes_per_second))

    async def pace(self, nbytes: int) -> None:
        while nbytes > 0:
            weight = self.max_chunk(nbytes)
            # try_acquire never blocks here; waiting happens on the loop
            while not self._limiter.try_acquire(self._name, weight=weight):
                await self._sleep(self._poll_interval)
            nbytes -= weight
