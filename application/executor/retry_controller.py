# application/executor/retry_controller.py
from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from application.ports.logger import LoggerPort
from domain.config import RetryPolicy
from domain.exceptions import ConnectFailed, OperationCancelled, TransportError

TRANSIENT_STATUSES = frozenset({408, 429, 500, 502, 503, 504})
INITIAL_BACKOFF_SEC = 1.0
MAX_BACKOFF_SEC = 600.0


def is_transient(status: int) -> bool:
    return status in TRANSIENT_STATUSES


@dataclass
class RetryState:
    remaining: int
    deadline: float
    backoff: float = INITIAL_BACKOFF_SEC


class RetryController:
    """
    Re-runs a whole operation on transient statuses and retryable transport
    errors, waiting a fixed or doubling delay in between. Everything else
    reaches the caller unchanged.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        logger: LoggerPort,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._policy = policy
        self._logger = logger
        self._sleep = sleep
        self._clock = clock

    def new_state(self) -> RetryState:
        max_time = self._policy.max_time_sec
        deadline = self._clock() + max_time if max_time is not None else math.inf
        return RetryState(remaining=self._policy.retries, deadline=deadline)

    def can_retry(self, state: RetryState, error: Optional[TransportError] = None) -> bool:
        if state.remaining <= 0 or state.deadline < self._clock():
            return False
        if self._policy.all_errors:
            return True
        if error is None:
            return True
        if isinstance(error, OperationCancelled):
            return True
        if self._policy.connrefused and isinstance(error, ConnectFailed) and error.category == "refused":
            return True
        return False

    def next_delay(self, state: RetryState) -> float:
        if self._policy.delay_sec is not None:
            return self._policy.delay_sec
        if state.backoff < MAX_BACKOFF_SEC:
            state.backoff = min(state.backoff * 2, MAX_BACKOFF_SEC)
        return state.backoff

    async def run(self, operation: Callable[[], Awaitable[int]]) -> int:
        state = self.new_state()
        attempt = 1
        while True:
            try:
                status = await operation()
                if not is_transient(status) or not self.can_retry(state):
                    return status
                self._logger.warning("retry.transient_status", status=status, attempt=attempt)
            except TransportError as e:
                if not self.can_retry(state, e):
                    raise
                self._logger.warning("retry.transport_error", error=str(e), attempt=attempt)

            delay = self.next_delay(state)
            state.remaining -= 1
            self._logger.warning(
                "retry.scheduled",
                delay_sec=delay,
                retries_left=state.remaining,
            )
            attempt += 1
            await self._sleep(delay)
