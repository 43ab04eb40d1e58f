# application/executor/fetch_executor.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List

from application.executor.request_orchestrator import RequestOrchestrator
from application.executor.retry_controller import RetryController
from application.services.execution_deps import OperationDeps
from domain.config import OperationConfig, RequestInfo


@dataclass(frozen=True)
class ExecutionResult:
    statuses: List[int]


class FetchExecutor:
    """
    Runs every URL of one invocation, each wrapped in its own retry
    controller. With `parallel` the operations are separate tasks, each
    owning its own connection.
    """

    def __init__(
        self,
        config: OperationConfig,
        deps: OperationDeps,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._config = config
        self._deps = deps
        self._sleep = sleep

    async def execute(self) -> ExecutionResult:
        requests = self._config.requests
        if self._config.parallel and len(requests) > 1:
            try:
                async with asyncio.TaskGroup() as group:
                    tasks = [group.create_task(self._run_one(i, info)) for i, info in enumerate(requests)]
            except BaseExceptionGroup as eg:
                # first failure wins, the sibling tasks were cancelled
                raise eg.exceptions[0] from None
            return ExecutionResult(statuses=[t.result() for t in tasks])

        statuses = []
        for i, info in enumerate(requests):
            statuses.append(await self._run_one(i, info))
        return ExecutionResult(statuses=statuses)

    async def _run_one(self, index: int, info: RequestInfo) -> int:
        deps = self._deps.with_logger(self._deps.logger.bind(op=index))
        orchestrator = RequestOrchestrator(self._config, deps)
        retry = RetryController(self._config.retry, deps.logger, sleep=self._sleep)
        return await retry.run(lambda: orchestrator.run(info))
