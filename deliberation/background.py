"""Background task runner

Detached asyncio tasks for work the caller must never wait on or fail
because of (recompute checks on the response write path). Each task is held
by strong reference until done, and its failure is logged and counted on
its own channel; nothing is re-raised to the submitter.
"""

import asyncio
from typing import Any, Coroutine, Optional, Set

from config import get_logger
from deliberation.protocols import MetricsCollector, NullMetrics

logger = get_logger(__name__).bind(component="background")


class BackgroundTaskRunner:
    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.metrics = metrics or NullMetrics()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Schedule coro on the running loop and return immediately"""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            logger.debug("background task cancelled", task=task.get_name())
            self.metrics.background_tasks.labels(status="cancelled").inc()
            return

        error = task.exception()
        if error is not None:
            logger.error(
                "background task failed",
                task=task.get_name(),
                error=str(error),
                error_type=type(error).__name__,
            )
            self.metrics.background_tasks.labels(status="error").inc()
            self.metrics.record_error("background", error)
            return

        self.metrics.background_tasks.labels(status="success").inc()

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for outstanding tasks, including ones they submit while draining"""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                # Let done callbacks of just-finished tasks run
                await asyncio.sleep(0)
                return
            _, not_done = await asyncio.wait(pending, timeout=timeout)
            if not_done:
                logger.warning("background tasks still running after drain timeout", pending=len(not_done))
                return

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
