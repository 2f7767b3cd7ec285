"""
Background task runner for fire-and-forget work.

Submitted coroutines run on the event loop, decoupled from the caller: the
caller never awaits them and their failures only reach the log.
"""
from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional

from crm_shared.infrastructure.observability.logger import get_logger

logger = get_logger("background")


class BackgroundTaskRunner:
    """
    Bounded pool of asyncio tasks.

    Attributes:
        name: Label used in log entries
        max_concurrency: How many submitted coroutines may run at once
    """

    def __init__(self, name: str = "background", *, max_concurrency: int = 10) -> None:
        self.name = name
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], *, name: Optional[str] = None) -> asyncio.Task:
        """Schedule `coro` and return immediately."""
        task = asyncio.create_task(self._run(coro, name or "task"), name=f"{self.name}:{name or 'task'}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        async with self._semaphore:
            try:
                await coro
            except asyncio.CancelledError:
                logger.warning("Background task cancelled", runner=self.name, task=name)
                raise
            except Exception as e:
                logger.error(
                    "Background task failed",
                    runner=self.name,
                    task=name,
                    error=str(e),
                    exc_info=True,
                )
            else:
                logger.debug("Background task finished", runner=self.name, task=name)

    async def drain(self) -> None:
        """Wait for every task submitted so far (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
