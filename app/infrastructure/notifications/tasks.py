"""Tracking of fire-and-forget dispatch tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class DispatchTaskTracker:
    """Spawn background dispatches on the running loop and keep track of them.

    Concurrency is capped by a semaphore; :meth:`drain` waits for every task
    still pending, which is what the application does on shutdown.
    """

    def __init__(self, max_concurrency: int = 50) -> None:
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        function: Callable[..., Awaitable[Any]],
        *args: Any,
        name: str | None = None,
    ) -> asyncio.Task[Any]:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(function, *args), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, function: Callable[..., Awaitable[Any]], *args: Any) -> None:
        async with self._semaphore:
            try:
                await function(*args)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Background dispatch task failed")

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


async def run_periodically(
    name: str, interval_seconds: float, function: Callable[[], Awaitable[Any]]
) -> None:
    """Await ``function`` every ``interval_seconds`` until cancelled."""

    logger.info("Starting periodic job %s every %ss", name, interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await function()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Periodic job %s failed", name)


__all__ = ["DispatchTaskTracker", "run_periodically"]
