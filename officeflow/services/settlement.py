"""Timed settlement - keyed background tasks for simulated worker effort."""

import asyncio
import random
from typing import Awaitable, Callable, Dict, Optional

from ..utils.logger import get_app_logger


class SettlementScheduler:
    """
    Runs one background coroutine per key (conversation id).

    Scheduling a key that is still pending is a no-op, so a conversation
    never has two settlements racing. The coroutine itself is expected to
    re-check conversation state before applying anything.
    """

    def __init__(self, min_seconds: float = 5.0, max_seconds: float = 15.0, rng: Optional[random.Random] = None):
        if min_seconds < 0 or max_seconds < min_seconds:
            raise ValueError(f"Invalid settlement window: [{min_seconds}, {max_seconds}]")
        self.min_seconds = min_seconds
        self.max_seconds = max_seconds
        self._rng = rng or random.Random()
        self._tasks: Dict[str, asyncio.Task] = {}
        self.logger = get_app_logger("settlement")

    def delay(self) -> float:
        """Uniform random duration within the window."""
        return self._rng.uniform(self.min_seconds, self.max_seconds)

    def is_pending(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def schedule(self, key: str, factory: Callable[[], Awaitable[None]]) -> asyncio.Task:
        existing = self._tasks.get(key)
        if existing is not None and not existing.done():
            return existing

        task = asyncio.get_running_loop().create_task(factory(), name=f"settle-{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda t, k=key: self._finished(k, t))
        return task

    async def cancel(self, key: str) -> bool:
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        return True

    async def drain(self) -> None:
        """Wait until nothing is pending, including tasks scheduled meanwhile."""
        while True:
            pending = [t for t in self._tasks.values() if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def shutdown(self) -> None:
        for key in list(self._tasks):
            await self.cancel(key)
        self.logger.info("Settlement scheduler stopped")

    def _finished(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if task.cancelled():
            self.logger.debug(f"Settlement cancelled: {key}")
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Settlement failed for {key}: {error!r}")
