from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs ``refresh`` immediately and then every ``interval`` seconds.

    Each refresh is its own task, so a slow network round trip never delays
    the next tick. Failures are logged and the loop keeps going.
    """

    def __init__(self, refresh: Callable[[], Awaitable[object]], interval: float) -> None:
        self.refresh = refresh
        self.interval = interval
        self._tasks: Set[asyncio.Task] = set()

    async def _guarded_refresh(self) -> None:
        try:
            await self.refresh()
        except Exception:
            logger.exception("Refresh raised; will retry on the next tick")

    def _start_refresh(self) -> None:
        task = asyncio.create_task(self._guarded_refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run(self, iterations: Optional[int] = None) -> None:
        logger.info("Refreshing every %.1f seconds", self.interval)
        ticks = 0
        while True:
            self._start_refresh()
            ticks += 1
            if iterations is not None and ticks >= iterations:
                break
            await asyncio.sleep(self.interval)

        if self._tasks:
            await asyncio.gather(*list(self._tasks))
