"""Periodic remaining-time ticker for the current print."""

import asyncio
import inspect
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from time_utils import remaining_duration

logger = logging.getLogger(__name__)


class RemainingTimeTicker:
    """Recompute the current print's remaining time every ``interval`` seconds.

    ``get_end_time`` is read on every tick, so the ticker always sees the latest
    state. When it returns None (current print cleared) the ticker stops on its
    own; ``stop()`` cancels it explicitly.
    """

    def __init__(
        self,
        get_end_time: Callable[[], Optional[datetime]],
        on_tick: Callable[[str], Any],
        interval: float = 1.0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.get_end_time = get_end_time
        self.on_tick = on_tick
        self.interval = interval
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking; no-op if already running. Needs a running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Remaining-time ticker started")

    async def stop(self) -> None:
        """Cancel the ticker and wait for it to finish."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            # Stopped from inside a tick callback; _run exits once the callback returns
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Remaining-time ticker stopped")

    async def tick(self) -> Optional[str]:
        """Run one tick; returns the remaining text, or None when nothing is running."""
        end_time = self.get_end_time()
        if end_time is None:
            return None
        text = remaining_duration(end_time, self.clock())
        try:
            result = self.on_tick(text)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.exception("Ticker callback failed: %s", e)
        return text

    async def _run(self) -> None:
        while True:
            if await self.tick() is None:
                logger.debug("No current print, ticker exiting")
                return
            if self._task is not asyncio.current_task():
                logger.debug("Remaining-time ticker stopped from a callback")
                return
            await asyncio.sleep(self.interval)
