"""Timer-driven re-analysis.

The host editor does not push results anywhere; instead a refresher calls the
analysis on a fixed cadence. A single in-flight flag keeps passes from
overlapping: a tick that arrives while a pass is still running is skipped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class AutoRefresher:
    """Runs an async analysis callback every ``interval`` seconds."""

    def __init__(self, run: Callable[[], Awaitable[Any]], interval: float = 30.0) -> None:
        self._run = run
        self.interval = interval
        self._in_flight = False
        self._task: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def trigger(self) -> bool:
        """Run one pass unless one is already in flight.

        Returns:
            True if a pass ran, False if it was skipped
        """
        if self._in_flight:
            logger.debug("analysis already in progress, skipping refresh")
            return False
        self._in_flight = True
        try:
            await self._run()
        except Exception:
            logger.warning("scheduled analysis failed", exc_info=True)
        finally:
            self._in_flight = False
        return True

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.trigger()

    def start(self) -> None:
        """Start ticking on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
