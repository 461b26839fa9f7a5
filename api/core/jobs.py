"""
Periodic background jobs started from the app lifespan.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicJob:
    """
    Run `func` every `interval_s` seconds on the event loop until stopped.

    A failing run is logged and the loop keeps going.
    """

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[Any]],
        *,
        interval_s: float,
        run_immediately: bool = False,
    ) -> None:
        self.name = name
        self.func = func
        self.interval_s = max(0.0, float(interval_s))
        self.run_immediately = run_immediately
        self.runs = 0
        self.failures = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Any:
        self.runs += 1
        try:
            result = await self.func()
        except Exception:
            self.failures += 1
            logger.exception("job_failed name=%s", self.name)
            return None
        logger.info("job_completed name=%s result=%s", self.name, result)
        return result

    async def _loop(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval_s)
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_s)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"job:{self.name}")
        logger.info("job_started name=%s interval_s=%s", self.name, self.interval_s)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("job_stopped name=%s", self.name)
