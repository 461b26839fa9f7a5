"""
In-flight request deduplication.

Concurrent callers asking for the same key share a single underlying call.
The entry is dropped once the call settles, so the next caller after that
starts a fresh request.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


class RequestDeduplicator:
    def __init__(self) -> None:
        self._in_flight: dict[Hashable, asyncio.Future] = {}

    def in_flight(self) -> int:
        return len(self._in_flight)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._in_flight

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        existing = self._in_flight.get(key)
        if existing is not None:
            logger.debug("dedup_join key=%s", key)
            # shield: one waiter being cancelled must not cancel the shared call.
            return await asyncio.shield(existing)

        task = asyncio.ensure_future(factory())
        self._in_flight[key] = task
        task.add_done_callback(lambda _: self._forget(key, task))
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Future) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # Mark the exception retrieved when every waiter went away.
            task.exception()

    def clear(self) -> None:
        self._in_flight.clear()
