"""
Query cache with staleness, garbage collection, retries and invalidation.

This is the server-side counterpart of the browser query-cache setup: each
query key (a tuple such as `("messages", user_id)`) maps to the last fetched
data, when it was fetched, and whether it has been invalidated since.

- Fresh data (younger than `stale_time`) is served without calling the fetcher.
- Stale or missing data is refetched; concurrent refetches for the same key
  share one call through `RequestDeduplicator`.
- Fetch failures are retried `retry` times with exponential backoff.
- Entries not read for longer than `gc_time` are dropped by `collect_garbage`,
  which `fetch` also runs at most once per `GC_INTERVAL`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

from .dedup import RequestDeduplicator

logger = logging.getLogger(__name__)

QueryKey = tuple

DEFAULT_STALE_TIME = 0.0
DEFAULT_GC_TIME = 5 * 60.0
DEFAULT_RETRY = 3
MAX_RETRY_DELAY = 30.0
GC_INTERVAL = 60.0


def default_retry_delay(attempt: int) -> float:
    return min(1.0 * (2**attempt), MAX_RETRY_DELAY)


def _normalize_key(key: Iterable[Any] | str) -> QueryKey:
    if isinstance(key, str):
        return (key,)
    return tuple(key)


@dataclass
class QueryState:
    data: Any = None
    updated_at: float = 0.0
    last_used_at: float = 0.0
    invalidated: bool = False
    has_data: bool = False
    error: BaseException | None = None
    fetch_count: int = 0
    gc_time: float = DEFAULT_GC_TIME
    generation: int = 0

    def is_stale(self, stale_time: float, now: float) -> bool:
        if not self.has_data or self.invalidated:
            return True
        return (now - self.updated_at) >= stale_time


class QueryClient:
    def __init__(
        self,
        *,
        stale_time: float = DEFAULT_STALE_TIME,
        gc_time: float = DEFAULT_GC_TIME,
        retry: int = DEFAULT_RETRY,
        retry_delay: Callable[[int], float] = default_retry_delay,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.stale_time = stale_time
        self.gc_time = gc_time
        self.retry = retry
        self.retry_delay = retry_delay
        self._clock = clock
        self._sleep = sleep
        self._queries: dict[QueryKey, QueryState] = {}
        self._dedup = RequestDeduplicator()
        self._last_gc_at = clock()

    def __len__(self) -> int:
        return len(self._queries)

    def state(self, key: Iterable[Any] | str) -> QueryState | None:
        return self._queries.get(_normalize_key(key))

    def get_data(self, key: Iterable[Any] | str) -> Any:
        state = self._queries.get(_normalize_key(key))
        return state.data if state is not None and state.has_data else None

    def set_data(self, key: Iterable[Any] | str, data: Any, *, gc_time: float | None = None) -> None:
        qkey = _normalize_key(key)
        now = self._clock()
        state = self._queries.setdefault(qkey, QueryState(gc_time=self.gc_time if gc_time is None else gc_time))
        state.data = data
        state.has_data = True
        state.updated_at = now
        state.last_used_at = now
        state.invalidated = False
        state.error = None

    async def fetch(
        self,
        key: Iterable[Any] | str,
        fetcher: Callable[[], Awaitable[Any]],
        *,
        stale_time: float | None = None,
        gc_time: float | None = None,
        retry: int | None = None,
    ) -> Any:
        qkey = _normalize_key(key)
        stale_time = self.stale_time if stale_time is None else stale_time
        now = self._clock()
        if (now - self._last_gc_at) >= min(self.gc_time, GC_INTERVAL):
            self.collect_garbage()

        state = self._queries.get(qkey)
        if state is None:
            state = QueryState(gc_time=self.gc_time if gc_time is None else gc_time)
            self._queries[qkey] = state
        elif gc_time is not None:
            state.gc_time = gc_time
        state.last_used_at = now

        if not state.is_stale(stale_time, now):
            return state.data

        return await self._dedup.run(qkey, lambda: self._fetch_with_retry(qkey, fetcher, retry))

    async def _fetch_with_retry(
        self,
        qkey: QueryKey,
        fetcher: Callable[[], Awaitable[Any]],
        retry: int | None,
    ) -> Any:
        retries = self.retry if retry is None else retry
        attempt = 0
        started = self._queries.get(qkey)
        generation = started.generation if started is not None else 0
        while True:
            try:
                data = await fetcher()
            except Exception as exc:
                if attempt >= retries:
                    state = self._queries.get(qkey)
                    if state is not None:
                        state.error = exc
                    logger.warning("query_failed key=%s attempts=%s error=%s", qkey, attempt + 1, exc)
                    raise
                delay = self.retry_delay(attempt)
                attempt += 1
                logger.debug("query_retry key=%s attempt=%s delay=%s", qkey, attempt, delay)
                await self._sleep(delay)
                continue

            state = self._queries.get(qkey)
            if state is not None:
                state.fetch_count += 1
            self.set_data(qkey, data)
            if state is not None and state.generation != generation:
                # invalidated while this fetch was in flight
                state.invalidated = True
            return data

    def invalidate(self, prefix: Iterable[Any] | str = ()) -> int:
        """
        Mark every query whose key starts with `prefix` as stale.
        An empty prefix invalidates everything.
        """
        qprefix = _normalize_key(prefix)
        count = 0
        for qkey, state in self._queries.items():
            if qkey[: len(qprefix)] == qprefix:
                state.invalidated = True
                state.generation += 1
                count += 1
        if count:
            logger.debug("queries_invalidated prefix=%s count=%s", qprefix, count)
        return count

    def remove(self, key: Iterable[Any] | str) -> bool:
        return self._queries.pop(_normalize_key(key), None) is not None

    def collect_garbage(self) -> int:
        now = self._clock()
        self._last_gc_at = now
        expired = [
            qkey
            for qkey, state in self._queries.items()
            if (now - state.last_used_at) >= state.gc_time and not self._dedup.is_pending(qkey)
        ]
        for qkey in expired:
            del self._queries[qkey]
        return len(expired)

    def clear(self) -> None:
        self._queries.clear()
        self._dedup.clear()


def bind_invalidations(hub: Any, client: QueryClient, mapping: dict[str, list[Iterable[Any] | str]]) -> Callable[[], None]:
    """
    Invalidate query prefixes whenever an event is published on a channel.

    `mapping` is channel -> list of key prefixes. Returns an unbind callable.
    """

    def _listener(event: dict[str, Any]) -> None:
        for prefix in mapping.get(event.get("channel", ""), []):
            client.invalidate(prefix)

    unbinds = [hub.add_listener(channel, _listener) for channel in mapping]

    def _unbind() -> None:
        for unbind in unbinds:
            unbind()

    return _unbind


_client: QueryClient | None = None


def get_query_client() -> QueryClient:
    global _client
    if _client is None:
        _client = QueryClient()
    return _client


def set_query_client(client: QueryClient | None) -> None:
    global _client
    _client = client
