"""
In-process TTL cache (the first tier in front of Redis).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

DEFAULT_MAX_SIZE = 500


@dataclass
class _Entry:
    value: Any
    expires_at: float


class LocalCache:
    """
    Dict-backed cache with per-entry expiry.

    When full, the oldest inserted entry is evicted (insertion order, reads do
    not refresh position).
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_size = max(1, int(max_size))
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if key in self._entries:
            # Re-inserting moves the key to the back of the eviction order.
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + float(ttl_seconds))

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def delete_prefix(self, pattern: str) -> int:
        prefix = pattern.replace("*", "")
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)
