"""
File-backed key/value store that survives restarts.

Plays the role browser local storage plays for the web client: small JSON
values (view counters, last-seen snapshots) keyed by string, with an optional
TTL per key. The whole store lives in one JSON file and every write replaces
it atomically.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable

from core import config

logger = logging.getLogger(__name__)


def offline_store_path() -> Path:
    return Path(config.env_str("OFFLINE_STORE_PATH", ".data/offline-store.json"))


class OfflineStore:
    def __init__(self, path: str | Path | None = None, *, clock: Callable[[], float] = time.time) -> None:
        self.path = Path(path) if path is not None else offline_store_path()
        self._clock = clock
        self._data: dict[str, dict[str, Any]] = self._load()

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            # Corrupt or unreadable file: start over rather than fail reads.
            logger.warning("offline_store_reset path=%s error=%s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, dict) and "value" in v}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".offline-", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=True, default=str)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _expired(self, entry: dict[str, Any]) -> bool:
        expires_at = entry.get("expires_at")
        return expires_at is not None and self._clock() >= float(expires_at)

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._data.get(key)
        if entry is None:
            return default
        if self._expired(entry):
            del self._data[key]
            self._flush()
            return default
        return entry["value"]

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        entry: dict[str, Any] = {"value": value}
        if ttl_seconds is not None:
            entry["expires_at"] = self._clock() + float(ttl_seconds)
        self._data[key] = entry
        self._flush()

    def delete(self, key: str) -> bool:
        if self._data.pop(key, None) is None:
            return False
        self._flush()
        return True

    def keys(self, prefix: str = "") -> list[str]:
        return [key for key, entry in self._data.items() if key.startswith(prefix) and not self._expired(entry)]

    def clear(self) -> None:
        self._data = {}
        self._flush()
