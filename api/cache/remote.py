"""
Redis access over the Upstash REST API.

Each command is a JSON array POSTed to the database URL:
- POST <url> ["GET", "key"] -> {"result": "..."}
"""

from __future__ import annotations

import json
import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from core import config
from core.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


def redis_rest_url() -> str:
    return config.env_str("UPSTASH_REDIS_REST_URL").rstrip("/")


def redis_rest_token() -> str:
    return config.env_str("UPSTASH_REDIS_REST_TOKEN")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: int
    retry_after: int | None = None

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "allowed": self.allowed,
            "remaining": self.remaining,
            "resetAt": self.reset_at,
        }
        if self.retry_after is not None:
            data["retryAfter"] = self.retry_after
        return data


class RemoteCache:
    def __init__(
        self,
        url: str | None = None,
        token: str | None = None,
        *,
        timeout_s: float = 5.0,
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self._url = url
        self._token = token
        self.timeout_s = timeout_s
        self._clock_ms = clock_ms

    @property
    def url(self) -> str:
        return self._url if self._url is not None else redis_rest_url()

    @property
    def token(self) -> str:
        return self._token if self._token is not None else redis_rest_token()

    @property
    def configured(self) -> bool:
        return bool(self.url and self.token)

    async def command(self, *args: str) -> Any:
        if not self.configured:
            raise ConfigurationError("Redis not configured")

        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            resp = await client.post(
                self.url,
                json=[str(arg) for arg in args],
                headers={"Authorization": f"Bearer {self.token}"},
            )

        if resp.status_code != 200:
            raise UpstreamError("redis", f"Redis error: {resp.status_code} - {resp.text[:500]}", status_code=resp.status_code)
        return resp.json().get("result")

    async def get(self, key: str) -> Any | None:
        result = await self.command("GET", key)
        if result is None:
            return None
        try:
            return json.loads(result)
        except (TypeError, ValueError):
            return result

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        serialized = json.dumps(value, default=str)
        if ttl_seconds:
            await self.command("SET", key, serialized, "EX", str(int(ttl_seconds)))
        else:
            await self.command("SET", key, serialized)

    async def delete(self, key: str) -> None:
        await self.command("DEL", key)

    async def rate_limit(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        """
        Sliding-window limiter on a sorted set scored by request time (ms).
        """
        now = self._clock_ms()
        window_ms = int(window_seconds) * 1000
        window_start = now - window_ms

        await self.command("ZREMRANGEBYSCORE", key, "0", str(window_start))
        count = int(await self.command("ZCARD", key) or 0)

        if count >= max_requests:
            oldest = await self.command("ZRANGE", key, "0", "0", "WITHSCORES") or []
            reset_at = int(float(oldest[1])) + window_ms if len(oldest) >= 2 else now + window_ms
            logger.info("rate_limited key=%s count=%s", key, count)
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=reset_at,
                retry_after=math.ceil((reset_at - now) / 1000),
            )

        await self.command("ZADD", key, str(now), f"{now}-{random.random()}")
        await self.command("EXPIRE", key, str(int(window_seconds) + 1))
        return RateLimitResult(
            allowed=True,
            remaining=max_requests - count - 1,
            reset_at=now + window_ms,
        )
