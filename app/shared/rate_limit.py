"""In-process sliding-window rate limiting.

Each key keeps the timestamps of its requests inside the window. Buckets
live in a ``TTLCache`` so idle keys expire on their own. Counters are per
process; a multi-instance deployment needs a shared store instead.
"""

import ipaddress
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from cachetools import TTLCache
from fastapi import Request

_MAX_KEYS = 10000


@dataclass(frozen=True)
class RateLimitDecision:
    ok: bool
    remaining: int
    reset_in: int
    retry_after: int | None = None


class SlidingWindowRateLimiter:
    """Allow at most ``max_requests`` per ``window_seconds`` for each key."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        max_keys: int = _MAX_KEYS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: TTLCache[str, list[float]] = TTLCache(
            maxsize=max_keys, ttl=window_seconds, timer=clock
        )
        self._lock = threading.Lock()

    def _seconds_until_free(self, oldest: float, now: float) -> int:
        return max(1, math.ceil(self.window_seconds - (now - oldest)))

    def allow(self, key: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            bucket = [ts for ts in self._buckets.get(key, []) if now - ts < self.window_seconds]

            if len(bucket) >= self.max_requests:
                self._buckets[key] = bucket
                wait = self._seconds_until_free(bucket[0], now)
                return RateLimitDecision(ok=False, remaining=0, reset_in=wait, retry_after=wait)

            bucket.append(now)
            self._buckets[key] = bucket
            return RateLimitDecision(
                ok=True,
                remaining=self.max_requests - len(bucket),
                reset_in=self._seconds_until_free(bucket[0], now),
            )

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


def _is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def rate_limit_key(request: Request, user_id: object | None = None) -> str:
    """Key by user when known, else by the first forwarded client address."""
    if user_id:
        return f"user:{user_id}"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
        if _is_valid_ip(ip):
            return f"ip:{ip}"

    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return "unknown"
