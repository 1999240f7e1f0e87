"""
In-process fixed-window rate limiting keyed by scope and client IP.

Counters live in memory, so limits apply per worker process.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import threading
import time

from fastapi import HTTPException, Request

TOO_MANY_REQUESTS = "Too many requests. Try again shortly."


@dataclass
class _Window:
    count: int
    resets_at: float


class FixedWindowLimiter:

    def __init__(self, clock=time.monotonic) -> None:
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def hit(self, key: str, limit: int, window_seconds: int) -> float | None:
        """Count one request; returns seconds to wait when ``limit`` is exceeded, else None."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now >= window.resets_at:
                window = _Window(0, now + window_seconds)
                self._windows[key] = window
            window.count += 1
            if window.count > limit:
                return max(window.resets_at - now, 0.0)
            return None

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


_limiter = FixedWindowLimiter()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_ip(request: Request, scope: str, *, limit: int, window_seconds: int) -> None:
    retry_after = _limiter.hit(f"{scope}:{client_ip(request)}", limit, window_seconds)
    if retry_after is not None:
        raise HTTPException(429, TOO_MANY_REQUESTS, headers={"Retry-After": str(max(1, math.ceil(retry_after)))})


def reset_limits() -> None:
    _limiter.reset()
