"""Fixed-window, in-memory request rate limiting."""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import HTTPException, Request

from config.settings import RATE_LIMIT_WINDOW_SECONDS, RATE_LIMITS

RATE_LIMIT_ERROR = "Too many requests. Please slow down."


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in: float


class RateLimiter:
    """Counts requests per identifier inside fixed windows."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[int, float]] = {}

    def check(self, identifier: str, max_requests: int, window_seconds: float = RATE_LIMIT_WINDOW_SECONDS) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            self._purge(now)
            count, reset_at = self._entries.get(identifier, (0, 0.0))
            if now >= reset_at:
                self._entries[identifier] = (1, now + window_seconds)
                return RateLimitResult(True, max_requests - 1, window_seconds)
            if count >= max_requests:
                return RateLimitResult(False, 0, reset_at - now)
            self._entries[identifier] = (count + 1, reset_at)
            return RateLimitResult(True, max_requests - count - 1, reset_at - now)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._entries.items() if now >= reset_at]
        for key in expired:
            del self._entries[key]


limiter = RateLimiter()


def client_identifier(request: Request, *, trust_proxy: bool = False) -> str:
    """Key a client by address and user agent.

    Forwarding headers count only when ``trust_proxy`` is set.
    """
    ip = ""
    if trust_proxy:
        forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
        real_ip = (request.headers.get("x-real-ip") or "").strip()
        ip = forwarded or real_ip
    peer = request.client.host if request.client else ""
    ip = ip or peer or "unknown"
    user_agent = request.headers.get("user-agent") or "unknown"
    return f"{ip}:{user_agent[:50]}"


def rate_limited(route_key: str):
    """Build a route dependency enforcing the limit configured for ``route_key``."""
    window_seconds, max_requests = RATE_LIMITS.get(route_key, RATE_LIMITS["default"])

    def _dependency(request: Request) -> None:
        trust_proxy = bool(getattr(request.app.state, "trust_proxy", False))
        identifier = client_identifier(request, trust_proxy=trust_proxy)
        result = limiter.check(f"{route_key}:{identifier}", max_requests, window_seconds)
        if not result.allowed:
            raise HTTPException(
                status_code=429,
                detail=RATE_LIMIT_ERROR,
                headers={"Retry-After": str(max(1, math.ceil(result.reset_in)))},
            )

    return _dependency
