from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass
from threading import Lock

from fastapi import Depends, HTTPException, Request, status

from placemap.core.config import settings


@dataclass(frozen=True)
class RateLimit:
    limit: int
    window_seconds: int

    @classmethod
    def parse(cls, text: str) -> RateLimit:
        """``"5/60"`` allows five hits per sixty seconds; a bare count means per minute."""
        count, _, seconds = text.strip().partition("/")
        rule = cls(limit=int(count), window_seconds=int(seconds or 60))
        if rule.limit < 1 or rule.window_seconds < 1:
            raise ValueError(f"Bad rate limit {text!r}")
        return rule


class SlidingWindowLimiter:
    """Per-process hit log keyed by (route scope, client address).

    Sync dependencies run in the threadpool, hence the lock.
    """

    def __init__(self, *, max_keys: int = 10_000, idle_seconds: int = 3600) -> None:
        self._max_keys = max_keys
        self._idle_seconds = idle_seconds
        self._lock = Lock()
        self._hits: dict[tuple[str, str], deque[float]] = {}

    def hit(self, scope: str, client: str, rule: RateLimit) -> int:
        """Record a hit. Returns 0 if allowed, else the seconds until one would be."""
        now = time.monotonic()
        with self._lock:
            hits = self._hits.setdefault((scope, client), deque())
            while hits and hits[0] <= now - rule.window_seconds:
                hits.popleft()

            if len(hits) >= rule.limit:
                return max(1, math.ceil(hits[0] + rule.window_seconds - now))

            hits.append(now)
            if len(self._hits) > self._max_keys:
                self._drop_idle(now)
            return 0

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

    def _drop_idle(self, now: float) -> None:
        for key in [k for k, h in self._hits.items() if not h or h[-1] < now - self._idle_seconds]:
            del self._hits[key]


limiter = SlidingWindowLimiter()


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or "unknown"
    return request.client.host if request.client else "unknown"


def rate_limit(scope: str):
    """Dependency enforcing ``settings.rate_limit_<scope>`` per client."""
    rule = RateLimit.parse(getattr(settings, f"rate_limit_{scope}"))

    def _dep(request: Request) -> None:
        retry_after = limiter.hit(scope, _client_ip(request), rule)
        if retry_after:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests",
                headers={"Retry-After": str(retry_after)},
            )

    return Depends(_dep)
