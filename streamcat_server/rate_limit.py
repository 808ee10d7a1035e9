# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""In-memory rate limiting for account endpoints (brute-force and code-spam protection)."""

import time
from collections import deque
from collections.abc import Callable

from fastapi import HTTPException, Request

# Window seconds; max requests per window per endpoint
WINDOW = 60
LIMITS: dict[str, int] = {
    "/api/login": 10,
    "/api/register": 5,
    "/api/recover-password": 5,
    "/api/verify-code": 10,
    "/api/reset-password": 10,
}


class RateLimiter:
    """Sliding-window counter per (client, path). One instance per application."""

    def __init__(
        self,
        limits: dict[str, int] | None = None,
        window: float = WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limits = dict(LIMITS if limits is None else limits)
        self.window = window
        self.clock = clock
        # (client_key, path) -> request timestamps in window; never holds an empty deque
        self._buckets: dict[tuple[str, str], deque[float]] = {}
        self._last_purge = clock()

    def hit(self, client: str, path: str) -> bool:
        """Record a request. Returns False when the client is over the limit for this path."""
        limit = self.limits.get(path)
        if limit is None:
            return True
        now = self.clock()
        cutoff = now - self.window
        if now - self._last_purge >= self.window:
            self.purge(cutoff)
            self._last_purge = now
        bucket = self._buckets.setdefault((client, path), deque())
        while bucket and bucket[0] < cutoff:
            bucket.popleft()
        if len(bucket) >= limit:
            return False
        bucket.append(now)
        return True

    def purge(self, cutoff: float) -> None:
        """Drop buckets whose every timestamp is older than ``cutoff``."""
        stale = [key for key, bucket in self._buckets.items() if not bucket or bucket[-1] < cutoff]
        for key in stale:
            del self._buckets[key]

    @property
    def tracked(self) -> int:
        """Number of (client, path) buckets currently held."""
        return len(self._buckets)


def _client_key(request: Request) -> str:
    """Prefer X-Forwarded-For when behind a proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host or "unknown"
    return "unknown"


async def rate_limit_dep(request: Request) -> None:
    """FastAPI dependency: raise 429 when the caller exceeded the limit for this path."""
    limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return
    path = request.url.path.rstrip("/")
    if not limiter.hit(_client_key(request), path):
        raise HTTPException(
            status_code=429,
            detail="Demasiadas solicitudes. Intenta de nuevo más tarde.",
        )
