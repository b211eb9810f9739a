# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""In-memory rate limiting for auth endpoints (OTP and password guessing).

Clients are identified by the socket peer address. ``X-Forwarded-For`` is only
read when the peer is one of ``TRUSTED_PROXIES``, and then the nearest address
not belonging to a trusted proxy is used.
"""

import time
from collections import deque

from fastapi import HTTPException, Request

from minijournal_server.config import settings

WINDOW = 60
# Max requests per WINDOW seconds, per client and path
LIMITS: dict[str, int] = {
    "/auth/login": 10,
    "/auth/request-otp": 5,
    "/auth/verify-register": 10,
    "/auth/google-callback": 10,
    "/auth/google-signin": 10,
}


class RateLimiter:
    """Sliding-window counters keyed by (client, path)."""

    def __init__(self, limits: dict[str, int], window: float = WINDOW):
        self.limits = limits
        self.window = window
        self._hits: dict[tuple[str, str], deque[float]] = {}
        self._last_sweep = float("-inf")

    def __len__(self) -> int:
        return len(self._hits)

    def hit(self, client: str, path: str, now: float | None = None) -> bool:
        """Record a request; False if the client is over the limit for ``path``."""
        limit = self.limits.get(path)
        if limit is None:
            return True
        now = time.monotonic() if now is None else now
        self._sweep(now)
        hits = self._hits.setdefault((client, path), deque())
        cutoff = now - self.window
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if len(hits) >= limit:
            return False
        hits.append(now)
        return True

    def _sweep(self, now: float) -> None:
        # Drop idle clients at most once per window.
        if now - self._last_sweep < self.window:
            return
        self._last_sweep = now
        cutoff = now - self.window
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in idle:
            del self._hits[key]


limiter = RateLimiter(LIMITS)


def client_address(request: Request) -> str:
    peer = request.client.host if request.client and request.client.host else "unknown"
    trusted = settings.trusted_proxy_set
    if peer not in trusted:
        return peer
    forwarded = [a.strip() for a in request.headers.get("x-forwarded-for", "").split(",") if a.strip()]
    for address in reversed(forwarded):
        if address not in trusted:
            return address
    return peer


async def rate_limit_auth_dep(request: Request) -> None:
    """FastAPI dependency: rate limit auth endpoints."""
    if not settings.rate_limit_enabled:
        return
    path = request.url.path.rstrip("/")
    if not limiter.hit(client_address(request), path):
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please try again later.",
        )
