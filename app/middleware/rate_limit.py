"""
Rate Limiting

Fixed-window rate limiter for the public intake endpoints.

Features:
- Per-client limiting keyed by network address
- Bounded memory: oldest keys are evicted at capacity
- Pluggable backend (anything with ``allow(key) -> bool``)
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Protocol

from fastapi import HTTPException, Request, status

from app.core.config import settings


logger = logging.getLogger(__name__)


class RateLimitBackend(Protocol):
    """Anything that can decide whether a key may make another request."""

    def allow(self, key: str) -> bool: ...


# ============== Fixed Window Implementation ==============

@dataclass
class FixedWindow:
    """Request counter for one key and one window."""
    count: int
    reset_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.reset_at


# ============== Rate Limiter ==============

class RateLimiter:
    """
    Per-key fixed-window rate limiter.
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            max_requests: Requests allowed per key per window.
            window_seconds: Window length in seconds.
            max_keys: Maximum number of tracked keys.
            clock: Monotonic time source, in seconds.
        """
        self._windows: OrderedDict[str, FixedWindow] = OrderedDict()
        self._lock = threading.Lock()
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._max_keys = max_keys
        self._clock = clock

    def allow(self, key: str) -> bool:
        """
        Count a request for ``key``.

        Returns:
            True if allowed, False if the key exhausted its window.
        """
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)

            if window is None or window.is_expired(now):
                self._windows.pop(key, None)
                self._make_room(now)
                self._windows[key] = FixedWindow(count=1, reset_at=now + self._window_seconds)
                return True

            if window.count >= self._max_requests:
                return False

            window.count += 1
            return True

    def is_allowed(self, request: Request) -> bool:
        """Check if a request is allowed, keyed by its client address."""
        return self.allow(client_key(request))

    def _make_room(self, now: float) -> None:
        if len(self._windows) < self._max_keys:
            return
        self._sweep(now)
        while len(self._windows) >= self._max_keys:
            self._windows.popitem(last=False)

    def _sweep(self, now: float) -> int:
        stale_keys = [key for key, window in self._windows.items() if window.is_expired(now)]
        for key in stale_keys:
            del self._windows[key]
        return len(stale_keys)

    def cleanup(self) -> int:
        """
        Remove windows that have already reset.

        Returns:
            Number of keys removed.
        """
        with self._lock:
            return self._sweep(self._clock())

    def reset(self) -> None:
        """Forget every key."""
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


def client_key(request: Request) -> str:
    """Client address: first X-Forwarded-For hop, else the peer host."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or "unknown"
    return request.client.host if request.client else "unknown"


# ============== Global Rate Limiters ==============

intake_limiter = RateLimiter(
    max_requests=settings.INTAKE_RATE_LIMIT_REQUESTS,
    window_seconds=settings.INTAKE_RATE_LIMIT_WINDOW_SECONDS,
)


# ============== Dependency ==============

def rate_limit(limiter: RateLimitBackend, retry_after: int = 60):
    """
    Build a dependency that applies rate limiting to an endpoint.

    Usage:
        @router.post("/{token}", dependencies=[Depends(rate_limit(intake_limiter))])
        async def submit(...):
            ...
    """

    async def dependency(request: Request) -> None:
        key = client_key(request)
        if not limiter.allow(key):
            logger.warning("Rate limited: %s", key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests",
                headers={"Retry-After": str(retry_after)},
            )

    return dependency
