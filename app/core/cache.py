"""
Caching Module

In-memory TTL cache and the intake token revocation denylist built on it.

Tokens are stateless by default; the denylist is the opt-in exception for
links that must die before their natural expiry (a lost tablet, a link sent
to the wrong patient). Entries live as long as the token they revoke
still verifies, and tablet revocations never expire.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

from app.core.exceptions import DenylistFullError
from app.core.intake_tokens import IntakeTokenPayload, token_fingerprint


logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with optional TTL."""
    value: T
    expires_at: Optional[float]  # None: never expires

    def is_expired(self, now: float) -> bool:
        """Check if the entry has expired."""
        return self.expires_at is not None and now >= self.expires_at


class TTLCache(Generic[T]):
    """
    Thread-safe TTL cache with LRU eviction.

    Features:
    - Time-based expiration (optional per entry)
    - Maximum size limit; expired entries are purged before LRU eviction
    - Cache statistics for monitoring
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: Optional[float] = 3600,
    ):
        """
        Initialize the cache.

        Args:
            max_size: Maximum number of entries.
            default_ttl: Default time-to-live in seconds, None for no expiry.
        """
        self._cache: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self._lock = threading.Lock()
        self._max_size = max_size
        self._default_ttl = default_ttl
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[T]:
        """
        Get a value from the cache.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired.
        """
        with self._lock:
            entry = self._cache.get(key)

            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(time.time()):
                del self._cache[key]
                self._misses += 1
                return None

            self._cache.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        """
        Set a value in the cache.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: Optional TTL override in seconds.
        """
        ttl = ttl if ttl is not None else self._default_ttl
        now = time.time()
        expires_at = now + ttl if ttl is not None else None

        with self._lock:
            self._cache.pop(key, None)
            if len(self._cache) >= self._max_size:
                self._purge_expired(now)
            while len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)
                self._evictions += 1

            self._cache[key] = CacheEntry(value=value, expires_at=expires_at)

    def delete(self, key: str) -> bool:
        """
        Delete a key from the cache.

        Returns:
            True if deleted, False if not found.
        """
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries from the cache."""
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def make_room(self, key: str) -> bool:
        """
        Purge expired entries if needed so ``key`` can be set without an
        LRU eviction.

        Returns:
            True if ``key`` fits, False if only an eviction would make room.
        """
        with self._lock:
            if key in self._cache or len(self._cache) < self._max_size:
                return True
            self._purge_expired(time.time())
            return len(self._cache) < self._max_size

    def __len__(self) -> int:
        return len(self._cache)

    def _purge_expired(self, now: float) -> int:
        expired = [k for k, entry in self._cache.items() if entry.is_expired(now)]
        for key in expired:
            del self._cache[key]
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with hit/miss counts and hit rate.
        """
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0.0
        return {
            "size": len(self._cache),
            "max_size": self._max_size,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hit_rate_percent": round(hit_rate, 2),
        }


# ============== Revocation Denylist ==============

class TokenDenylist:
    """
    Revoked intake tokens, keyed by fingerprint.

    Live revocations are never evicted: once the list is full and no entry
    has expired, new revocations are refused with :class:`DenylistFullError`.
    """

    def __init__(self, max_size: int = 100_000):
        self._cache: TTLCache[str] = TTLCache(max_size=max_size, default_ttl=None)

    def revoke(self, token: str, payload: IntakeTokenPayload, leeway_ms: int = 0) -> str:
        """
        Revoke a verified token until its own deadline.

        Args:
            token: The token string.
            payload: Its verified claims.
            leeway_ms: Clock skew tolerance verification applies to ``exp``.

        Returns:
            str: The token fingerprint.

        Raises:
            DenylistFullError: If the list is full of live revocations.
        """
        fingerprint = token_fingerprint(token)
        ttl: Optional[float] = None
        if payload.is_expiring and payload.exp is not None:
            ttl = max((payload.exp + leeway_ms) / 1000 - time.time(), 0.0)

        if not self._cache.make_room(fingerprint):
            logger.error("Intake denylist at capacity (%d); refusing revocation", len(self))
            raise DenylistFullError(fingerprint)
        self._cache.set(fingerprint, payload.org_id, ttl=ttl)
        return fingerprint

    def is_revoked(self, token: str) -> bool:
        return self._cache.get(token_fingerprint(token)) is not None

    def clear(self) -> None:
        self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        return self._cache.stats()

    def __len__(self) -> int:
        return len(self._cache)


# ============== Global Instances ==============

# Process-local; swap for a shared store when running several replicas.
intake_denylist = TokenDenylist()
