"""
Expiring key-value cache for YApi read results.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

from shared.logging import get_logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A cached value and the clock reading after which it is stale."""

    value: T
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ExpiringCache(Generic[T]):
    """Dictionary-backed cache with a fixed TTL per entry.

    Expired entries are evicted lazily when read; ``cleanup`` sweeps them
    proactively. Operations never await, so within one event loop each call
    is atomic with respect to the others.
    """

    def __init__(self, ttl_seconds: float = 300, *, clock: Optional[Callable[[], float]] = None) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry[T]] = {}
        self.logger = get_logger("yapi.cache")

    def set(self, key: str, value: T) -> None:
        """Store ``value`` under ``key`` with a fresh expiry."""
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def get(self, key: str) -> Optional[T]:
        """Return the live value for ``key``, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self.logger.debug("Cache entry expired", key=key)
            return None

        return entry.value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            self.logger.debug("Cache cleanup removed expired entries", removed=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
