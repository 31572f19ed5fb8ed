"""
Small TTL cache with an injectable clock.

Callers pass ``now`` explicitly (seconds, any monotonic origin), so expiry
is checked on read and tests control time without patching.
"""

import time
from typing import Callable, Generic, Hashable, TypeVar

from .config import SUBSTITUTION_POOL_TTL_SECONDS

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Entries expire ``ttl_seconds`` after they were stored."""

    def __init__(self, ttl_seconds: float = SUBSTITUTION_POOL_TTL_SECONDS):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._entries: dict[Hashable, tuple[float, T]] = {}

    def get(self, key: Hashable, now: float | None = None) -> T | None:
        now = time.monotonic() if now is None else now
        item = self._entries.get(key)
        if item is None:
            return None
        stored_at, value = item
        if now - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: T, now: float | None = None) -> None:
        now = time.monotonic() if now is None else now
        self._entries[key] = (now, value)

    def get_or_load(self, key: Hashable, loader: Callable[[], T], now: float | None = None) -> T:
        now = time.monotonic() if now is None else now
        value = self.get(key, now)
        if value is None:
            value = loader()
            self.set(key, value, now)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
