"""Short-TTL and calendar-month caches for resolved data."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


def current_month_key(now: datetime | None = None) -> str:
    """UTC calendar month as ``YYYY-MM``."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m")


class TTLCache:
    """In-memory read-through cache with per-entry expiry.

    Entries are ``key -> (value, fetched_at)``; a read hits only while
    ``now - fetched_at < ttl``. Nothing is evicted except by expiry.
    None is never stored, so a failed fetch leaves the slot empty.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float, float]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, fetched_at, ttl = entry
        if self._clock() - fetched_at < ttl:
            return value
        return None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        if value is None:
            return
        self._entries[key] = (value, self._clock(), self.ttl if ttl is None else ttl)

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
    ) -> Any | None:
        """Return the cached value or await ``fetch`` and store a non-None result.

        Concurrent callers for the same key share one fetch.
        """
        value = self.get(key)
        if value is not None:
            return value
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            value = self.get(key)
            if value is not None:
                return value
            value = await fetch()
            if value is not None:
                self.set(key, value, ttl)
            return value


class MonthlyCache:
    """Cache whose entries stay valid for the UTC calendar month they were written in."""

    def __init__(self, now: Callable[[], datetime] | None = None):
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._entries: dict[str, tuple[Any, str]] = {}
        self._lock = asyncio.Lock()

    def month_key(self) -> str:
        return current_month_key(self._now())

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, month = entry
        if month == self.month_key():
            return value
        return None

    def set(self, key: str, value: Any) -> None:
        if value is None:
            return
        self._entries[key] = (value, self.month_key())

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    async def get_or_fetch(
        self, key: str, fetch: Callable[[], Awaitable[Any]],
    ) -> Any | None:
        value = self.get(key)
        if value is not None:
            logger.debug("Monthly cache hit for %s (%s)", key, self.month_key())
            return value
        async with self._lock:
            value = self.get(key)
            if value is not None:
                return value
            value = await fetch()
            self.set(key, value)
            return value
