"""Request serialization and response caching for the literature client.

Both objects hold process-wide state and are owned by exactly one
``LiteratureClient`` instance.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


class RequestQueue:
    """Serialize outbound calls and space them by a minimum interval.
    
    Calls run strictly one at a time in arrival order. A call starts no
    sooner than ``min_interval`` seconds after the previous call started.
    
    Attributes:
        min_interval: Minimum seconds between request starts
    """
    
    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = max(0.0, min_interval)
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_started_at: float | None = None
    
    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        async with self._lock:
            if self._last_started_at is not None:
                elapsed = self._clock() - self._last_started_at
                if elapsed < self.min_interval:
                    await self._sleep(self.min_interval - elapsed)
            self._last_started_at = self._clock()
            return await operation()


class ResponseCache:
    """Time-bounded cache of successful responses keyed by request signature.
    
    Expired entries are purged on every write, and once ``max_entries`` is
    reached the oldest entry is evicted.
    """
    
    def __init__(
        self,
        ttl: float,
        *,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = max(0.0, ttl)
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
    
    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value
    
    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        self.purge_expired(now)
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            del self._entries[next(iter(self._entries))]
        self._entries[key] = (now + self.ttl, value)
    
    def purge_expired(self, now: float | None = None) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock() if now is None else now
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)
    
    def clear(self) -> None:
        self._entries.clear()
    
    def __len__(self) -> int:
        return len(self._entries)
