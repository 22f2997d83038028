"""
Time-bounded read caches for account state.

Each CachedValue holds one value with the time it was fetched, guarded by
its own reader/writer lock. The lock is never held while the remote fetch
is awaited, so a slow exchange call cannot block readers of a fresh value.
Concurrent misses may fetch redundantly; the last writer wins.
"""

import asyncio
import math
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Generic, Optional, TypeVar

from gate_trader.core import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 15.0


class ReadWriteLock:
    """
    Asyncio reader/writer lock: many readers or one writer.

    Waiting writers block new readers, so a steady stream of reads cannot
    starve an invalidation.

    Example:
        >>> lock = ReadWriteLock()
        >>> async with lock.read():
        ...     pass
        >>> async with lock.write():
        ...     pass
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def locked(self) -> bool:
        """True while a writer holds the lock."""
        return self._writer

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and self._waiting_writers == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            self._waiting_writers += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            except BaseException:
                self._waiting_writers -= 1
                self._cond.notify_all()
                raise
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """
    Cached value with the clock reading taken when it was stored.

    Attributes:
        data: Cached value
        fetched_at: Clock reading at store time
    """

    data: T
    fetched_at: float


class CachedValue(Generic[T]):
    """
    Single-value TTL cache backed by an async fetch function.

    Failed fetches propagate to the caller and leave the cell untouched.

    Example:
        >>> balance = CachedValue("balance", gateway_fetch, ttl=15.0)
        >>> value = await balance.get()   # remote call
        >>> value = await balance.get()   # served from cache
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[T]],
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize CachedValue.

        Args:
            name: Cache name used in log messages
            fetch: Coroutine function producing a fresh value
            ttl: Validity window in seconds
            clock: Monotonic clock, injectable for tests
        """
        self.name = name
        self._fetch = fetch
        self._ttl = ttl
        self._clock = clock
        self._entry: Optional[CacheEntry[T]] = None
        self._last_fetched_at = -math.inf
        self._lock = ReadWriteLock()

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def fetched_at(self) -> Optional[float]:
        """Clock reading of the stored value, None when empty."""
        entry = self._entry
        return entry.fetched_at if entry is not None else None

    async def get(self) -> T:
        """
        Return the cached value if younger than the TTL, else fetch and store.

        Raises:
            Whatever the fetch function raises
        """
        async with self._lock.read():
            entry = self._entry
            if entry is not None:
                age = self._clock() - entry.fetched_at
                if age < self._ttl:
                    logger.debug(f"{self.name} cache hit (age {age:.1f}s)")
                    return entry.data

        logger.info(f"Refreshing {self.name} from exchange")
        value = await self._fetch()

        async with self._lock.write():
            now = self._clock()
            if now <= self._last_fetched_at:
                now = math.nextafter(self._last_fetched_at, math.inf)
            self._last_fetched_at = now
            self._entry = CacheEntry(data=value, fetched_at=now)

        return value

    async def invalidate(self) -> None:
        """Drop the stored value; the next get() fetches."""
        async with self._lock.write():
            self._entry = None
        logger.debug(f"{self.name} cache invalidated")

    def age(self) -> Optional[float]:
        """Seconds since the stored value was fetched, None when empty."""
        entry = self._entry
        if entry is None:
            return None
        return self._clock() - entry.fetched_at
