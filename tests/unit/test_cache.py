"""
Unit tests for the read-cache layer.

Tests for:
- TTL hits and misses
- Error propagation without negative caching
- Invalidation
- Reader/writer lock exclusion
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from gate_trader.core.exceptions import ConnectionError
from gate_trader.trader.cache import CachedValue, ReadWriteLock


# =============================================================================
# CachedValue
# =============================================================================


class TestCachedValue:
    """Test CachedValue TTL behaviour."""

    @pytest.mark.asyncio
    async def test_single_fetch_within_ttl(self, clock):
        fetch = AsyncMock(return_value="v1")
        cache = CachedValue("balance", fetch, ttl=15.0, clock=clock)

        assert await cache.get() == "v1"
        clock.advance(14.9)
        assert await cache.get() == "v1"

        assert fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_refetch_after_ttl(self, clock):
        fetch = AsyncMock(side_effect=["v1", "v2"])
        cache = CachedValue("balance", fetch, ttl=15.0, clock=clock)

        await cache.get()
        first = cache.fetched_at
        clock.advance(16)

        assert await cache.get() == "v2"
        assert fetch.await_count == 2
        assert cache.fetched_at > first

    @pytest.mark.asyncio
    async def test_exactly_ttl_is_stale(self, clock):
        fetch = AsyncMock(side_effect=["v1", "v2"])
        cache = CachedValue("balance", fetch, ttl=15.0, clock=clock)

        await cache.get()
        clock.advance(15.0)

        assert await cache.get() == "v2"

    @pytest.mark.asyncio
    async def test_fetched_at_strictly_increases_on_frozen_clock(self, clock):
        fetch = AsyncMock(side_effect=["v1", "v2"])
        cache = CachedValue("positions", fetch, ttl=15.0, clock=clock)

        await cache.get()
        first = cache.fetched_at
        await cache.invalidate()

        assert await cache.get() == "v2"
        assert cache.fetched_at > first

    @pytest.mark.asyncio
    async def test_error_propagates_and_is_not_cached(self, clock):
        fetch = AsyncMock(side_effect=[ConnectionError("down"), "v1"])
        cache = CachedValue("balance", fetch, ttl=15.0, clock=clock)

        with pytest.raises(ConnectionError):
            await cache.get()
        assert cache.fetched_at is None

        assert await cache.get() == "v1"
        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_error_keeps_previous_value(self, clock):
        fetch = AsyncMock(side_effect=["v1", ConnectionError("down")])
        cache = CachedValue("balance", fetch, ttl=15.0, clock=clock)

        await cache.get()
        clock.advance(20)

        with pytest.raises(ConnectionError):
            await cache.get()
        clock.advance(-20)
        assert await cache.get() == "v1"
        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_fetch(self, clock):
        fetch = AsyncMock(side_effect=["v1", "v2"])
        cache = CachedValue("balance", fetch, ttl=15.0, clock=clock)

        await cache.get()
        await cache.invalidate()

        assert cache.fetched_at is None
        assert await cache.get() == "v2"

    @pytest.mark.asyncio
    async def test_age(self, clock):
        cache = CachedValue("balance", AsyncMock(return_value=1), ttl=15.0, clock=clock)
        assert cache.age() is None

        await cache.get()
        clock.advance(3)

        assert cache.age() == pytest.approx(3.0)

    @pytest.mark.asyncio
    async def test_concurrent_misses_store_last_value(self, clock):
        results = iter(["a", "b"])

        async def fetch():
            await asyncio.sleep(0)
            return next(results)

        cache = CachedValue("positions", fetch, ttl=15.0, clock=clock)

        values = await asyncio.gather(cache.get(), cache.get())

        assert sorted(values) == ["a", "b"]
        assert await cache.get() in ("a", "b")

    @pytest.mark.asyncio
    async def test_lock_not_held_during_fetch(self, clock):
        """Invalidation completes while a slow fetch is still in flight."""
        gate = asyncio.Event()

        async def fetch():
            await gate.wait()
            return "slow"

        cache = CachedValue("balance", fetch, ttl=15.0, clock=clock)
        slow = asyncio.create_task(cache.get())
        await asyncio.sleep(0)

        await asyncio.wait_for(cache.invalidate(), timeout=1.0)
        assert not slow.done()

        gate.set()
        assert await slow == "slow"
        assert await cache.get() == "slow"


# =============================================================================
# ReadWriteLock
# =============================================================================


class TestReadWriteLock:
    """Test ReadWriteLock exclusion rules."""

    @pytest.mark.asyncio
    async def test_readers_share(self):
        lock = ReadWriteLock()

        async with lock.read():
            async with lock.read():
                assert lock.readers == 2
        assert lock.readers == 0

    @pytest.mark.asyncio
    async def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        order: list[str] = []

        async def writer():
            async with lock.write():
                order.append("write")

        async with lock.read():
            task = asyncio.create_task(writer())
            await asyncio.sleep(0)
            order.append("read")
            assert not lock.locked

        await task
        assert order == ["read", "write"]

    @pytest.mark.asyncio
    async def test_reader_waits_for_writer(self):
        lock = ReadWriteLock()
        order: list[str] = []

        async def reader():
            async with lock.read():
                order.append("read")

        async with lock.write():
            task = asyncio.create_task(reader())
            await asyncio.sleep(0)
            order.append("write")
            assert lock.locked

        await task
        assert order == ["write", "read"]

    @pytest.mark.asyncio
    async def test_cancelled_writer_releases_readers(self):
        lock = ReadWriteLock()

        async with lock.read():
            writer = asyncio.create_task(lock.write().__aenter__())
            await asyncio.sleep(0)
            writer.cancel()
            with pytest.raises(asyncio.CancelledError):
                await writer

        async with lock.read():
            assert lock.readers == 1
