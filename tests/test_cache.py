import asyncio

import pytest

from artscraper.cache import AsyncTTLCache, CacheKey


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def counting(value, calls: list, gate: asyncio.Event | None = None):
    async def compute():
        calls.append(value)
        if gate is not None:
            await gate.wait()
        return value
    return compute


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_computation():
    cache = AsyncTTLCache(time_to_live=60)
    calls = []
    gate = asyncio.Event()

    waiters = [asyncio.create_task(cache.get_or_fetch("k", counting("v", calls, gate))) for _ in range(10)]
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(*waiters)

    assert results == ["v"] * 10
    assert calls == ["v"]


@pytest.mark.asyncio
async def test_cached_value_is_reused_without_compute():
    cache = AsyncTTLCache(time_to_live=60)
    calls = []
    assert await cache.get_or_fetch("k", counting(1, calls)) == 1
    assert await cache.get_or_fetch("k", counting(2, calls)) == 1
    assert calls == [1]
    assert "k" in cache


@pytest.mark.asyncio
async def test_failure_is_shared_by_joiners_then_retried():
    cache = AsyncTTLCache(time_to_live=60)
    gate = asyncio.Event()
    attempts = []

    async def failing():
        attempts.append(1)
        await gate.wait()
        raise ValueError("boom")

    first = asyncio.create_task(cache.get_or_fetch("k", failing))
    second = asyncio.create_task(cache.get_or_fetch("k", failing))
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(first, second, return_exceptions=True)

    assert len(attempts) == 1
    assert all(isinstance(r, ValueError) for r in results)
    assert results[0] is results[1]
    assert "k" not in cache

    assert await cache.get_or_fetch("k", counting("ok", [])) == "ok"


@pytest.mark.asyncio
async def test_time_to_live_expires_even_when_read():
    clock = FakeClock()
    cache = AsyncTTLCache(time_to_idle=10, time_to_live=25, clock=clock)
    calls = []

    await cache.get_or_fetch("k", counting("a", calls))
    for _ in range(3):
        clock.advance(8)
        await cache.get_or_fetch("k", counting("b", calls))
    assert calls == ["a"]

    clock.advance(8)  # 32s since stored
    assert await cache.get_or_fetch("k", counting("c", calls)) == "c"
    assert calls == ["a", "c"]


@pytest.mark.asyncio
async def test_time_to_idle_expires_unread_entries():
    clock = FakeClock()
    cache = AsyncTTLCache(time_to_idle=10, time_to_live=100, clock=clock)
    calls = []

    await cache.get_or_fetch("k", counting("a", calls))
    clock.advance(11)
    assert await cache.get_or_fetch("k", counting("b", calls)) == "b"
    assert calls == ["a", "b"]


@pytest.mark.asyncio
async def test_different_keys_do_not_wait_on_each_other():
    cache = AsyncTTLCache(time_to_live=60)
    gate = asyncio.Event()
    slow = asyncio.create_task(cache.get_or_fetch("slow", counting("s", [], gate)))
    await asyncio.sleep(0)

    assert await asyncio.wait_for(cache.get_or_fetch("fast", counting("f", [])), timeout=1) == "f"
    assert not slow.done()
    gate.set()
    assert await slow == "s"


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_shared_work():
    cache = AsyncTTLCache(time_to_live=60)
    gate = asyncio.Event()
    calls = []
    first = asyncio.create_task(cache.get_or_fetch("k", counting("v", calls, gate)))
    second = asyncio.create_task(cache.get_or_fetch("k", counting("v", calls, gate)))
    await asyncio.sleep(0)

    first.cancel()
    gate.set()
    assert await second == "v"
    assert calls == ["v"]


@pytest.mark.asyncio
async def test_capacity_evicts_least_recently_used():
    cache = AsyncTTLCache(max_capacity=2)
    await cache.get_or_fetch("a", counting(1, []))
    await cache.get_or_fetch("b", counting(2, []))
    await cache.get_or_fetch("a", counting(1, []))
    await cache.get_or_fetch("c", counting(3, []))

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache


def test_cache_key_joins_arguments():
    assert CacheKey.of("twitter.api", "u", "gt", "b") == CacheKey("twitter.api", "u\ngt\nb")
    assert CacheKey.of("a", "x") != CacheKey.of("b", "x")
