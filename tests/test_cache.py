"""
TTL cache behaviour: lazy expiry, delete/clear, and the background sweep.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from finreports.cache import TTLCache


def test_set_then_get_returns_value(clock):
    cache = TTLCache(ttl_seconds=10, clock=clock)
    cache.set("a", {"rows": [1, 2]})
    assert cache.get("a") == ({"rows": [1, 2]}, True)


def test_missing_key_is_not_found(clock):
    cache = TTLCache(ttl_seconds=10, clock=clock)
    assert cache.get("nope") == (None, False)


def test_entry_expires_after_ttl(clock):
    cache = TTLCache(ttl_seconds=2, clock=clock)
    cache.set("a", 1)

    clock.advance(1)
    assert cache.get("a") == (1, True)

    clock.advance(2)
    assert cache.get("a") == (None, False)


def test_entry_is_gone_exactly_at_expiry(clock):
    cache = TTLCache(ttl_seconds=2, clock=clock)
    cache.set("a", 1)
    clock.advance(2)
    assert cache.get("a") == (None, False)


def test_expired_entry_hidden_before_sweep(clock):
    cache = TTLCache(ttl_seconds=1, clock=clock)
    cache.set("a", 1)
    clock.advance(5)

    assert cache.get("a") == (None, False)
    # still physically stored until a sweep runs
    assert len(cache) == 1


def test_set_overwrites_and_restamps_expiry(clock):
    cache = TTLCache(ttl_seconds=2, clock=clock)
    cache.set("a", 1)
    clock.advance(1.5)
    cache.set("a", 2)
    clock.advance(1.5)
    assert cache.get("a") == (2, True)


def test_delete_hides_entry_before_expiry(clock):
    cache = TTLCache(ttl_seconds=10, clock=clock)
    cache.set("a", 1)
    cache.delete("a")
    assert cache.get("a") == (None, False)


def test_delete_missing_key_is_noop(clock):
    cache = TTLCache(ttl_seconds=10, clock=clock)
    cache.delete("never-set")
    assert len(cache) == 0


def test_clear_removes_everything(clock):
    cache = TTLCache(ttl_seconds=10, clock=clock)
    for key in ("a", "b", "c"):
        cache.set(key, key.upper())
    cache.clear()
    assert all(cache.get(key) == (None, False) for key in ("a", "b", "c"))
    assert len(cache) == 0


def test_purge_expired_keeps_live_entries(clock):
    cache = TTLCache(ttl_seconds=5, clock=clock)
    cache.set("old", 1)
    clock.advance(3)
    cache.set("new", 2)
    clock.advance(3)

    assert cache.purge_expired() == 1
    assert len(cache) == 1
    assert cache.get("new") == (2, True)


@pytest.mark.asyncio
async def test_background_sweep_reclaims_expired_entries(clock):
    cache = TTLCache(ttl_seconds=1, sweep_interval_seconds=0.01, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    clock.advance(2)
    cache.set("c", 3)

    cache.start()
    try:
        for _ in range(50):
            if len(cache) == 1:
                break
            await asyncio.sleep(0.01)
    finally:
        await cache.close()

    assert len(cache) == 1
    assert cache.get("c") == (3, True)


@pytest.mark.asyncio
async def test_start_twice_keeps_one_sweep_task(clock):
    cache = TTLCache(ttl_seconds=1, sweep_interval_seconds=60, clock=clock)
    cache.start()
    first = cache._sweep_task
    cache.start()
    assert cache._sweep_task is first

    await cache.close()
    assert first.cancelled()
    assert cache._sweep_task is None


@pytest.mark.asyncio
async def test_close_without_start_is_noop():
    cache = TTLCache(ttl_seconds=1)
    await cache.close()
    await cache.close()


def test_concurrent_writers_and_readers():
    cache = TTLCache(ttl_seconds=60)

    def worker(n: int) -> bool:
        key = f"k{n % 10}"
        cache.set(key, n)
        value, found = cache.get(key)
        return found and value % 10 == n % 10

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(worker, range(500)))

    assert all(results)
    assert len(cache) == 10
