"""
Tests for the background eviction loop.
"""

import asyncio

import pytest

from nuget_context.errors import CacheStorageError
from nuget_context.services import CacheEvictionService, EvictionState
from nuget_context.services.eviction_service import eviction_interval_seconds


class CountingStore:
    """Minimal store that only supports sweeping."""

    def __init__(self, removed: int = 0, error: Exception | None = None) -> None:
        self.removed = removed
        self.error = error
        self.sweeps = 0

    async def sweep_expired(self) -> int:
        self.sweeps += 1
        if self.error is not None:
            raise self.error
        return self.removed


def test_interval_is_half_ttl_with_floor():
    assert eviction_interval_seconds(60) == 1800
    assert eviction_interval_seconds(5) == 300
    assert eviction_interval_seconds(1) == 300


def test_explicit_interval_has_hard_floor():
    eviction = CacheEvictionService(CountingStore(), interval_seconds=0, initial_delay_seconds=0)
    assert eviction.interval == CacheEvictionService.MIN_INTERVAL_SECONDS


@pytest.mark.asyncio
async def test_sweep_once_against_real_store(store, clock):
    await store.set("short", "a", 10)
    await store.set("long", "b", 600)
    clock.advance(60)
    eviction = CacheEvictionService(store, interval_seconds=60, initial_delay_seconds=0)

    assert await eviction.sweep_once() == 1
    assert eviction.sweeps == 1
    assert eviction.last_removed == 1
    assert eviction.last_swept_at is not None
    assert await store.keys() == ["long"]


@pytest.mark.asyncio
async def test_sweep_failure_is_logged_not_raised(caplog):
    eviction = CacheEvictionService(
        CountingStore(error=CacheStorageError("database is locked", transient=True)),
        interval_seconds=60,
        initial_delay_seconds=0,
    )

    assert await eviction.sweep_once() is None
    assert eviction.failures == 1
    assert eviction.sweeps == 0
    assert eviction.state is EvictionState.STOPPED
    assert "Error occurred during cache eviction" in caplog.text


@pytest.mark.asyncio
async def test_start_sweeps_after_initial_delay_and_stop_cancels():
    store = CountingStore(removed=2)
    eviction = CacheEvictionService(store, interval_seconds=60, initial_delay_seconds=0)

    eviction.start()
    eviction.start()
    assert eviction.is_running
    await asyncio.sleep(0.05)

    assert store.sweeps == 1
    assert eviction.state is EvictionState.SCHEDULED

    await eviction.stop()
    assert not eviction.is_running
    assert eviction.state is EvictionState.STOPPED

    await eviction.stop()


@pytest.mark.asyncio
async def test_loop_survives_failed_sweeps():
    store = CountingStore(error=RuntimeError("boom"))
    eviction = CacheEvictionService(store, interval_seconds=1, initial_delay_seconds=0)

    async with eviction:
        await asyncio.sleep(0.05)
        assert eviction.is_running

    assert eviction.failures == 1
    assert not eviction.is_running


@pytest.mark.asyncio
async def test_stop_before_first_sweep():
    store = CountingStore()
    eviction = CacheEvictionService(store, interval_seconds=60, initial_delay_seconds=30)

    eviction.start()
    await asyncio.sleep(0)
    await eviction.stop()

    assert store.sweeps == 0
