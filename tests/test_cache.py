import asyncio

import pytest

from fakes import FakeClock, T0
from statusboard.cache import CacheState, RefreshSignal, ResultCache
from statusboard.errors import DegenerateNetworkError, RefreshChannelClosed
from statusboard.outcomes import DomainResult, Outcome, Snapshot
from statusboard.roster import Domain
from statusboard.settings import ProbeConfig

DOMAINS = (Domain(id=1, hostname="a.example"), Domain(id=2, hostname="b.example"))


class FakeCollector:
    """Counts rounds and stamps each snapshot with the fake clock."""

    def __init__(self, clock: FakeClock, fail: bool = False):
        self.clock = clock
        self.calls = 0
        self.fail = fail
        self.release: asyncio.Event | None = None

    async def __call__(self) -> Snapshot:
        self.calls += 1
        if self.release is not None:
            await self.release.wait()
        if self.fail:
            raise DegenerateNetworkError(2)
        results = tuple(DomainResult(d, Outcome.ok(200), Outcome.ok(200)) for d in DOMAINS)
        return Snapshot(results=results, created_at=self.clock())


def make_cache(**config):
    clock = FakeClock()
    collector = FakeCollector(clock)
    cache = ResultCache(collector, ProbeConfig(**config), clock=clock)
    return cache, collector, clock


def test_empty_cache_blocks_on_first_refresh():
    cache, collector, _ = make_cache()

    snapshot, state = asyncio.run(cache.get())

    assert state is CacheState.FRESH
    assert snapshot.created_at == T0
    assert collector.calls == 1
    assert cache.snapshot is snapshot


def test_fresh_reads_are_identical_and_do_no_work():
    cache, collector, clock = make_cache()

    async def scenario():
        first = await cache.get()
        clock.advance(59)
        second = await cache.get()
        return first, second

    first, second = asyncio.run(scenario())

    assert first[0] is second[0]
    assert first[1] is second[1] is CacheState.FRESH
    assert collector.calls == 1
    assert not cache.signal.pending


def test_stale_read_signals_refresh_and_returns_old_snapshot():
    cache, collector, clock = make_cache()

    async def scenario():
        first, _ = await cache.get()
        clock.advance(60)
        second, state = await cache.get()
        return first, second, state

    first, second, state = asyncio.run(scenario())

    assert second is first
    assert state is CacheState.STALE
    assert collector.calls == 1
    assert cache.signal.pending


def test_refresh_signals_are_coalesced():
    signal = RefreshSignal()
    assert signal.notify() is True
    assert signal.notify() is False
    assert signal.notify() is False
    assert signal.pending


def test_background_refresher_replaces_stale_snapshot():
    cache, collector, clock = make_cache()

    async def scenario():
        first, _ = await cache.get()
        refresher = asyncio.create_task(cache.run_refresher())
        clock.advance(120)
        await cache.get()
        await cache.get()  # coalesced with the pending signal
        for _ in range(5):
            await asyncio.sleep(0)
        cache.close()
        await refresher
        return first, await cache.get()

    first, (latest, state) = asyncio.run(scenario())

    assert collector.calls == 2
    assert latest is not first
    assert latest.created_at > first.created_at
    assert state is CacheState.FRESH


def test_past_ceiling_blocks_and_returns_newer_snapshot():
    cache, collector, clock = make_cache()

    async def scenario():
        first, _ = await cache.get()
        clock.advance(3600.001)
        second, state = await cache.get()
        return first, second, state

    first, second, state = asyncio.run(scenario())

    assert state is CacheState.FRESH
    assert second.created_at > first.created_at
    assert collector.calls == 2


def test_refresh_is_debounced_when_snapshot_is_fresh():
    cache, collector, clock = make_cache()

    async def scenario():
        await cache.get()
        clock.advance(30)
        await cache.refresh()

    asyncio.run(scenario())
    assert collector.calls == 1


def test_concurrent_refreshes_run_one_round():
    cache, collector, clock = make_cache()

    async def scenario():
        collector.release = asyncio.Event()
        readers = [asyncio.create_task(cache.get()) for _ in range(3)]
        await asyncio.sleep(0)
        collector.release.set()
        return await asyncio.gather(*readers)

    results = asyncio.run(scenario())
    assert collector.calls == 1
    assert len({id(snapshot) for snapshot, _ in results}) == 1


def test_readers_see_old_snapshot_during_refresh():
    cache, collector, clock = make_cache()

    async def scenario():
        first, _ = await cache.get()
        clock.advance(90)
        collector.release = asyncio.Event()
        refresh = asyncio.create_task(cache.refresh())
        await asyncio.sleep(0)
        during, state = await cache.get()
        collector.release.set()
        await refresh
        after, _ = await cache.get()
        return first, during, state, after

    first, during, state, after = asyncio.run(scenario())
    assert during is first
    assert state is CacheState.STALE
    assert after is not first


def test_signal_after_close_is_fatal():
    cache, _, clock = make_cache()

    async def scenario():
        await cache.get()
        cache.close()
        clock.advance(61)
        await cache.get()

    with pytest.raises(RefreshChannelClosed):
        asyncio.run(scenario())


def test_fatal_round_propagates_to_reader():
    clock = FakeClock()
    cache = ResultCache(FakeCollector(clock, fail=True), ProbeConfig(), clock=clock)

    with pytest.raises(DegenerateNetworkError):
        asyncio.run(cache.get())
    assert cache.snapshot is None


def test_closed_signal_stops_waiter():
    async def scenario():
        signal = RefreshSignal()
        signal.notify()
        signal.close()
        return await signal.wait()

    assert asyncio.run(scenario()) is False


def test_ceiling_boundary():
    cache, collector, clock = make_cache()

    async def read_after(seconds: float):
        clock.advance(seconds)
        return await cache.get()

    async def scenario():
        first, _ = await cache.get()
        just_under, under_state = await read_after(3599.9)
        clock.now = first.created_at
        at_ceiling, ceiling_state = await read_after(3600)
        return first, just_under, under_state, at_ceiling, ceiling_state

    first, just_under, under_state, at_ceiling, ceiling_state = asyncio.run(scenario())

    assert just_under is first
    assert under_state is CacheState.STALE
    assert at_ceiling is not first
    assert ceiling_state is CacheState.FRESH
    assert collector.calls == 2
