import asyncio
import gc

import pytest

from normalize.incident import AggregationResult
from store.cache import AggregationCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingAggregate:
    def __init__(self, delay: float = 0.0) -> None:
        self.calls = 0
        self.delay = delay

    async def __call__(self) -> AggregationResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return AggregationResult(
            incidents=(),
            source_status={"USGS": {"ok": True, "count": 0}},
            fetched_at=f"run-{self.calls}",
        )


@pytest.mark.asyncio
async def test_serves_from_cache_within_ttl_then_refreshes() -> None:
    clock = FakeClock()
    aggregate = CountingAggregate()
    cache = AggregationCache(aggregate, ttl_seconds=180.0, clock=clock)

    first, first_cached = await cache.get()
    clock.now += 179.0
    second, second_cached = await cache.get()

    assert first_cached is False
    assert second_cached is True
    assert second is first
    assert aggregate.calls == 1

    clock.now += 1.0
    third, third_cached = await cache.get()
    assert third_cached is False
    assert third.fetched_at == "run-2"
    assert aggregate.calls == 2


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_refresh() -> None:
    aggregate = CountingAggregate(delay=0.02)
    cache = AggregationCache(aggregate, ttl_seconds=180.0, clock=FakeClock())

    results = await asyncio.gather(*(cache.get() for _ in range(5)))

    assert aggregate.calls == 1
    assert {r.fetched_at for r, _ in results} == {"run-1"}
    assert all(from_cache is False for _, from_cache in results)


@pytest.mark.asyncio
async def test_failed_refresh_propagates_and_keeps_previous_entry() -> None:
    clock = FakeClock()
    calls = 0

    async def aggregate() -> AggregationResult:
        nonlocal calls
        calls += 1
        if calls == 2:
            raise RuntimeError("orchestration broke")
        return AggregationResult(incidents=(), source_status={}, fetched_at=str(calls))

    cache = AggregationCache(aggregate, ttl_seconds=10.0, clock=clock)
    await cache.get()
    clock.now += 11.0

    with pytest.raises(RuntimeError):
        await cache.get()
    assert cache.peek() is not None
    assert cache.peek().fetched_at == "1"

    result, from_cache = await cache.get()
    assert result.fetched_at == "3"
    assert from_cache is False


@pytest.mark.asyncio
async def test_prewarm_peek_and_age() -> None:
    clock = FakeClock()
    cache = AggregationCache(CountingAggregate(), ttl_seconds=180.0, clock=clock)
    assert cache.peek() is None
    assert cache.age_seconds() is None

    await cache.prewarm()
    clock.now += 42.0

    assert cache.peek() is not None
    assert cache.age_seconds() == 42.0
    _, from_cache = await cache.get()
    assert from_cache is True


@pytest.mark.asyncio
async def test_prewarm_failure_is_logged_not_raised(caplog) -> None:
    async def aggregate() -> AggregationResult:
        raise RuntimeError("no network")

    cache = AggregationCache(aggregate, clock=FakeClock())
    await cache.prewarm()
    assert cache.peek() is None
    assert "pre-warm failed" in caplog.text


@pytest.mark.asyncio
async def test_refresh_failure_after_waiter_cancelled_is_retrieved() -> None:
    loop = asyncio.get_running_loop()
    reported: list[dict] = []
    loop.set_exception_handler(lambda _loop, context: reported.append(context))

    release = asyncio.Event()

    async def aggregate() -> AggregationResult:
        await release.wait()
        raise RuntimeError("upstream gone")

    cache = AggregationCache(aggregate, clock=FakeClock())
    waiter = asyncio.create_task(cache.get())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    release.set()
    for _ in range(5):
        await asyncio.sleep(0)
    gc.collect()
    loop.set_exception_handler(None)

    assert cache.peek() is None
    assert not [c for c in reported if "never retrieved" in str(c.get("message"))]
