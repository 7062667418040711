import asyncio
from datetime import timedelta

import pytest
from conftest import T0, FakeStore

from lfpweather.core.errors import QueryExecutionError, QueryRenderError, StoreError
from lfpweather.domain.models import LATEST_VALUE, WINDOWED_SERIES, BirdCount, LatestRecord
from lfpweather.infrastructure.redis.gateway import CacheGateway
from lfpweather.queries.descriptors import BirdCountQuery, LatestQuery, WindowedQuery

TEMPERATURE_24H = WindowedQuery("temperature", "vantagepro2plus", "1h", "24h")
UV_LAST = LatestQuery("uv_index", "vantagepro2plus")

SERIES_ROWS = [
    (T0, 10.0, 14.0, 12.0),
    (T0 + timedelta(hours=1), 11.0, 15.5, 13.25),
    (T0 + timedelta(hours=2), 9.5, 12.0, 10.75),
]


@pytest.mark.asyncio
async def test_windowed_cold_then_warm(cache, fake_redis, make_executor):
    store = FakeStore(rows=SERIES_ROWS)
    executor = make_executor(cache, store)

    cold = await executor.windowed(TEMPERATURE_24H)
    assert [r.avg for r in cold] == [12.0, 13.25, 10.75]
    assert store.calls == 1

    stored = await fake_redis.get(TEMPERATURE_24H.cache_key("lfpweather"))
    assert stored == WINDOWED_SERIES.dump_json(cold)

    warm = await executor.windowed(TEMPERATURE_24H)
    assert store.calls == 1
    assert WINDOWED_SERIES.dump_json(warm) == WINDOWED_SERIES.dump_json(cold)


@pytest.mark.asyncio
async def test_latest_served_once_from_store(cache, make_executor):
    store = FakeStore(rows=[(T0, 3.0)])
    executor = make_executor(cache, store)

    first = await executor.latest(UV_LAST)
    second = await executor.latest(UV_LAST)

    assert first == second == LatestRecord(time=T0, last=3.0)
    assert store.calls == 1
    assert "uv_index AS last" in store.queries[0]


@pytest.mark.asyncio
async def test_bad_series_rows_are_skipped(cache, make_executor):
    rows = [SERIES_ROWS[0], (T0, None, 1.0, 1.0), ("garbage",), SERIES_ROWS[2]]
    executor = make_executor(cache, FakeStore(rows=rows))

    records = await executor.windowed(TEMPERATURE_24H)

    assert [r.time for r in records] == [SERIES_ROWS[0][0], SERIES_ROWS[2][0]]


@pytest.mark.asyncio
async def test_bird_counts(cache, make_executor):
    rows = [("American Robin", 42), ("Steller's Jay", 7), (None, 1)]
    executor = make_executor(cache, FakeStore(rows=rows))

    counts = await executor.bird_counts(BirdCountQuery("24h"))

    assert counts == [
        BirdCount(common_name="American Robin", count=42),
        BirdCount(common_name="Steller's Jay", count=7),
    ]


@pytest.mark.asyncio
async def test_empty_series_is_cached_as_empty(cache, fake_redis, make_executor):
    store = FakeStore(rows=[])
    executor = make_executor(cache, store)

    assert await executor.windowed(TEMPERATURE_24H) == []
    assert await executor.windowed(TEMPERATURE_24H) == []
    assert store.calls == 1
    assert await fake_redis.get(TEMPERATURE_24H.cache_key("lfpweather")) == b"[]"


@pytest.mark.asyncio
async def test_latest_without_rows_fails(cache, fake_redis, make_executor):
    executor = make_executor(cache, FakeStore(rows=[]))
    with pytest.raises(QueryExecutionError) as exc:
        await executor.latest(UV_LAST)
    assert str(exc.value).startswith("failed to get uv_index: ")
    assert await fake_redis.get(UV_LAST.cache_key("lfpweather")) is None


@pytest.mark.asyncio
async def test_latest_unmappable_row_fails(cache, make_executor):
    executor = make_executor(cache, FakeStore(rows=[(T0, None)]))
    with pytest.raises(QueryExecutionError):
        await executor.latest(UV_LAST)


@pytest.mark.asyncio
async def test_non_finite_buckets_are_skipped_and_result_stays_cacheable(cache, make_executor):
    rows = [SERIES_ROWS[0], (SERIES_ROWS[1][0], 1.0, 2.0, float("nan")), SERIES_ROWS[2]]
    store = FakeStore(rows=rows)
    executor = make_executor(cache, store)

    cold = await executor.windowed(TEMPERATURE_24H)
    warm = await executor.windowed(TEMPERATURE_24H)

    assert [r.avg for r in cold] == [12.0, 10.75]
    assert warm == cold
    assert store.calls == 1


@pytest.mark.asyncio
async def test_latest_infinite_value_fails(cache, make_executor):
    executor = make_executor(cache, FakeStore(rows=[(T0, float("inf"))]))
    with pytest.raises(QueryExecutionError):
        await executor.latest(UV_LAST)


@pytest.mark.asyncio
async def test_store_failure_carries_descriptor_context(cache, fake_redis, make_executor):
    executor = make_executor(cache, FakeStore(error=StoreError("Code: 60. Table doesn't exist")))

    with pytest.raises(QueryExecutionError) as exc:
        await executor.windowed(TEMPERATURE_24H)

    assert exc.value.descriptor == TEMPERATURE_24H
    assert "failed to get temperature for the last 24h" in str(exc.value)
    assert await fake_redis.get(TEMPERATURE_24H.cache_key("lfpweather")) is None


@pytest.mark.asyncio
async def test_render_failure_never_reaches_store(cache, make_executor):
    store = FakeStore(rows=SERIES_ROWS)
    executor = make_executor(cache, store)
    bad = WindowedQuery("temperature", "vantagepro2plus", "1 fortnight", "24h")

    with pytest.raises(QueryRenderError):
        await executor.windowed(bad)
    assert store.calls == 0


@pytest.mark.asyncio
async def test_unreachable_cache_degrades_to_store(broken_cache, make_executor):
    store = FakeStore(rows=[(T0, 3.0)])
    executor = make_executor(broken_cache, store)

    assert (await executor.latest(UV_LAST)).last == 3.0
    assert (await executor.latest(UV_LAST)).last == 3.0
    assert store.calls == 2


@pytest.mark.asyncio
async def test_disabled_cache(make_executor):
    store = FakeStore(rows=SERIES_ROWS)
    executor = make_executor(CacheGateway(None, "lfpweather", 300), store)

    await executor.windowed(TEMPERATURE_24H)
    await executor.windowed(TEMPERATURE_24H)
    assert store.calls == 2


@pytest.mark.asyncio
async def test_undecodable_payload_is_replaced(cache, fake_redis, make_executor):
    key = UV_LAST.cache_key("lfpweather")
    await fake_redis.set(key, b"{not json")
    store = FakeStore(rows=[(T0, 4.0)])
    executor = make_executor(cache, store)

    assert (await executor.latest(UV_LAST)).last == 4.0
    assert store.calls == 1
    assert LATEST_VALUE.validate_json(await fake_redis.get(key)).last == 4.0


@pytest.mark.asyncio
async def test_cancelled_request_skips_population(cache, fake_redis, make_executor):
    release = asyncio.Event()

    class SlowStore(FakeStore):
        async def query(self, sql):
            await release.wait()
            return await super().query(sql)

    executor = make_executor(cache, SlowStore(rows=SERIES_ROWS))
    task = asyncio.create_task(executor.windowed(TEMPERATURE_24H))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await fake_redis.get(TEMPERATURE_24H.cache_key("lfpweather")) is None


@pytest.mark.asyncio
async def test_execute_dispatches_by_descriptor(cache, make_executor):
    executor = make_executor(cache, FakeStore(rows=[(T0, 1.0)]))
    assert isinstance(await executor.execute(UV_LAST), LatestRecord)
    with pytest.raises(TypeError):
        await executor.execute(object())  # type: ignore[arg-type]
