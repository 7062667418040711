"""Read-through execution of query descriptors.

Each public method follows the same path: derive the key from the descriptor,
try the cache, and on anything but a clean hit render the query, run it, map
the rows and write the result back.
"""

from typing import Awaitable, Callable, List, Sequence, TypeVar, Union

from lfpweather.core.errors import QueryExecutionError, RowScanError, StoreError
from lfpweather.core.logger import get_logger
from lfpweather.core.metrics import SKIPPED_ROWS, STORE_QUERIES
from lfpweather.domain.models import (
    BIRD_COUNTS,
    LATEST_VALUE,
    WINDOWED_SERIES,
    BirdCount,
    LatestRecord,
    WindowedRecord,
)
from lfpweather.infrastructure.clickhouse.store import ClickHouseStore
from lfpweather.infrastructure.redis.gateway import CacheGateway
from lfpweather.queries.descriptors import (
    BirdCountQuery,
    LatestQuery,
    QueryDescriptor,
    QueryKind,
    WindowedQuery,
)
from lfpweather.queries.renderer import QueryRenderer
from lfpweather.services.read_through import read_through

logger = get_logger("services.query_executor")

R = TypeVar("R")

QueryResult = Union[List[WindowedRecord], LatestRecord, List[BirdCount]]

# Encoders for each result shape, shared by the cache and the HTTP layer
RESULT_CODECS = {
    QueryKind.WINDOWED: WINDOWED_SERIES,
    QueryKind.LATEST: LATEST_VALUE,
    QueryKind.BIRD_COUNT: BIRD_COUNTS,
}


class QueryExecutor:
    def __init__(self, cache: CacheGateway, renderer: QueryRenderer, store: ClickHouseStore):
        self.cache = cache
        self.renderer = renderer
        self.store = store

    async def windowed(self, q: WindowedQuery) -> List[WindowedRecord]:
        async def load() -> List[WindowedRecord]:
            rows = await self._rows(q)
            return self._map_rows(q, rows, WindowedRecord.from_row)

        return await read_through(self.cache, self.cache.key_for(q), WINDOWED_SERIES, load)

    async def latest(self, q: LatestQuery) -> LatestRecord:
        async def load() -> LatestRecord:
            row = await self._row(q)
            try:
                return LatestRecord.from_row(row)
            except RowScanError as e:
                raise QueryExecutionError(q, e) from e

        return await read_through(self.cache, self.cache.key_for(q), LATEST_VALUE, load)

    async def bird_counts(self, q: BirdCountQuery) -> List[BirdCount]:
        async def load() -> List[BirdCount]:
            rows = await self._rows(q)
            return self._map_rows(q, rows, BirdCount.from_row)

        return await read_through(self.cache, self.cache.key_for(q), BIRD_COUNTS, load)

    async def execute(self, descriptor: QueryDescriptor) -> QueryResult:
        if isinstance(descriptor, WindowedQuery):
            return await self.windowed(descriptor)
        if isinstance(descriptor, LatestQuery):
            return await self.latest(descriptor)
        if isinstance(descriptor, BirdCountQuery):
            return await self.bird_counts(descriptor)
        raise TypeError(f"unsupported descriptor {type(descriptor).__name__}")

    async def _rows(self, q: QueryDescriptor) -> List[tuple]:
        return await self._run(q, self.store.query)

    async def _row(self, q: QueryDescriptor) -> Sequence:
        return await self._run(q, self.store.query_row)

    async def _run(self, q: QueryDescriptor, fetch: Callable[[str], Awaitable[R]]) -> R:
        sql = self.renderer.render(q)
        try:
            result = await fetch(sql)
        except StoreError as e:
            STORE_QUERIES.labels(kind=q.kind.value, outcome="error").inc()
            logger.error(
                "store_query_failed",
                extra={"query_kind": q.kind.value, "canonical": q.canonical_form(), "error": str(e)},
            )
            raise QueryExecutionError(q, e) from e
        STORE_QUERIES.labels(kind=q.kind.value, outcome="ok").inc()
        return result

    @staticmethod
    def _map_rows(
        q: QueryDescriptor, rows: Sequence[Sequence], scan: Callable[[Sequence], R]
    ) -> List[R]:
        records: List[R] = []
        for row in rows:
            try:
                records.append(scan(row))
            except RowScanError as e:
                SKIPPED_ROWS.inc()
                logger.warning(
                    "row_skipped",
                    extra={"query_kind": q.kind.value, "canonical": q.canonical_form(), "error": str(e)},
                )
        return records
