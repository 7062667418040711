from datetime import datetime, timezone
from typing import List, Optional

import fakeredis.aioredis
import pytest

from lfpweather.core.errors import NoRowsError, StoreError
from lfpweather.infrastructure.redis.gateway import CacheGateway
from lfpweather.queries.renderer import QueryRenderer
from lfpweather.services.query_executor import QueryExecutor

T0 = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeStore:
    """Stands in for ClickHouseStore; records every query it is asked to run."""

    def __init__(self, rows: Optional[List[tuple]] = None, error: Optional[Exception] = None):
        self.rows = rows if rows is not None else []
        self.error = error
        self.queries: List[str] = []
        self.closed = False

    async def query(self, sql: str):
        self.queries.append(sql)
        if self.error is not None:
            raise self.error
        return list(self.rows)

    async def query_row(self, sql: str):
        rows = await self.query(sql)
        if not rows:
            raise NoRowsError("no rows in result set")
        return rows[0]

    async def ping(self):
        if self.error is not None:
            raise StoreError(str(self.error))

    async def close(self):
        self.closed = True

    @property
    def calls(self) -> int:
        return len(self.queries)


class BrokenRedis:
    """Redis client whose every command fails at the connection level."""

    async def get(self, key):
        raise ConnectionError("connection refused")

    async def set(self, key, value, ex=None):
        raise ConnectionError("connection refused")

    async def ping(self):
        raise ConnectionError("connection refused")

    async def aclose(self):
        return None


@pytest.fixture
def fake_redis():
    return fakeredis.aioredis.FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheGateway(fake_redis, prefix="lfpweather", ttl_seconds=300)


@pytest.fixture
def broken_cache():
    return CacheGateway(BrokenRedis(), prefix="lfpweather", ttl_seconds=300)  # type: ignore[arg-type]


@pytest.fixture
def make_executor():
    def _make(cache: CacheGateway, store: FakeStore) -> QueryExecutor:
        return QueryExecutor(cache, QueryRenderer(), store)  # type: ignore[arg-type]

    return _make
