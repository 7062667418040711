"""ClickHouse adapter for the aggregation queries."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Optional, Sequence, Set, Tuple

from clickhouse_driver import Client
from clickhouse_driver.errors import Error as DriverError

from lfpweather.core.errors import NoRowsError, StoreError, StoreUnavailableError
from lfpweather.core.logger import get_logger
from lfpweather.core.metrics import STORE_LATENCY
from lfpweather.utils.concurrency import run_blocking

logger = get_logger("store.clickhouse")

DRIVER_FAILURES = (DriverError, OSError, EOFError)

PING_QUERY = "SELECT 1"


class ClickHouseStore:
    """Fixed-size pool of synchronous clickhouse-driver connections.

    A driver ``Client`` owns a single socket and must not run two queries at
    once, so each query checks one out of the pool for its duration. The blocking
    ``execute`` runs in a worker thread.
    """

    def __init__(self, client_factory: Callable[[], Any], pool_size: int):
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        self._factory = client_factory
        self._pool: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=pool_size)
        for _ in range(pool_size):
            self._pool.put_nowait(client_factory())
        self.pool_size = pool_size
        self._in_use: Set[Any] = set()
        self._closed = False

    @classmethod
    async def connect(
        cls,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        pool_size: int = 8,
        ping_timeout: float = 5.0,
        client_factory: Optional[Callable[[], Any]] = None,
    ) -> "ClickHouseStore":
        """Build the pool and verify the server answers within ``ping_timeout``.

        Raises:
            StoreUnavailableError: the ping failed or timed out.
        """
        if client_factory is None:

            def client_factory() -> Client:
                return Client(
                    host=host,
                    port=port,
                    user=user,
                    password=password,
                    database=database,
                )

        store = cls(client_factory, pool_size)
        try:
            await asyncio.wait_for(store.ping(), timeout=ping_timeout)
        except asyncio.TimeoutError as e:
            await store.close()
            raise StoreUnavailableError(
                f"clickhouse at {host}:{port} did not answer within {ping_timeout}s"
            ) from e
        except StoreError as e:
            await store.close()
            raise StoreUnavailableError(f"clickhouse at {host}:{port}: {e}") from e
        logger.info(
            "clickhouse_connected",
            extra={"host": host, "port": port, "database": database, "pool_size": pool_size},
        )
        return store

    @asynccontextmanager
    async def _checkout(self) -> AsyncIterator[Any]:
        client = await self._pool.get()
        self._in_use.add(client)
        healthy = False
        try:
            yield client
            healthy = True
        finally:
            self._in_use.discard(client)
            # after close() the connection is already disconnected
            if not self._closed:
                if healthy:
                    self._pool.put_nowait(client)
                else:
                    # The connection may be mid-query or broken; never reuse it.
                    self._discard(client)
                    self._pool.put_nowait(self._factory())

    def _discard(self, client: Any) -> None:
        try:
            client.disconnect()
        except DRIVER_FAILURES as e:
            logger.debug("clickhouse_disconnect_failed", extra={"error": str(e)})

    async def _execute(self, query: str) -> List[Tuple]:
        async with self._checkout() as client:
            try:
                rows = await run_blocking(client.execute, query, histogram=STORE_LATENCY)
            except DRIVER_FAILURES as e:
                raise StoreError(str(e) or e.__class__.__name__) from e
        return [tuple(row) for row in rows]

    async def ping(self) -> None:
        await self._execute(PING_QUERY)

    async def query(self, query: str) -> List[Tuple]:
        return await self._execute(query)

    async def query_row(self, query: str) -> Sequence:
        rows = await self._execute(query)
        if not rows:
            raise NoRowsError("no rows in result set")
        return rows[0]

    async def close(self) -> None:
        """Disconnect idle connections and any still held by in-flight queries."""
        self._closed = True
        while not self._pool.empty():
            self._discard(self._pool.get_nowait())
        for client in list(self._in_use):
            self._discard(client)
        self._in_use.clear()
        logger.info("clickhouse_pool_closed")
