import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from lfpweather.core.logger import get_logger
from lfpweather.core.metrics import CACHE_LOOKUPS, CACHE_WRITES
from lfpweather.queries.descriptors import QueryDescriptor

logger = get_logger("cache.gateway")

# Failures that mean "the cache is unavailable", never "the request failed"
CACHE_FAILURES = (RedisError, OSError, asyncio.TimeoutError)


class CacheStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    ERROR = "error"
    DISABLED = "disabled"


@dataclass(frozen=True)
class CacheLookup:
    status: CacheStatus
    value: Optional[bytes] = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT


class CacheGateway:
    """Namespaced get/set over a Redis-protocol store.

    The cache is strictly an optimization: every backend failure is logged and
    reported as an ERROR lookup or a failed write, never raised.

    Notes:
        - One TTL applies to every key written through the gateway.
        - Every key is ``{prefix}-{suffix}`` so several deployments can share
          one backend instance.
    """

    def __init__(self, redis: Optional[Redis], prefix: str, ttl_seconds: int):
        self.r = redis
        self.prefix = prefix
        self.ttl_seconds = ttl_seconds

    @property
    def enabled(self) -> bool:
        return self.r is not None

    def key(self, suffix: str) -> str:
        return f"{self.prefix}-{suffix}"

    def key_for(self, descriptor: QueryDescriptor) -> str:
        return descriptor.cache_key(self.prefix)

    async def get(self, key: str) -> CacheLookup:
        if self.r is None:
            CACHE_LOOKUPS.labels(result=CacheStatus.DISABLED.value).inc()
            return CacheLookup(CacheStatus.DISABLED)
        try:
            raw = await self.r.get(key)
        except CACHE_FAILURES as e:
            logger.error("cache_get_failed", extra={"cache_entry": key, "error": str(e)})
            CACHE_LOOKUPS.labels(result=CacheStatus.ERROR.value).inc()
            return CacheLookup(CacheStatus.ERROR)
        if raw is None:
            CACHE_LOOKUPS.labels(result=CacheStatus.MISS.value).inc()
            return CacheLookup(CacheStatus.MISS)
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        CACHE_LOOKUPS.labels(result=CacheStatus.HIT.value).inc()
        return CacheLookup(CacheStatus.HIT, raw)

    async def set(self, key: str, value: bytes) -> bool:
        if self.r is None:
            return False
        try:
            await self.r.set(key, value, ex=self.ttl_seconds)
        except CACHE_FAILURES as e:
            logger.error("cache_set_failed", extra={"cache_entry": key, "error": str(e)})
            CACHE_WRITES.labels(result="error").inc()
            return False
        CACHE_WRITES.labels(result="ok").inc()
        return True

    async def ping(self) -> str:
        """Health state of the backend: ``ok``, ``error`` or ``disabled``."""
        if self.r is None:
            return "disabled"
        try:
            await self.r.ping()
        except CACHE_FAILURES as e:
            logger.warning("cache_ping_failed", extra={"error": str(e)})
            return "error"
        return "ok"

    async def close(self) -> None:
        if self.r is not None:
            await self.r.aclose()
