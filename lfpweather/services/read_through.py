from typing import Awaitable, Callable, TypeVar

from pydantic import TypeAdapter, ValidationError

from lfpweather.core.logger import get_logger
from lfpweather.core.metrics import CACHE_LOOKUPS
from lfpweather.infrastructure.redis.gateway import CacheGateway

logger = get_logger("services.read_through")

T = TypeVar("T")


async def read_through(
    cache: CacheGateway,
    key: str,
    adapter: TypeAdapter,
    load: Callable[[], Awaitable[T]],
) -> T:
    """Serve ``key`` from the cache, falling back to ``load`` on any miss.

    A payload that no longer decodes is treated as a miss and overwritten. The
    loaded value is written back best effort; errors from ``load`` propagate and
    leave the cache untouched.
    """
    lookup = await cache.get(key)
    if lookup.hit:
        try:
            return adapter.validate_json(lookup.value)
        except ValidationError as e:
            CACHE_LOOKUPS.labels(result="corrupt").inc()
            logger.warning(
                "cache_payload_undecodable", extra={"cache_entry": key, "error": str(e)}
            )

    value = await load()
    await cache.set(key, adapter.dump_json(value, by_alias=True))
    return value
