import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import redis.asyncio as redis
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from lfpweather.api.auth import APIKeyAuthenticator
from lfpweather.api.problems import install_problem_handlers
from lfpweather.api.router import api_router
from lfpweather.core.config import Settings, settings
from lfpweather.core.logger import get_logger
from lfpweather.core.logging_config import configure_logging
from lfpweather.infrastructure.clickhouse.store import ClickHouseStore
from lfpweather.infrastructure.electricitymaps.client import ElectricityMapsClient
from lfpweather.infrastructure.redis.gateway import CACHE_FAILURES, CacheGateway
from lfpweather.queries.renderer import QueryRenderer
from lfpweather.services.query_executor import QueryExecutor
from lfpweather.utils.retry import Backoff, retry_async

configure_logging(
    service=settings.otel_service_name,
    environment=settings.app_environment,
    level=settings.app_log_level,
    redaction_patterns=settings.app_log_redaction_patterns,
)
logger = get_logger("lfpweather.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("lfpweather_api_starting", extra={"environment": settings.app_environment})
    app.state.ready_event = asyncio.Event()

    app.state.store = await ClickHouseStore.connect(
        host=settings.clickhouse_host,
        port=settings.clickhouse_port,
        database=settings.clickhouse_db,
        user=settings.clickhouse_user,
        password=settings.clickhouse_password,
        pool_size=settings.clickhouse_pool_size,
        ping_timeout=settings.clickhouse_ping_timeout_seconds,
    )
    app.state.cache = CacheGateway(
        await _init_redis_with_retry(settings),
        settings.cache_key_prefix,
        settings.cache_ttl_seconds,
    )
    app.state.executor = QueryExecutor(app.state.cache, QueryRenderer(), app.state.store)
    app.state.authenticator = APIKeyAuthenticator(
        settings.authentication_enabled, settings.api_keys
    )
    app.state.http_client = httpx.AsyncClient(timeout=settings.electricitymaps_timeout_seconds)
    app.state.electricitymaps = ElectricityMapsClient(
        settings.electricitymaps_api_key,
        app.state.http_client,
        app.state.cache,
        base_url=settings.electricitymaps_base_url,
    )
    app.state.electricitymaps_zone = settings.electricitymaps_zone
    app.state.ready_event.set()
    logger.info("lfpweather_api_ready")
    try:
        yield
    finally:
        logger.info("lfpweather_api_stopping")
        await app.state.http_client.aclose()
        await app.state.cache.close()
        await app.state.store.close()


async def _init_redis_with_retry(cfg: Settings) -> Optional[redis.Redis]:
    """Connect the cache, or return None to serve uncached."""
    if not cfg.cache_enabled:
        logger.info("cache_disabled")
        return None

    async def _connect():
        r = redis.Redis(
            host=cfg.redis_host,
            port=cfg.redis_port,
            db=cfg.redis_db,
            password=cfg.redis_password,
            socket_timeout=cfg.cache_socket_timeout_seconds,
            socket_connect_timeout=cfg.cache_socket_timeout_seconds,
        )
        try:
            await r.ping()
        except CACHE_FAILURES:
            await r.aclose()
            raise
        return r

    async def _on_retry(attempt: int, exc: BaseException, sleep_for: float):
        logger.warning(
            "redis_connect_retry",
            extra={
                "attempt": attempt,
                "error": str(exc),
                "sleep_for": round(sleep_for, 2),
            },
        )

    try:
        r = await retry_async(
            _connect,
            attempts=6,
            backoff=Backoff(base=0.5, cap=8.0, jitter=0.2),
            retry_on=CACHE_FAILURES,
            on_retry=_on_retry,
        )
    except CACHE_FAILURES as e:
        logger.error("redis_unavailable_serving_uncached", extra={"error": str(e)})
        return None
    logger.info("redis_connected", extra={"host": cfg.redis_host, "port": cfg.redis_port})
    return r


app = FastAPI(title="lfpweather API", version="0.1.0", lifespan=lifespan)
install_problem_handlers(app)
app.include_router(api_router)

instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/docs", "/openapi.json", "/metrics", "/healthz", "/readyz"],
)
instrumentator.instrument(app).expose(app, include_in_schema=False)
