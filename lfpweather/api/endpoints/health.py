from fastapi import APIRouter, Request, Response

from lfpweather.core.errors import StoreError
from lfpweather.core.logger import get_logger

logger = get_logger("api.health")

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(request: Request, response: Response):
    cache_state = await request.app.state.cache.ping()
    try:
        await request.app.state.store.ping()
    except StoreError as e:
        logger.warning("healthz_store_unreachable", extra={"error": str(e)})
        response.status_code = 503
        return {"status": "unavailable", "store": str(e), "cache": cache_state}
    return {"status": "ok", "store": "ok", "cache": cache_state}


@router.get("/readyz")
async def readyz(request: Request):
    if request.app.state.ready_event.is_set():
        return {"status": "ready"}
    return Response(status_code=503, content="not ready")
