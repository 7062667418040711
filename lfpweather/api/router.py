from fastapi import APIRouter, Depends

from lfpweather.api.auth import require_api_key

from .endpoints import birdnet, electricitymaps, health, weather

v1_router = APIRouter(prefix="/api/v1", dependencies=[Depends(require_api_key)])
# fixed paths first; the weather route matches any two segments
v1_router.include_router(birdnet.router)
v1_router.include_router(electricitymaps.router)
v1_router.include_router(weather.router)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(v1_router)
