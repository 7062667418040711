from fastapi import APIRouter, Depends, Request

from lfpweather.api.dependencies import get_electricitymaps
from lfpweather.api.problems import ProblemException
from lfpweather.core.errors import UpstreamError
from lfpweather.infrastructure.electricitymaps.client import (
    ElectricityMapsClient,
    adorn_power_breakdown,
)
from lfpweather.infrastructure.electricitymaps.models import AdornedPowerBreakdown

router = APIRouter(prefix="/electricitymaps", tags=["electricitymaps"])


@router.get("/power_breakdown/latest", response_model=AdornedPowerBreakdown)
async def get_power_breakdown_latest(
    request: Request,
    client: ElectricityMapsClient = Depends(get_electricitymaps),
):
    zone = request.app.state.electricitymaps_zone
    try:
        zones = await client.get_zones(use_api_key=False)
    except UpstreamError as e:
        raise ProblemException(502, "failed to get zones", f"error getting zones: {e}") from e
    try:
        breakdown = await client.get_power_breakdown_latest(zone)
    except UpstreamError as e:
        raise ProblemException(
            502,
            "failed to get power breakdown",
            f"error getting power breakdown for zone {zone}: {e}",
        ) from e
    return adorn_power_breakdown(breakdown, zones)
