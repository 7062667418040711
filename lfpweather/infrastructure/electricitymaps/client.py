"""Async client for the Electricity Maps v3 API."""

from typing import Dict, Mapping, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from lfpweather.core.errors import UpstreamError
from lfpweather.core.logger import get_logger
from lfpweather.core.metrics import UPSTREAM_REQUESTS
from lfpweather.infrastructure.electricitymaps.models import (
    POWER_BREAKDOWN,
    ZONES,
    AdornedFlow,
    AdornedPowerBreakdown,
    PowerBreakdown,
    Zone,
)
from lfpweather.infrastructure.redis.gateway import CacheGateway
from lfpweather.services.read_through import read_through

logger = get_logger("electricitymaps.client")

DEFAULT_BASE_URL = "https://api.electricitymap.org/v3"
# Seattle City Light
DEFAULT_ZONE = "US-NW-SCL"

AUTH_HEADER = "auth-token"


class ElectricityMapsClient:
    """Read-through client for zone metadata and the latest power breakdown.

    Responses are cached through the same gateway as the weather queries, so an
    unreachable cache only costs an extra upstream request.
    """

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        cache: CacheGateway,
        base_url: str = DEFAULT_BASE_URL,
    ):
        self.api_key = api_key
        self.http = http_client
        self.cache = cache
        self.base_url = base_url.rstrip("/")

    async def get_zones(self, use_api_key: bool = False) -> Dict[str, Zone]:
        """All zones keyed by zone code.

        Without the API key the upstream lists every zone rather than only the
        ones the key may query.
        """

        async def load() -> Dict[str, Zone]:
            headers = {AUTH_HEADER: self.api_key} if use_api_key else {}
            return await self._get("zones", "/zones", ZONES, headers=headers)

        return await read_through(self.cache, self.cache.key("zones"), ZONES, load)

    async def get_power_breakdown_latest(self, zone: str = DEFAULT_ZONE) -> PowerBreakdown:
        async def load() -> PowerBreakdown:
            return await self._get(
                "power breakdown",
                "/power-breakdown/latest",
                POWER_BREAKDOWN,
                params={"zone": zone},
                headers={AUTH_HEADER: self.api_key},
            )

        key = self.cache.key(f"power-breakdown-latest-{zone}")
        return await read_through(self.cache, key, POWER_BREAKDOWN, load)

    async def _get(
        self,
        endpoint: str,
        path: str,
        adapter: TypeAdapter,
        params: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ):
        try:
            resp = await self.http.get(f"{self.base_url}{path}", params=params, headers=headers)
        except httpx.HTTPError as e:
            UPSTREAM_REQUESTS.labels(endpoint=endpoint, outcome="error").inc()
            logger.error("upstream_request_failed", extra={"endpoint": endpoint, "error": str(e)})
            raise UpstreamError(f"failed to get {endpoint}: {e}") from e

        if resp.status_code != httpx.codes.OK:
            UPSTREAM_REQUESTS.labels(endpoint=endpoint, outcome="bad_status").inc()
            logger.error(
                "upstream_bad_status",
                extra={"endpoint": endpoint, "status_code": resp.status_code},
            )
            raise UpstreamError(
                f"failed to get {endpoint}: {resp.status_code} {resp.reason_phrase}"
            )

        try:
            value = adapter.validate_json(resp.content)
        except ValidationError as e:
            UPSTREAM_REQUESTS.labels(endpoint=endpoint, outcome="undecodable").inc()
            raise UpstreamError(f"failed to decode {endpoint}: {e}") from e
        UPSTREAM_REQUESTS.labels(endpoint=endpoint, outcome="ok").inc()
        return value


def _adorn_flows(
    flows: Mapping[str, Optional[float]], zones: Mapping[str, Zone], direction: str
) -> Dict[str, AdornedFlow]:
    adorned: Dict[str, AdornedFlow] = {}
    for code, value in flows.items():
        zone = zones.get(code)
        if zone is None:
            logger.warning("zone_not_found", extra={"zone": code, "direction": direction})
            continue
        adorned[code] = AdornedFlow(zone_name=zone.zone_name, value=value)
    return adorned


def adorn_power_breakdown(
    breakdown: PowerBreakdown, zones: Mapping[str, Zone]
) -> AdornedPowerBreakdown:
    """Attach zone names to the breakdown and to each import/export partner.

    Partners missing from ``zones`` are dropped.
    """
    own = zones.get(breakdown.zone)
    if own is None:
        logger.warning("zone_not_found", extra={"zone": breakdown.zone, "direction": "self"})

    fields = breakdown.model_dump(exclude={"power_import_breakdown", "power_export_breakdown"})
    return AdornedPowerBreakdown(
        **fields,
        zone_name=own.zone_name if own is not None else None,
        power_import_breakdown=_adorn_flows(breakdown.power_import_breakdown, zones, "import"),
        power_export_breakdown=_adorn_flows(breakdown.power_export_breakdown, zones, "export"),
    )
