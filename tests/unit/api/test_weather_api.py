import asyncio

import pytest
from conftest import T0, FakeStore
from fastapi.testclient import TestClient

from lfpweather.api.auth import APIKeyAuthenticator
from lfpweather.api.dependencies import get_electricitymaps
from lfpweather.core.errors import StoreError, UpstreamError
from lfpweather.infrastructure.electricitymaps.models import PowerBreakdown, Zone
from lfpweather.infrastructure.redis.gateway import CacheGateway
from lfpweather.main import app
from lfpweather.queries.renderer import QueryRenderer
from lfpweather.services.query_executor import QueryExecutor

SERIES_ROWS = [(T0, 10.0, 14.0, 12.0), (T0, 11.0, 15.5, 13.25)]


class DictRedis:
    """In-process Redis stand-in usable from the TestClient's event loop."""

    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value

    async def ping(self):
        return True

    async def aclose(self):
        return None


class DummyElectricityMaps:
    def __init__(self, fail_zones=False, fail_breakdown=False):
        self.fail_zones = fail_zones
        self.fail_breakdown = fail_breakdown

    async def get_zones(self, use_api_key=False):
        if self.fail_zones:
            raise UpstreamError("failed to get zones: 503 Service Unavailable")
        return {
            "US-NW-SCL": Zone(zone_name="Seattle City Light"),
            "CA-BC": Zone(zone_name="British Columbia"),
        }

    async def get_power_breakdown_latest(self, zone):
        if self.fail_breakdown:
            raise UpstreamError("failed to get power breakdown: 401 Unauthorized")
        return PowerBreakdown.model_validate(
            {"zone": zone, "powerExportBreakdown": {"CA-BC": 12, "MX-BC": 1}}
        )


def install(store, redis_client=None, auth=None, electricitymaps=None):
    cache = CacheGateway(redis_client, "lfpweather", 300)
    app.state.cache = cache
    app.state.store = store
    app.state.executor = QueryExecutor(cache, QueryRenderer(), store)
    app.state.authenticator = auth or APIKeyAuthenticator(False, [])
    app.state.electricitymaps_zone = "US-NW-SCL"
    app.dependency_overrides[get_electricitymaps] = lambda: electricitymaps or DummyElectricityMaps()


@pytest.fixture(autouse=True)
def setup_app_state():
    app.state.ready_event = asyncio.Event()
    app.state.ready_event.set()
    install(FakeStore(rows=SERIES_ROWS))
    yield
    app.dependency_overrides.clear()


def test_series_endpoint():
    resp = TestClient(app).get("/api/v1/temperature/24h")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/json")
    body = resp.json()
    assert [row["avg"] for row in body] == [12.0, 13.25]
    assert set(body[0]) == {"time", "min", "max", "avg"}


def test_last_endpoint():
    install(FakeStore(rows=[(T0, 3.0)]))
    resp = TestClient(app).get("/api/v1/uv_index/last")
    assert resp.status_code == 200
    assert resp.json()["last"] == 3.0


def test_cold_and_warm_responses_are_identical():
    store = FakeStore(rows=SERIES_ROWS)
    install(store, redis_client=DictRedis())
    client = TestClient(app)
    cold = client.get("/api/v1/humidity/7d")
    warm = client.get("/api/v1/humidity/7d")
    assert cold.status_code == warm.status_code == 200
    assert cold.content == warm.content
    assert store.calls == 1


def test_birdnet_endpoint():
    install(FakeStore(rows=[("American Robin", 42)]))
    resp = TestClient(app).get("/api/v1/birdnet/24h")
    assert resp.status_code == 200
    assert resp.json() == [{"common_name": "American Robin", "count": 42}]


def test_unknown_metric_is_problem_404():
    resp = TestClient(app).get("/api/v1/dew_point/24h")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["title"] == "unknown metric"
    assert body["status"] == 404
    assert body["instance"] == "/api/v1/dew_point/24h"


def test_birdnet_unknown_window_is_404():
    assert TestClient(app).get("/api/v1/birdnet/7d").status_code == 404


def test_store_failure_is_problem_500():
    install(FakeStore(error=StoreError("connection reset")))
    resp = TestClient(app).get("/api/v1/temperature/12h")
    assert resp.status_code == 500
    body = resp.json()
    assert body["title"] == "failed to get 12h data"
    assert "temperature for the last 12h" in body["detail"]


def test_latest_without_rows_is_problem_500():
    install(FakeStore(rows=[]))
    resp = TestClient(app).get("/api/v1/co2/last")
    assert resp.status_code == 500
    assert resp.json()["title"] == "failed to get last data"


def test_unexpected_error_is_problem_500():
    install(FakeStore(error=RuntimeError("driver blew up")))
    resp = TestClient(app, raise_server_exceptions=False).get("/api/v1/temperature/24h")
    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["title"] == "internal server error"
    assert body["detail"] == "RuntimeError"
    assert body["instance"] == "/api/v1/temperature/24h"


def test_unrouted_path_is_problem_json():
    resp = TestClient(app).get("/nope")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.json()["title"] == "Not Found"


def test_api_key_required_when_enabled():
    install(FakeStore(rows=SERIES_ROWS), auth=APIKeyAuthenticator(True, ["k1", "k2"]))
    client = TestClient(app)

    missing = client.get("/api/v1/temperature/24h")
    assert missing.status_code == 401
    assert missing.json()["title"] == "invalid api key"

    wrong = client.get("/api/v1/temperature/24h", headers={"X-API-Key": "nope"})
    assert wrong.status_code == 401
    assert wrong.json()["detail"] == "nope is not a valid api key"

    ok = client.get("/api/v1/temperature/24h", headers={"X-API-Key": "k2"})
    assert ok.status_code == 200


def test_health_is_not_authenticated():
    install(FakeStore(rows=SERIES_ROWS), auth=APIKeyAuthenticator(True, ["k1"]))
    assert TestClient(app).get("/healthz").status_code == 200


def test_power_breakdown_adorned():
    resp = TestClient(app).get("/api/v1/electricitymaps/power_breakdown/latest")
    assert resp.status_code == 200
    body = resp.json()
    assert body["zoneName"] == "Seattle City Light"
    assert body["powerExportBreakdown"] == {"CA-BC": {"zoneName": "British Columbia", "value": 12}}


@pytest.mark.parametrize(
    "dummy,title",
    [
        (DummyElectricityMaps(fail_zones=True), "failed to get zones"),
        (DummyElectricityMaps(fail_breakdown=True), "failed to get power breakdown"),
    ],
)
def test_power_breakdown_upstream_failure(dummy, title):
    install(FakeStore(), electricitymaps=dummy)
    resp = TestClient(app).get("/api/v1/electricitymaps/power_breakdown/latest")
    assert resp.status_code == 502
    assert resp.json()["title"] == title


def test_healthz_reports_cache_and_store():
    resp = TestClient(app).get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "store": "ok", "cache": "disabled"}


def test_healthz_store_down():
    install(FakeStore(error=StoreError("down")))
    resp = TestClient(app).get("/healthz")
    assert resp.status_code == 503
    assert resp.json()["status"] == "unavailable"


def test_readyz_not_ready():
    client = TestClient(app)
    app.state.ready_event.clear()
    try:
        assert client.get("/readyz").status_code == 503
    finally:
        app.state.ready_event.set()
    assert client.get("/readyz").status_code == 200


def test_metrics_exposed():
    resp = TestClient(app).get("/metrics")
    assert resp.status_code == 200
    assert "lfpweather_cache_lookups_total" in resp.text
