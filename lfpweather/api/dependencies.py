from fastapi import Request

from lfpweather.infrastructure.electricitymaps.client import ElectricityMapsClient
from lfpweather.services.query_executor import QueryExecutor


def get_executor(request: Request) -> QueryExecutor:
    return request.app.state.executor  # type: ignore[return-value]


def get_electricitymaps(request: Request) -> ElectricityMapsClient:
    return request.app.state.electricitymaps  # type: ignore[return-value]
