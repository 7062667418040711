from fastapi import APIRouter, Depends, Response

from lfpweather.api.dependencies import get_executor
from lfpweather.api.problems import ProblemException
from lfpweather.core.errors import QueryExecutionError
from lfpweather.domain.catalog import descriptor_for
from lfpweather.services.query_executor import RESULT_CODECS, QueryExecutor

router = APIRouter(tags=["weather"])


@router.get("/{metric}/{window}")
async def get_metric(metric: str, window: str, executor: QueryExecutor = Depends(get_executor)):
    """Latest reading (``window == "last"``) or bucketed aggregates of one metric."""
    descriptor = descriptor_for(metric, window)
    try:
        result = await executor.execute(descriptor)
    except QueryExecutionError as e:
        raise ProblemException(500, f"failed to get {window} data", str(e)) from e
    body = RESULT_CODECS[descriptor.kind].dump_json(result)
    return Response(content=body, media_type="application/json")
