from fastapi import APIRouter, Depends, Response

from lfpweather.api.dependencies import get_executor
from lfpweather.api.problems import ProblemException
from lfpweather.core.errors import QueryExecutionError
from lfpweather.domain.catalog import bird_count_descriptor
from lfpweather.domain.models import BIRD_COUNTS
from lfpweather.services.query_executor import QueryExecutor

router = APIRouter(prefix="/birdnet", tags=["birdnet"])


@router.get("/{window}")
async def get_bird_counts(window: str, executor: QueryExecutor = Depends(get_executor)):
    descriptor = bird_count_descriptor(window)
    try:
        counts = await executor.bird_counts(descriptor)
    except QueryExecutionError as e:
        raise ProblemException(500, f"failed to get {window} data", str(e)) from e
    return Response(content=BIRD_COUNTS.dump_json(counts), media_type="application/json")
