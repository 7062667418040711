"""RFC 9457 problem documents for every caller-visible failure."""

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from lfpweather.core.errors import QueryRenderError, WeatherAPIError
from lfpweather.core.logger import get_logger
from lfpweather.domain.catalog import UnknownMetricError

logger = get_logger("api.problems")

PROBLEM_MEDIA_TYPE = "application/problem+json"


class ProblemDetail(BaseModel):
    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: str


class ProblemException(Exception):
    """Raised by handlers that know the title the caller should see."""

    def __init__(self, status: int, title: str, detail: str):
        self.status = status
        self.title = title
        self.detail = detail
        super().__init__(f"{title}: {detail}")


def problem_response(request: Request, status: int, title: str, detail: str) -> JSONResponse:
    body = ProblemDetail(title=title, status=status, detail=detail, instance=request.url.path)
    return JSONResponse(body.model_dump(), status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def _problem(request: Request, exc: ProblemException) -> JSONResponse:
    return problem_response(request, exc.status, exc.title, exc.detail)


async def _unknown_metric(request: Request, exc: UnknownMetricError) -> JSONResponse:
    return problem_response(request, 404, "unknown metric", str(exc))


async def _render_failed(request: Request, exc: QueryRenderError) -> JSONResponse:
    logger.error("query_render_failed", extra={"path": request.url.path, "error": str(exc)})
    return problem_response(request, 500, "failed to render query", str(exc))


async def _weather_api_error(request: Request, exc: WeatherAPIError) -> JSONResponse:
    logger.error("request_failed", extra={"path": request.url.path, "error": str(exc)})
    return problem_response(request, 500, "internal server error", str(exc))


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = problem_response(
        request, exc.status_code, HTTPStatus(exc.status_code).phrase, str(exc.detail)
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_unhandled_error",
        extra={"path": request.url.path, "error": str(exc)},
        exc_info=exc,
    )
    return problem_response(request, 500, "internal server error", exc.__class__.__name__)


def install_problem_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProblemException, _problem)
    app.add_exception_handler(UnknownMetricError, _unknown_metric)
    app.add_exception_handler(QueryRenderError, _render_failed)
    app.add_exception_handler(WeatherAPIError, _weather_api_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    # Starlette runs this one in ServerErrorMiddleware, which re-raises after responding
    app.add_exception_handler(Exception, _unhandled)
