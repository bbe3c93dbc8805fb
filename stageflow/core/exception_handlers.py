"""
Maps domain exceptions to HTTP responses
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stageflow.core.errors import (
    CompileError,
    ExecutionError,
    ResolutionError,
    StageflowError,
    StageNotFoundError,
    StageValidationError,
    SuggestionError,
    SuggestionUnavailableError,
    TableInUseError,
    TableNotFoundError,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
STATUS_CODES = [
    (StageValidationError, 422),
    (CompileError, 422),
    (ResolutionError, 409),
    (TableInUseError, 409),
    (ExecutionError, 400),
    (StageNotFoundError, 404),
    (TableNotFoundError, 404),
    (SuggestionUnavailableError, 503),
    (SuggestionError, 502),
]


def status_for(exc: StageflowError) -> int:
    for exc_type, status in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status
    return 400


async def stageflow_error_handler(request: Request, exc: StageflowError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} -> {status}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status}: {exc.message}")
    return JSONResponse(status_code=status, content=exc.to_dict())


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StageflowError, stageflow_error_handler)
