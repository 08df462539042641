"""
Translate app errors into JSON responses the front end can show as a
dismissible notification: {"error": {"type": ..., "message": ...}}.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.errors import (
    DealflowError,
    ExhaustedRetries,
    GenerationError,
    MalformedResponse,
    NotAuthenticated,
    NotFound,
    RateLimited,
    RequestCancelled,
    RequestInFlight,
    RequestRejected,
    TransientFailure,
)
from app.modules.leads.generation import LeadNotAnalyzed

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[Exception], int] = {
    NotAuthenticated: 401,
    NotFound: 404,
    RequestInFlight: 409,
    LeadNotAnalyzed: 422,
    RateLimited: 429,
    RequestCancelled: 499,
    MalformedResponse: 502,
    RequestRejected: 502,
    GenerationError: 502,
    TransientFailure: 503,
    ExhaustedRetries: 503,
    DealflowError: 400,
}


def status_for(error: Exception) -> int:
    for cls in type(error).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


def error_body(error: Exception) -> dict:
    return {"error": {"type": type(error).__name__, "message": str(error)}}


async def handle_app_error(request: Request, exc: DealflowError) -> JSONResponse:
    status = status_for(exc)
    logger.warning("%s %s -> %d %s: %s", request.method, request.url.path, status, type(exc).__name__, exc)
    return JSONResponse(status_code=status, content=error_body(exc))


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    logger.warning("%s %s -> 422: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=422, content=error_body(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DealflowError, handle_app_error)
    app.add_exception_handler(ValueError, handle_value_error)
