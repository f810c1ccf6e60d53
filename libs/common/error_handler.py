"""Global exception handlers for consistent error responses.

Usage:
    from libs.common.error_handler import add_exception_handlers

    app = FastAPI()
    add_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from libs.common.errors import AppError
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Application error on %s: %s", request.url.path, exc.detail)
    else:
        logger.info(
            "Rejected %s %s: %s", request.method, request.url.path, exc.detail
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=exc.headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "code": "INTERNAL_ERROR",
            "request_id": get_request_id(),
        },
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain errors and anything left unhandled."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
