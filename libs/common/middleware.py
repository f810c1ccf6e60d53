"""Request tracing for the QuickCart API.

Every request gets an ID (taken from ``X-Request-ID`` when a proxy already
assigned one), a start and finish log line with timing, and the ID echoed
back on the response so support can find a customer's checkout in the logs.
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

# Polled by the load balancer every few seconds.
QUIET_PATHS = {"/health"}


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        try:
            response = await self._traced(request, call_next)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response

    async def _traced(self, request: Request, call_next: Callable) -> Response:
        log_it = request.url.path not in QUIET_PATHS
        started = time.perf_counter()

        if log_it:
            query = str(request.url.query) or None
            logger.info("Request started", extra={"extra_fields": {"query": query}})

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "Unhandled error while serving request",
                extra={
                    "extra_fields": {
                        "error": str(exc),
                        "duration_ms": _elapsed_ms(started),
                    }
                },
            )
            raise

        if log_it:
            log = logger.warning if response.status_code >= 400 else logger.info
            log(
                "Request finished",
                extra={
                    "extra_fields": {
                        "status_code": response.status_code,
                        "duration_ms": _elapsed_ms(started),
                    }
                },
            )
        return response


def add_observability_middleware(app: FastAPI) -> None:
    """Set up logging and attach request tracing to ``app``."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
    logger.info("Request tracing enabled")
