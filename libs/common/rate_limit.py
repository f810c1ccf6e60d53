"""Request throttling for the QuickCart API (slowapi).

Counters live in memory unless RATE_LIMIT_STORAGE_URI names a shared
store, which is required once more than one API process is running.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings

DEFAULT_LIMIT = "120/minute"
# Nominatim's usage policy caps us well below the default.
GEOCODING_LIMIT = "30/minute"


def _client_address(request: Request) -> str:
    # Behind the load balancer the left-most forwarded hop is the customer.
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",", 1)[0].strip()
    return get_remote_address(request)


def _limit_key(request: Request) -> str:
    """Signed-in callers share one bucket across devices; others go by address."""
    user = getattr(request.state, "user", None)
    if user is None:
        return f"ip:{_client_address(request)}"
    return f"user:{user.user_id}"


@lru_cache
def get_limiter() -> Limiter:
    settings = get_settings()
    return Limiter(
        key_func=_limit_key,
        default_limits=[DEFAULT_LIMIT],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Render a 429 in the same ``{"detail", "code"}`` shape as other API errors."""
    limit = exc.detail or DEFAULT_LIMIT
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Too many requests ({limit}).",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


def location_limit(func: Callable) -> Callable:
    """Apply the geocoding quota to a location endpoint."""
    return limiter.limit(GEOCODING_LIMIT)(func)
