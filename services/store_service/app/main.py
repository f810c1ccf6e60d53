"""FastAPI application for the QuickCart API.

Everything customer, back-office and driver facing is served from one
process under ``/api``; the order-tracking WebSocket lives at ``/ws``.
"""

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.store_service.routers import (
    addresses_router,
    admin_inventory_router,
    catalog_router,
    coupons_router,
    dark_stores_router,
    delivery_router,
    location_router,
    orders_router,
    packer_router,
    realtime_router,
)
from services.wallet_service.routers import wallet_router
from slowapi.errors import RateLimitExceeded


def create_app() -> FastAPI:
    """Create and configure the QuickCart FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="QuickCart API",
        version="0.1.0",
        description="Quick-commerce backend: catalog, checkout, dark store fulfilment, delivery.",
    )

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Add global exception handlers for consistent error responses
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "quickcart"}

    # Customer routes
    app.include_router(catalog_router, prefix="/api")
    app.include_router(addresses_router, prefix="/api")
    app.include_router(coupons_router, prefix="/api")
    app.include_router(location_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")
    app.include_router(wallet_router, prefix="/api")

    # Fulfilment routes (packers, drivers)
    app.include_router(packer_router, prefix="/api")
    app.include_router(delivery_router, prefix="/api")

    # Back-office routes
    app.include_router(dark_stores_router, prefix="/api")
    app.include_router(admin_inventory_router, prefix="/api")

    # Live order events
    app.include_router(realtime_router)

    return app


app = create_app()
