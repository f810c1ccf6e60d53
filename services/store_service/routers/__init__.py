"""Store service routers package."""

from services.store_service.routers.addresses import router as addresses_router
from services.store_service.routers.admin_inventory import (
    router as admin_inventory_router,
)
from services.store_service.routers.catalog import router as catalog_router
from services.store_service.routers.coupons import router as coupons_router
from services.store_service.routers.dark_stores import router as dark_stores_router
from services.store_service.routers.delivery import router as delivery_router
from services.store_service.routers.location import router as location_router
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.packer import router as packer_router
from services.store_service.routers.realtime import router as realtime_router

__all__ = [
    "addresses_router",
    "admin_inventory_router",
    "catalog_router",
    "coupons_router",
    "dark_stores_router",
    "delivery_router",
    "location_router",
    "orders_router",
    "packer_router",
    "realtime_router",
]
