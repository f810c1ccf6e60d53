"""Store Service models package."""

from services.store_service.models.catalog import Category, Product
from services.store_service.models.commerce import (
    Coupon,
    Delivery,
    Order,
    OrderItem,
    StoreAuditLog,
)
from services.store_service.models.enums import (
    AuditEntityType,
    DiscountType,
    InventoryMovementType,
    OrderStatus,
    PaymentMethod,
    SubstitutionPreference,
)
from services.store_service.models.inventory import InventoryMovement, StockItem
from services.store_service.models.locations import Address, DarkStore

__all__ = [
    "Address",
    "AuditEntityType",
    "Category",
    "Coupon",
    "DarkStore",
    "Delivery",
    "DiscountType",
    "InventoryMovement",
    "InventoryMovementType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "Product",
    "StockItem",
    "StoreAuditLog",
    "SubstitutionPreference",
]
