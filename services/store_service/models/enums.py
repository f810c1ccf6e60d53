"""Enum definitions for store service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PACKING = "packing"
    READY_FOR_PICKUP = "ready_for_pickup"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    COD = "cod"
    WALLET = "wallet"
    UPI = "upi"


class SubstitutionPreference(str, enum.Enum):
    REFUND = "refund"
    REPLACE = "replace"


class InventoryMovementType(str, enum.Enum):
    SALE = "sale"
    RELEASE = "release"
    ADJUSTMENT = "adjustment"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class AuditEntityType(str, enum.Enum):
    ORDER = "order"
    INVENTORY = "inventory"
    DARK_STORE = "dark_store"
