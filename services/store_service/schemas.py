"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from services.store_service.models import (
    DiscountType,
    OrderStatus,
    PaymentMethod,
    SubstitutionPreference,
)

# ============================================================================
# CATALOG SCHEMAS
# ============================================================================


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    parent_id: Optional[uuid.UUID] = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sku: str
    name: str
    description: Optional[str] = None
    price: Decimal
    category_id: Optional[uuid.UUID] = None
    image_url: Optional[str] = None
    is_active: bool
    stock: Optional[int] = None  # Filled when a dark store is requested


class ProductListResponse(BaseModel):
    """Paginated product list."""

    items: list[ProductResponse]
    total: int
    page: int
    page_size: int


# ============================================================================
# LOCATION SCHEMAS
# ============================================================================


class DarkStoreCreate(BaseModel):
    name: str = Field(..., max_length=100)
    address: str = Field(..., max_length=500)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class DarkStoreResponse(DarkStoreCreate):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime


class AddressCreate(BaseModel):
    label: Optional[str] = Field(None, max_length=50)
    street: str = Field(..., max_length=255)
    city: str = Field(..., max_length=100)
    zip_code: str = Field(..., max_length=20)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)


class AddressResponse(AddressCreate):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    created_at: datetime


class LocationCheckRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class LocationCheckResponse(BaseModel):
    serviceable: bool
    location_name: str


class PlaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    name: str
    lat: str
    lon: str


# ============================================================================
# INVENTORY SCHEMAS
# ============================================================================


class StockItemResponse(BaseModel):
    product_id: uuid.UUID
    dark_store_id: uuid.UUID
    product_name: str
    sku: str
    dark_store_name: str
    quantity: int
    updated_at: Optional[datetime] = None


class StockSetRequest(BaseModel):
    """Absolute stock level for one product at one dark store (admin)."""

    quantity: int = Field(..., ge=0)
    notes: Optional[str] = None


# ============================================================================
# COUPON SCHEMAS
# ============================================================================


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    discount: Decimal = Field(..., gt=0)
    discount_type: DiscountType = DiscountType.PERCENTAGE
    min_order: Decimal = Field(Decimal("0"), ge=0)
    expiry: datetime
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def upper_case_code(cls, value: str) -> str:
        return value.strip().upper()


class CouponResponse(CouponCreate):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1)
    cart_total: Decimal = Field(..., ge=0)


class CouponValidateResponse(BaseModel):
    coupon_id: uuid.UUID
    code: str
    discount_type: DiscountType
    discount_amount: Decimal


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    price: Optional[Decimal] = Field(None, ge=0)
    substitution: SubstitutionPreference = SubstitutionPreference.REFUND


class OrderCreate(BaseModel):
    order_items: list[OrderItemCreate]
    address_id: uuid.UUID
    payment_method: PaymentMethod = PaymentMethod.COD
    total_price: Decimal = Field(..., ge=0)
    coupon_code: Optional[str] = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    sku: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    substitution: SubstitutionPreference


class DeliveryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    driver_id: Optional[str] = None
    status: OrderStatus
    accepted_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    user_id: str
    status: OrderStatus
    payment_method: PaymentMethod
    total_price: Decimal
    is_paid: bool
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    coupon_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    dark_store_id: uuid.UUID
    address_id: uuid.UUID
    items: list[OrderItemResponse] = []
    address: Optional[AddressResponse] = None
    dark_store: Optional[DarkStoreResponse] = None
    delivery: Optional[DeliveryResponse] = None


class OrderListResponse(BaseModel):
    """Paginated order list."""

    items: list[OrderResponse]
    total: int
    page: int
    page_size: int


class OrderStatusUpdate(BaseModel):
    """Update order status (admin)."""

    status: OrderStatus


# ============================================================================
# REPORTING SCHEMAS
# ============================================================================


class RevenueSummary(BaseModel):
    total_revenue: Decimal
    total_orders: int
    orders_by_status: dict[str, int]
    average_order_value: Decimal


class StatsPoint(BaseModel):
    date: str
    total: str


class DriverStats(BaseModel):
    delivered_count: int
    active_count: int
    delivered_value: Decimal
