"""Store commerce models: orders, line items, deliveries, coupons, audit logs."""

import random
import string
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import (
    AuditEntityType,
    DiscountType,
    OrderStatus,
    PaymentMethod,
    SubstitutionPreference,
    enum_values,
)
from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# ORDER MODELS
# ============================================================================


class Order(Base):
    """Customer orders, routed to a single dark store at checkout."""

    __tablename__ = "store_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )

    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    dark_store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_dark_stores.id"), nullable=False
    )
    address_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_addresses.id"), nullable=False
    )

    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            values_callable=enum_values,
            name="store_payment_method_enum",
        ),
        default=PaymentMethod.COD,
        nullable=False,
    )
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            values_callable=enum_values,
            name="store_order_status_enum",
        ),
        default=OrderStatus.PENDING,
        server_default="pending",
        nullable=False,
    )

    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    coupon_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("store_coupons.id", ondelete="SET NULL"), nullable=True
    )

    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_order_total_non_negative"),
        Index("ix_store_orders_status_created", "status", "created_at"),
    )

    # Relationships
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    delivery = relationship(
        "Delivery", back_populates="order", uselist=False, lazy="selectin"
    )
    address = relationship("Address", lazy="selectin")
    dark_store = relationship("DarkStore", lazy="selectin")
    coupon = relationship("Coupon", lazy="selectin")

    @staticmethod
    def generate_order_number() -> str:
        """Generate a unique order number like QC-20260104-A1B2C."""
        date_part = utc_now().strftime("%Y%m%d")
        random_part = "".join(
            random.choices(string.ascii_uppercase + string.digits, k=5)
        )
        return f"QC-{date_part}-{random_part}"

    def __repr__(self):
        return f"<Order {self.order_number} status={self.status}>"


class OrderItem(Base):
    """Order line items (price snapshot at order time)."""

    __tablename__ = "store_order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_products.id"), nullable=False
    )

    # Snapshot at order time (products may change)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    substitution: Mapped[SubstitutionPreference] = mapped_column(
        SAEnum(
            SubstitutionPreference,
            values_callable=enum_values,
            name="store_substitution_enum",
        ),
        default=SubstitutionPreference.REFUND,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_positive_quantity"),
    )

    order = relationship("Order", back_populates="items")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def __repr__(self):
        return f"<OrderItem {self.product_name} qty={self.quantity}>"


class Delivery(Base):
    """Driver assignment and delivery timestamps for an order (1:1).

    The order's ``status`` is the single source of truth; ``Delivery.status``
    is a read-only projection of it.
    """

    __tablename__ = "store_deliveries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_orders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    driver_id: Mapped[Optional[str]] = mapped_column(
        String(255), index=True, nullable=True
    )

    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    picked_up_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    order = relationship("Order", back_populates="delivery", lazy="joined")

    @property
    def status(self) -> OrderStatus:
        return self.order.status

    def __repr__(self):
        return f"<Delivery order={self.order_id} driver={self.driver_id}>"


# ============================================================================
# COUPON MODEL
# ============================================================================


class Coupon(Base):
    """Discount codes. Codes are stored upper-cased."""

    __tablename__ = "store_coupons"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_type: Mapped[DiscountType] = mapped_column(
        SAEnum(
            DiscountType,
            values_callable=enum_values,
            name="store_discount_type_enum",
        ),
        default=DiscountType.PERCENTAGE,
        nullable=False,
    )
    min_order: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    expiry: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<Coupon {self.code}>"


# ============================================================================
# AUDIT LOG MODEL
# ============================================================================


class StoreAuditLog(Base):
    """Audit log for back-office operations (status changes, stock edits)."""

    __tablename__ = "store_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    entity_type: Mapped[AuditEntityType] = mapped_column(
        SAEnum(
            AuditEntityType,
            values_callable=enum_values,
            name="store_audit_entity_type_enum",
        ),
        nullable=False,
    )
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)

    action: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # e.g., "status_changed", "stock_set"

    old_value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    new_value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_store_audit_logs_entity", "entity_type", "entity_id"),
    )

    def __repr__(self):
        return f"<StoreAuditLog {self.entity_type}:{self.entity_id} {self.action}>"
