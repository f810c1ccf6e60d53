"""Store inventory models: per-store stock ledger and its audit trail."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import InventoryMovementType, enum_values
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# INVENTORY MODELS
# ============================================================================


class StockItem(Base):
    """Quantity on hand for one product at one dark store.

    Rows are created lazily and never deleted; quantity never goes negative.
    """

    __tablename__ = "store_stock_items"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_products.id", ondelete="CASCADE"),
        primary_key=True,
    )
    dark_store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_dark_stores.id", ondelete="CASCADE"),
        primary_key=True,
    )
    quantity: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_non_negative"),
    )

    product = relationship("Product")
    dark_store = relationship("DarkStore")

    def __repr__(self):
        return (
            f"<StockItem product={self.product_id} "
            f"store={self.dark_store_id} qty={self.quantity}>"
        )


class InventoryMovement(Base):
    """Audit trail for stock ledger changes."""

    __tablename__ = "store_inventory_movements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    dark_store_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    movement_type: Mapped[InventoryMovementType] = mapped_column(
        SAEnum(
            InventoryMovementType,
            values_callable=enum_values,
            name="store_inventory_movement_type_enum",
        ),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # Positive = add, negative = subtract

    reference_type: Mapped[Optional[str]] = mapped_column(
        String(30), nullable=True
    )  # order, manual
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    performed_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        Index(
            "ix_store_inventory_movements_stock",
            "product_id",
            "dark_store_id",
        ),
    )

    def __repr__(self):
        return f"<InventoryMovement {self.movement_type} qty={self.quantity}>"
