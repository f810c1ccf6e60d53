"""Per-(product, dark store) stock ledger.

All mutations run inside the caller's transaction and never commit. The
decrement is a single conditional UPDATE, so two checkouts racing for the
last unit cannot both succeed regardless of the isolation level.
"""

import uuid
from typing import Optional

from libs.common.errors import OutOfStock, ValidationFailed
from libs.common.logging import get_logger
from services.store_service.models import (
    InventoryMovement,
    InventoryMovementType,
    Product,
    StockItem,
)
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def get_stock_item(
    db: AsyncSession, product_id: uuid.UUID, dark_store_id: uuid.UUID
) -> Optional[StockItem]:
    result = await db.execute(
        select(StockItem)
        .where(
            StockItem.product_id == product_id,
            StockItem.dark_store_id == dark_store_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_quantity(
    db: AsyncSession, product_id: uuid.UUID, dark_store_id: uuid.UUID
) -> int:
    item = await get_stock_item(db, product_id, dark_store_id)
    return item.quantity if item else 0


async def check_available(
    db: AsyncSession,
    product_id: uuid.UUID,
    dark_store_id: uuid.UUID,
    quantity: int,
) -> bool:
    """True iff a ledger row exists and holds at least ``quantity`` units."""
    item = await get_stock_item(db, product_id, dark_store_id)
    return item is not None and item.quantity >= quantity


def _movement(
    product_id: uuid.UUID,
    dark_store_id: uuid.UUID,
    movement_type: InventoryMovementType,
    delta: int,
    reference_type: Optional[str],
    reference_id: Optional[uuid.UUID],
    performed_by: Optional[str] = None,
    notes: Optional[str] = None,
) -> InventoryMovement:
    return InventoryMovement(
        product_id=product_id,
        dark_store_id=dark_store_id,
        movement_type=movement_type,
        quantity=delta,
        reference_type=reference_type,
        reference_id=reference_id,
        performed_by=performed_by,
        notes=notes,
    )


async def decrement(
    db: AsyncSession,
    product_id: uuid.UUID,
    dark_store_id: uuid.UUID,
    quantity: int,
    *,
    reference_id: Optional[uuid.UUID] = None,
) -> None:
    """Take ``quantity`` units out of stock or raise ``OutOfStock``."""
    if quantity <= 0:
        raise ValidationFailed("Quantity must be positive")

    result = await db.execute(
        update(StockItem)
        .where(
            StockItem.product_id == product_id,
            StockItem.dark_store_id == dark_store_id,
            StockItem.quantity >= quantity,
        )
        .values(quantity=StockItem.quantity - quantity)
    )
    if result.rowcount != 1:
        product = await db.get(Product, product_id)
        raise OutOfStock(product.name if product else str(product_id))

    db.add(
        _movement(
            product_id,
            dark_store_id,
            InventoryMovementType.SALE,
            -quantity,
            "order",
            reference_id,
        )
    )


async def increment(
    db: AsyncSession,
    product_id: uuid.UUID,
    dark_store_id: uuid.UUID,
    quantity: int,
    *,
    reference_id: Optional[uuid.UUID] = None,
) -> None:
    """Put ``quantity`` units back. Creates the ledger row if it is missing."""
    if quantity <= 0:
        raise ValidationFailed("Quantity must be positive")

    result = await db.execute(
        update(StockItem)
        .where(
            StockItem.product_id == product_id,
            StockItem.dark_store_id == dark_store_id,
        )
        .values(quantity=StockItem.quantity + quantity)
    )
    if result.rowcount == 0:
        db.add(
            StockItem(
                product_id=product_id,
                dark_store_id=dark_store_id,
                quantity=quantity,
            )
        )

    db.add(
        _movement(
            product_id,
            dark_store_id,
            InventoryMovementType.RELEASE,
            quantity,
            "order",
            reference_id,
        )
    )
    await db.flush()


async def set_absolute(
    db: AsyncSession,
    product_id: uuid.UUID,
    dark_store_id: uuid.UUID,
    quantity: int,
    *,
    performed_by: Optional[str] = None,
    notes: Optional[str] = None,
) -> tuple[int, StockItem]:
    """Admin stock edit. Upserts the row; returns ``(old_quantity, item)``."""
    if quantity < 0:
        raise ValidationFailed("Stock cannot be negative")

    item = await get_stock_item(db, product_id, dark_store_id)
    old_quantity = item.quantity if item else 0
    if item is None:
        item = StockItem(
            product_id=product_id, dark_store_id=dark_store_id, quantity=quantity
        )
        db.add(item)
    else:
        item.quantity = quantity

    if quantity != old_quantity:
        db.add(
            _movement(
                product_id,
                dark_store_id,
                InventoryMovementType.ADJUSTMENT,
                quantity - old_quantity,
                "manual",
                None,
                performed_by=performed_by,
                notes=notes,
            )
        )
    await db.flush()

    logger.info(
        "Stock for product %s at store %s set %d -> %d",
        product_id,
        dark_store_id,
        old_quantity,
        quantity,
    )
    return old_quantity, item
