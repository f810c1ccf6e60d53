"""Admin inventory router: per-store stock levels."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import (
    AuditEntityType,
    DarkStore,
    Product,
    StockItem,
)
from services.store_service.schemas import StockItemResponse, StockSetRequest
from services.store_service.services import stock_ledger
from services.store_service.services.audit import log_audit
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(prefix="/inventory", tags=["admin-inventory"])
logger = get_logger(__name__)


def _to_response(item: StockItem) -> StockItemResponse:
    return StockItemResponse(
        product_id=item.product_id,
        dark_store_id=item.dark_store_id,
        product_name=item.product.name,
        sku=item.product.sku,
        dark_store_name=item.dark_store.name,
        quantity=item.quantity,
        updated_at=item.updated_at,
    )


@router.get("", response_model=list[StockItemResponse])
async def list_inventory(
    dark_store_id: Optional[uuid.UUID] = None,
    low_stock_threshold: Optional[int] = Query(None, ge=0),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List stock levels, optionally for one store or below a threshold."""
    query = select(StockItem).options(
        selectinload(StockItem.product), selectinload(StockItem.dark_store)
    )
    if dark_store_id:
        query = query.where(StockItem.dark_store_id == dark_store_id)
    if low_stock_threshold is not None:
        query = query.where(StockItem.quantity <= low_stock_threshold)

    result = await db.execute(query.order_by(StockItem.quantity))
    return [_to_response(item) for item in result.scalars().all()]


@router.put("/{product_id}/{dark_store_id}", response_model=StockItemResponse)
async def set_stock(
    product_id: uuid.UUID,
    dark_store_id: uuid.UUID,
    body: StockSetRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Set the absolute stock level for a product at a dark store."""
    if not await db.get(Product, product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    if not await db.get(DarkStore, dark_store_id):
        raise HTTPException(status_code=404, detail="Dark store not found")

    old_quantity, _ = await stock_ledger.set_absolute(
        db,
        product_id,
        dark_store_id,
        body.quantity,
        performed_by=admin.user_id,
        notes=body.notes,
    )
    log_audit(
        db,
        AuditEntityType.INVENTORY,
        f"{product_id}:{dark_store_id}",
        "stock_set",
        admin.user_id,
        old_value={"quantity": old_quantity},
        new_value={"quantity": body.quantity},
        notes=body.notes,
    )
    await db.commit()

    result = await db.execute(
        select(StockItem)
        .where(
            StockItem.product_id == product_id,
            StockItem.dark_store_id == dark_store_id,
        )
        .options(selectinload(StockItem.product), selectinload(StockItem.dark_store))
        .execution_options(populate_existing=True)
    )
    return _to_response(result.scalar_one())
