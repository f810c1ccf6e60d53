"""Admin dark store management."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import AuditEntityType, DarkStore, Order, StockItem
from services.store_service.schemas import DarkStoreCreate, DarkStoreResponse
from services.store_service.services.audit import log_audit
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/darkstores", tags=["dark-stores"])
logger = get_logger(__name__)


@router.get("", response_model=list[DarkStoreResponse])
async def list_dark_stores(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(select(DarkStore).order_by(DarkStore.created_at))
    return result.scalars().all()


@router.post("", response_model=DarkStoreResponse, status_code=status.HTTP_201_CREATED)
async def create_dark_store(
    body: DarkStoreCreate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Open a new dark store. It starts receiving orders immediately."""
    store = DarkStore(**body.model_dump())
    db.add(store)
    await db.flush()

    log_audit(
        db,
        AuditEntityType.DARK_STORE,
        store.id,
        "created",
        admin.user_id,
        new_value=body.model_dump(),
    )
    await db.commit()
    await db.refresh(store)

    logger.info("Dark store %s (%s) created by %s", store.name, store.id, admin.user_id)
    return store


@router.delete("/{dark_store_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_dark_store(
    dark_store_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Close a dark store that has never taken an order."""
    store = await db.get(DarkStore, dark_store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Dark store not found")

    order_count = (
        await db.execute(
            select(func.count(Order.id)).where(Order.dark_store_id == dark_store_id)
        )
    ).scalar() or 0
    if order_count:
        raise HTTPException(
            status_code=400,
            detail=f"Dark store has {order_count} orders and cannot be deleted",
        )

    await db.execute(delete(StockItem).where(StockItem.dark_store_id == dark_store_id))
    await db.delete(store)
    log_audit(
        db,
        AuditEntityType.DARK_STORE,
        dark_store_id,
        "deleted",
        admin.user_id,
        old_value={"name": store.name},
    )
    await db.commit()
    logger.info("Dark store %s deleted by %s", dark_store_id, admin.user_id)
