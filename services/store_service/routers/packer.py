"""Packer dashboard: the pick-and-pack queue of a dark store."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_packer
from libs.auth.models import AuthUser
from libs.common.events import EventPublisher, get_publisher
from libs.db.session import get_async_db
from services.store_service.models import Order, OrderStatus
from services.store_service.schemas import OrderResponse
from services.store_service.services import order_ops
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/packer", tags=["packer"])

PACKING_QUEUE = (OrderStatus.CONFIRMED, OrderStatus.PACKING)


@router.get("/orders", response_model=list[OrderResponse])
async def list_packing_queue(
    dark_store_id: Optional[uuid.UUID] = None,
    _packer: AuthUser = Depends(require_packer),
    db: AsyncSession = Depends(get_async_db),
):
    """Confirmed and in-progress orders, oldest first."""
    query = select(Order).where(Order.status.in_(PACKING_QUEUE))
    if dark_store_id:
        query = query.where(Order.dark_store_id == dark_store_id)
    result = await db.execute(query.order_by(Order.created_at))
    return result.scalars().all()


@router.put("/{order_id}/start", response_model=OrderResponse)
async def start_packing(
    order_id: uuid.UUID,
    packer: AuthUser = Depends(require_packer),
    db: AsyncSession = Depends(get_async_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    return await order_ops.update_status(
        db,
        publisher,
        order_id=order_id,
        new_status=OrderStatus.PACKING,
        performed_by=packer.user_id,
    )


@router.put("/{order_id}/ready", response_model=OrderResponse)
async def mark_ready_for_pickup(
    order_id: uuid.UUID,
    packer: AuthUser = Depends(require_packer),
    db: AsyncSession = Depends(get_async_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Packed and waiting for a driver."""
    return await order_ops.update_status(
        db,
        publisher,
        order_id=order_id,
        new_status=OrderStatus.READY_FOR_PICKUP,
        performed_by=packer.user_id,
    )
