"""Driver endpoints: claim ready orders and complete deliveries."""

import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_driver
from libs.auth.models import AuthUser
from libs.common.events import EventPublisher, get_publisher
from libs.db.session import get_async_db
from services.store_service.models import Delivery, Order, OrderStatus
from services.store_service.schemas import DriverStats, OrderResponse
from services.store_service.services import order_ops
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/delivery", tags=["delivery"])


@router.get("/available", response_model=list[OrderResponse])
async def list_available_orders(
    _driver: AuthUser = Depends(require_driver),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders ready for pickup that no driver has claimed yet."""
    query = (
        select(Order)
        .outerjoin(Delivery, Delivery.order_id == Order.id)
        .where(
            Order.status == OrderStatus.READY_FOR_PICKUP,
            Delivery.driver_id.is_(None),
        )
        .order_by(Order.created_at)
    )
    result = await db.execute(query)
    return result.scalars().unique().all()


@router.get("/my-deliveries", response_model=list[OrderResponse])
async def list_my_deliveries(
    driver: AuthUser = Depends(require_driver),
    db: AsyncSession = Depends(get_async_db),
):
    query = (
        select(Order)
        .join(Delivery, Delivery.order_id == Order.id)
        .where(Delivery.driver_id == driver.user_id)
        .order_by(desc(Delivery.accepted_at))
    )
    result = await db.execute(query)
    return result.scalars().unique().all()


@router.get("/stats", response_model=DriverStats)
async def get_driver_stats(
    driver: AuthUser = Depends(require_driver),
    db: AsyncSession = Depends(get_async_db),
):
    """Delivered and in-flight counts plus delivered order value."""
    result = await db.execute(
        select(
            Order.status,
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_price), 0),
        )
        .join(Delivery, Delivery.order_id == Order.id)
        .where(Delivery.driver_id == driver.user_id)
        .group_by(Order.status)
    )

    delivered_count = 0
    active_count = 0
    delivered_value = Decimal("0")
    for order_status, count, total in result.all():
        if OrderStatus(order_status) == OrderStatus.DELIVERED:
            delivered_count = count
            delivered_value = Decimal(str(total))
        elif OrderStatus(order_status) == OrderStatus.OUT_FOR_DELIVERY:
            active_count = count

    return DriverStats(
        delivered_count=delivered_count,
        active_count=active_count,
        delivered_value=delivered_value.quantize(Decimal("0.01")),
    )


@router.post("/{order_id}/accept", response_model=OrderResponse)
async def accept_delivery(
    order_id: uuid.UUID,
    driver: AuthUser = Depends(require_driver),
    db: AsyncSession = Depends(get_async_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Claim a ready order and head out with it."""
    return await order_ops.accept_delivery(
        db, publisher, order_id=order_id, driver=driver
    )


@router.put("/{order_id}/complete", response_model=OrderResponse)
async def complete_delivery(
    order_id: uuid.UUID,
    driver: AuthUser = Depends(require_driver),
    db: AsyncSession = Depends(get_async_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    return await order_ops.complete_delivery(
        db, publisher, order_id=order_id, driver=driver
    )
