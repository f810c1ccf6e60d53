"""Order endpoints: checkout, customer order history, admin order management."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.events import EventPublisher, get_publisher
from libs.db.session import get_async_db
from services.store_service.models import Order, OrderStatus
from services.store_service.schemas import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    RevenueSummary,
    StatsPoint,
)
from services.store_service.services import order_ops, reporting
from services.store_service.services.reporting import StatsPeriod
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Place an order from the cart.

    Stock is reserved at the nearest dark store and wallet orders are charged
    in the same transaction; any failure leaves nothing behind.
    """
    if not body.order_items:
        raise HTTPException(status_code=400, detail="No order items")

    lines = [
        order_ops.CartLine(
            product_id=item.product_id,
            quantity=item.quantity,
            substitution=item.substitution,
            unit_price=item.price,
        )
        for item in body.order_items
    ]
    return await order_ops.place_order(
        db,
        publisher,
        user_id=current_user.user_id,
        lines=lines,
        address_id=body.address_id,
        payment_method=body.payment_method,
        total_price=body.total_price,
        coupon_code=body.coupon_code,
    )


# ============================================================================
# CUSTOMER ORDER HISTORY
# ============================================================================


@router.get("/myorders", response_model=list[OrderResponse])
async def list_my_orders(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the current user's orders, newest first."""
    result = await db.execute(
        select(Order)
        .where(Order.user_id == current_user.user_id)
        .order_by(desc(Order.created_at))
    )
    return result.scalars().all()


# ============================================================================
# ADMIN LISTING AND REPORTING
# ============================================================================


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all orders (admin)."""
    query = select(Order)
    if status_filter:
        query = query.where(Order.status == status_filter)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(desc(Order.created_at))
    query = query.offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(query)
    orders = result.scalars().all()

    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/revenue", response_model=RevenueSummary)
async def get_revenue(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delivered revenue, order counts by status and average order value."""
    return await reporting.revenue_summary(db)


@router.get("/stats", response_model=list[StatsPoint])
async def get_revenue_stats(
    period: StatsPeriod = Query(StatsPeriod.MONTHLY),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Revenue chart series from delivered orders."""
    return await reporting.revenue_series(db, period)


@router.get("/stats/count", response_model=list[StatsPoint])
async def get_order_count_stats(
    period: StatsPeriod = Query(StatsPeriod.MONTHLY),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Order volume chart series (all statuses)."""
    return await reporting.order_count_series(db, period)


# ============================================================================
# SINGLE ORDER
# ============================================================================


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get an order with items, address and delivery info (owner or admin)."""
    return await order_ops.get_order_for_user(db, order_id, current_user)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    body: OrderStatusUpdate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Move an order forward (admin). Cancelling goes through /cancel."""
    return await order_ops.update_status(
        db,
        publisher,
        order_id=order_id,
        new_status=body.status,
        performed_by=admin.user_id,
    )


@router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Cancel an order before dispatch (owner or admin)."""
    return await order_ops.cancel_order(
        db, publisher, order_id=order_id, acting_user=current_user
    )


@router.put("/{order_id}/pay", response_model=OrderResponse)
async def pay_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Mark an order as paid (owner or admin). A pending order is confirmed."""
    return await order_ops.mark_paid(db, order_id, current_user, publisher)


@router.put("/{order_id}/deliver", response_model=OrderResponse)
async def deliver_order(
    order_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Mark an order delivered (admin)."""
    return await order_ops.update_status(
        db,
        publisher,
        order_id=order_id,
        new_status=OrderStatus.DELIVERED,
        performed_by=admin.user_id,
    )
