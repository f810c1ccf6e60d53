"""Admin dashboard aggregates: revenue summary and time series."""

import enum
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import (
    ensure_utc,
    start_of_day,
    start_of_month,
    start_of_week,
    start_of_year,
    utc_now,
)
from services.store_service.models import Order, OrderStatus
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

CENT = Decimal("0.01")


class StatsPeriod(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def _shift_months(value: datetime, months: int) -> datetime:
    index = value.year * 12 + (value.month - 1) + months
    return value.replace(year=index // 12, month=index % 12 + 1, day=1)


def window_start(period: StatsPeriod, now: Optional[datetime] = None) -> datetime:
    """First instant included in the chart for ``period``.

    daily: 7 days, weekly: 12 weeks, monthly: 12 months, yearly: 5 years.
    """
    today = start_of_day(now or utc_now())
    if period == StatsPeriod.DAILY:
        return today - timedelta(days=7)
    if period == StatsPeriod.WEEKLY:
        return today - timedelta(weeks=12)
    if period == StatsPeriod.YEARLY:
        return start_of_month(today).replace(year=today.year - 5)
    return _shift_months(today, -12)


def bucket_key(period: StatsPeriod, created_at: datetime) -> str:
    created_at = ensure_utc(created_at)
    if period == StatsPeriod.DAILY:
        bucket = start_of_day(created_at)
    elif period == StatsPeriod.WEEKLY:
        bucket = start_of_week(created_at)
    elif period == StatsPeriod.YEARLY:
        bucket = start_of_year(created_at)
    else:
        bucket = start_of_month(created_at)
    return bucket.strftime("%Y-%m-%d")


async def _windowed_orders(
    db: AsyncSession, period: StatsPeriod, *, delivered_only: bool
) -> list[tuple[datetime, Decimal]]:
    query = select(Order.created_at, Order.total_price).where(
        Order.created_at >= window_start(period)
    )
    if delivered_only:
        query = query.where(Order.status == OrderStatus.DELIVERED)
    result = await db.execute(query.order_by(Order.created_at))
    return [(row.created_at, row.total_price) for row in result.all()]


async def revenue_series(db: AsyncSession, period: StatsPeriod) -> list[dict]:
    """Delivered revenue per bucket, oldest first. Totals are strings."""
    buckets: dict[str, Decimal] = {}
    for created_at, total_price in await _windowed_orders(
        db, period, delivered_only=True
    ):
        key = bucket_key(period, created_at)
        buckets[key] = buckets.get(key, Decimal("0")) + Decimal(total_price)

    return [
        {"date": key, "total": str(total.quantize(CENT))}
        for key, total in sorted(buckets.items())
    ]


async def order_count_series(db: AsyncSession, period: StatsPeriod) -> list[dict]:
    """Orders placed per bucket (any status), oldest first."""
    buckets: dict[str, int] = {}
    for created_at, _ in await _windowed_orders(db, period, delivered_only=False):
        key = bucket_key(period, created_at)
        buckets[key] = buckets.get(key, 0) + 1

    return [{"date": key, "total": str(count)} for key, count in sorted(buckets.items())]


async def revenue_summary(db: AsyncSession) -> dict:
    """Lifetime revenue (delivered orders), counts by status and average order value."""
    result = await db.execute(
        select(
            Order.status,
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_price), 0),
        ).group_by(Order.status)
    )

    counts = {status.value: 0 for status in OrderStatus}
    delivered_revenue = Decimal("0")
    for status, count, total in result.all():
        counts[OrderStatus(status).value] = count
        if OrderStatus(status) == OrderStatus.DELIVERED:
            delivered_revenue = Decimal(str(total))

    delivered_count = counts[OrderStatus.DELIVERED.value]
    average = (
        delivered_revenue / delivered_count if delivered_count else Decimal("0")
    )
    return {
        "total_revenue": delivered_revenue.quantize(CENT),
        "total_orders": sum(counts.values()),
        "orders_by_status": counts,
        "average_order_value": average.quantize(CENT),
    }
