"""Coupon lookup and discount calculation."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.errors import BusinessRuleViolation, NotFound
from libs.common.logging import get_logger
from services.store_service.models import Coupon, DiscountType
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class CouponQuote:
    coupon: Coupon
    discount_amount: Decimal


def normalize_code(code: str) -> str:
    return code.strip().upper()


async def find_coupon(db: AsyncSession, code: str) -> Optional[Coupon]:
    result = await db.execute(select(Coupon).where(Coupon.code == normalize_code(code)))
    return result.scalar_one_or_none()


def is_redeemable(coupon: Coupon) -> bool:
    return coupon.is_active and ensure_utc(coupon.expiry) >= utc_now()


def calculate_discount(coupon: Coupon, cart_total: Decimal) -> Decimal:
    """Discount for ``cart_total``, capped so the total never goes negative."""
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = cart_total * coupon.discount / Decimal("100")
    else:
        discount = coupon.discount
    return min(discount, cart_total).quantize(CENT, rounding=ROUND_HALF_UP)


async def quote_coupon(db: AsyncSession, code: str, cart_total: Decimal) -> CouponQuote:
    """Validate ``code`` against ``cart_total`` the way the cart page does."""
    coupon = await find_coupon(db, code)
    if coupon is None:
        raise NotFound("Invalid coupon code")
    if not is_redeemable(coupon):
        raise BusinessRuleViolation("Coupon has expired")
    if cart_total < coupon.min_order:
        raise BusinessRuleViolation(f"Minimum order of ₹{coupon.min_order} required")
    return CouponQuote(coupon=coupon, discount_amount=calculate_discount(coupon, cart_total))


async def resolve_coupon_for_order(
    db: AsyncSession, code: Optional[str]
) -> Optional[Coupon]:
    """Best-effort lookup used at checkout.

    An unknown or expired code does not fail the order (the cart validated it
    already); it is logged so the mismatch is visible.
    """
    if not code:
        return None
    coupon = await find_coupon(db, code)
    if coupon is None:
        logger.warning("Ignoring unknown coupon code %r at checkout", code)
        return None
    if not is_redeemable(coupon):
        logger.warning("Ignoring expired or inactive coupon %s at checkout", coupon.code)
        return None
    return coupon
