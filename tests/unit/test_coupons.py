"""Unit tests for coupon validation and discount maths."""

from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.datetime_utils import utc_now
from libs.common.errors import BusinessRuleViolation, NotFound
from services.store_service.models import DiscountType
from services.store_service.services.coupons import (
    calculate_discount,
    is_redeemable,
    normalize_code,
    quote_coupon,
    resolve_coupon_for_order,
)
from tests.factories import CouponFactory


@pytest.mark.unit
def test_normalize_code():
    assert normalize_code("  welcome10 ") == "WELCOME10"


@pytest.mark.unit
def test_percentage_discount_rounds_to_paise():
    coupon = CouponFactory.create(discount=Decimal("15"))

    assert calculate_discount(coupon, Decimal("199.99")) == Decimal("30.00")


@pytest.mark.unit
def test_fixed_discount_is_capped_at_cart_total():
    coupon = CouponFactory.create(
        discount=Decimal("100"), discount_type=DiscountType.FIXED
    )

    assert calculate_discount(coupon, Decimal("250")) == Decimal("100.00")
    assert calculate_discount(coupon, Decimal("60")) == Decimal("60.00")


@pytest.mark.unit
def test_is_redeemable():
    assert is_redeemable(CouponFactory.create())
    assert not is_redeemable(CouponFactory.create(is_active=False))
    assert not is_redeemable(
        CouponFactory.create(expiry=utc_now() - timedelta(minutes=1))
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_valid_coupon(db_session):
    db_session.add(CouponFactory.create(code="WELCOME10", min_order=Decimal("199")))
    await db_session.commit()

    quote = await quote_coupon(db_session, "welcome10", Decimal("300"))

    assert quote.coupon.code == "WELCOME10"
    assert quote.discount_amount == Decimal("30.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_unknown_coupon(db_session):
    with pytest.raises(NotFound, match="Invalid coupon code"):
        await quote_coupon(db_session, "NOPE", Decimal("300"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_expired_coupon(db_session):
    db_session.add(
        CouponFactory.create(code="OLD", expiry=utc_now() - timedelta(days=1))
    )
    await db_session.commit()

    with pytest.raises(BusinessRuleViolation, match="expired"):
        await quote_coupon(db_session, "OLD", Decimal("300"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_below_minimum_order(db_session):
    db_session.add(CouponFactory.create(code="BIG", min_order=Decimal("500")))
    await db_session.commit()

    with pytest.raises(BusinessRuleViolation, match="Minimum order"):
        await quote_coupon(db_session, "BIG", Decimal("499.99"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_checkout_resolution_is_permissive(db_session):
    db_session.add_all(
        [
            CouponFactory.create(code="GOOD"),
            CouponFactory.create(code="OFF", is_active=False),
        ]
    )
    await db_session.commit()

    assert (await resolve_coupon_for_order(db_session, "good")).code == "GOOD"
    assert await resolve_coupon_for_order(db_session, "OFF") is None
    assert await resolve_coupon_for_order(db_session, "MISSING") is None
    assert await resolve_coupon_for_order(db_session, None) is None
