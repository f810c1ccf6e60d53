"""Coupon validation (cart page) and admin coupon management."""

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Coupon
from services.store_service.schemas import (
    CouponCreate,
    CouponResponse,
    CouponValidateRequest,
    CouponValidateResponse,
)
from services.store_service.services.coupons import find_coupon, quote_coupon
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("/validate", response_model=CouponValidateResponse)
async def validate_coupon(
    body: CouponValidateRequest,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Check a code against the cart total and return the discount."""
    quote = await quote_coupon(db, body.code, body.cart_total)
    return CouponValidateResponse(
        coupon_id=quote.coupon.id,
        code=quote.coupon.code,
        discount_type=quote.coupon.discount_type,
        discount_amount=quote.discount_amount,
    )


@router.get("", response_model=list[CouponResponse])
async def list_coupons(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(select(Coupon).order_by(desc(Coupon.created_at)))
    return result.scalars().all()


@router.post("", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
async def create_coupon(
    body: CouponCreate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    if await find_coupon(db, body.code):
        raise HTTPException(status_code=400, detail="Coupon code already exists")

    coupon = Coupon(**body.model_dump())
    db.add(coupon)
    await db.commit()
    await db.refresh(coupon)
    return coupon
