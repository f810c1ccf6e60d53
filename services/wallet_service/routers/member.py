"""Customer-facing wallet endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.wallet_service.models import TransactionType, WalletTransaction
from services.wallet_service.schemas import (
    AddMoneyRequest,
    TransactionListResponse,
    TransactionResponse,
    WalletResponse,
)
from services.wallet_service.services.wallet_ops import (
    credit_wallet,
    get_or_create_wallet,
)
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/me", response_model=WalletResponse)
async def get_my_wallet(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get the current user's wallet (created empty on first visit)."""
    wallet = await get_or_create_wallet(db, current_user.user_id)
    await db.commit()
    await db.refresh(wallet)
    return wallet


@router.post("/add-money", response_model=WalletResponse)
async def add_money(
    body: AddMoneyRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Top up the wallet. Payment capture is simulated."""
    await credit_wallet(
        db,
        user_id=current_user.user_id,
        amount=body.amount,
        description="Added money to wallet",
        transaction_type=TransactionType.TOPUP,
        reference_type="topup",
        initiated_by=current_user.user_id,
    )
    await db.commit()

    wallet = await get_or_create_wallet(db, current_user.user_id)
    await db.refresh(wallet)
    return wallet


@router.get("/transactions", response_model=TransactionListResponse)
async def list_my_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    transaction_type: Optional[TransactionType] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List my transactions (newest first, filterable by type)."""
    base = select(WalletTransaction).where(
        WalletTransaction.user_id == current_user.user_id
    )
    count_base = (
        select(func.count())
        .select_from(WalletTransaction)
        .where(WalletTransaction.user_id == current_user.user_id)
    )
    if transaction_type:
        base = base.where(WalletTransaction.transaction_type == transaction_type)
        count_base = count_base.where(
            WalletTransaction.transaction_type == transaction_type
        )

    total = (await db.execute(count_base)).scalar() or 0
    result = await db.execute(
        base.order_by(desc(WalletTransaction.created_at)).offset(skip).limit(limit)
    )
    transactions = list(result.scalars().all())

    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        total=total,
        skip=skip,
        limit=limit,
    )
