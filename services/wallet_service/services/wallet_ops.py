"""Wallet balance movements for QuickCart.

Checkout debits, cancellation refunds and admin top-ups all go through
``debit_wallet`` / ``credit_wallet``. Neither commits: the ledger row and
the balance change are flushed into the caller's transaction, so an order
and the money that pays for it succeed or fail as one unit.
"""

from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import BusinessRuleViolation, InsufficientBalance
from libs.common.logging import get_logger
from services.wallet_service.models import (
    TransactionDirection,
    TransactionType,
    Wallet,
    WalletTransaction,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ZERO = Decimal("0")


async def get_wallet(
    db: AsyncSession, user_id: str, *, for_update: bool = False
) -> Optional[Wallet]:
    stmt = select(Wallet).where(Wallet.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_or_create_wallet(
    db: AsyncSession, user_id: str, *, for_update: bool = False
) -> Wallet:
    """Return the customer's wallet, opening an empty one on first use."""
    wallet = await get_wallet(db, user_id, for_update=for_update)
    if wallet is not None:
        return wallet

    wallet = Wallet(
        user_id=user_id,
        balance=ZERO,
        lifetime_credited=ZERO,
        lifetime_debited=ZERO,
    )
    db.add(wallet)
    await db.flush()
    logger.info("Opened wallet %s for %s", wallet.id, user_id)
    return wallet


async def get_balance(db: AsyncSession, user_id: str) -> Decimal:
    wallet = await get_wallet(db, user_id)
    return wallet.balance if wallet is not None else ZERO


async def _already_posted(
    db: AsyncSession, idempotency_key: Optional[str]
) -> Optional[WalletTransaction]:
    if not idempotency_key:
        return None
    stmt = select(WalletTransaction).where(
        WalletTransaction.idempotency_key == idempotency_key
    )
    posted = (await db.execute(stmt)).scalar_one_or_none()
    if posted is not None:
        logger.info("Key %s already posted as %s", idempotency_key, posted.id)
    return posted


def _positive(amount: Decimal, verb: str) -> Decimal:
    amount = Decimal(amount)
    if amount <= 0:
        raise BusinessRuleViolation(f"{verb} amount must be positive")
    return amount


async def _post_entry(
    db: AsyncSession,
    wallet: Wallet,
    direction: TransactionDirection,
    amount: Decimal,
    **fields,
) -> WalletTransaction:
    """Append one ledger row and move the cached balance to match it."""
    before = wallet.balance
    if direction == TransactionDirection.DEBIT:
        after = before - amount
        wallet.lifetime_debited += amount
    else:
        after = before + amount
        wallet.lifetime_credited += amount

    entry = WalletTransaction(
        wallet_id=wallet.id,
        direction=direction,
        amount=amount,
        balance_before=before,
        balance_after=after,
        **fields,
    )
    db.add(entry)
    wallet.balance = after
    wallet.updated_at = utc_now()
    await db.flush()

    logger.info(
        "Wallet %s %s %s (%s -> %s)",
        wallet.id,
        direction.value,
        amount,
        before,
        after,
    )
    return entry


async def debit_wallet(
    db: AsyncSession,
    *,
    user_id: str,
    amount: Decimal,
    description: str,
    transaction_type: TransactionType = TransactionType.PURCHASE,
    idempotency_key: Optional[str] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    initiated_by: Optional[str] = None,
) -> WalletTransaction:
    """Take ``amount`` out of the customer's wallet.

    The wallet row is locked for the rest of the transaction. A missing
    wallet counts as a zero balance. Replaying an idempotency key returns
    the row it produced the first time.
    """
    amount = _positive(amount, "Debit")

    posted = await _already_posted(db, idempotency_key)
    if posted is not None:
        return posted

    wallet = await get_wallet(db, user_id, for_update=True)
    if wallet is None or wallet.balance < amount:
        raise InsufficientBalance()

    return await _post_entry(
        db,
        wallet,
        TransactionDirection.DEBIT,
        amount,
        user_id=user_id,
        idempotency_key=idempotency_key,
        transaction_type=transaction_type,
        description=description,
        reference_type=reference_type,
        reference_id=reference_id,
        initiated_by=initiated_by,
    )


async def credit_wallet(
    db: AsyncSession,
    *,
    user_id: str,
    amount: Decimal,
    description: str,
    transaction_type: TransactionType = TransactionType.REFUND,
    idempotency_key: Optional[str] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    initiated_by: Optional[str] = None,
) -> WalletTransaction:
    """Put ``amount`` into the customer's wallet, opening it if needed."""
    amount = _positive(amount, "Credit")

    posted = await _already_posted(db, idempotency_key)
    if posted is not None:
        return posted

    wallet = await get_or_create_wallet(db, user_id, for_update=True)
    return await _post_entry(
        db,
        wallet,
        TransactionDirection.CREDIT,
        amount,
        user_id=user_id,
        idempotency_key=idempotency_key,
        transaction_type=transaction_type,
        description=description,
        reference_type=reference_type,
        reference_id=reference_id,
        initiated_by=initiated_by,
    )
