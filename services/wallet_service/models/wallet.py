"""Wallet model: stored-value balance per user."""

import uuid
from datetime import datetime
from decimal import Decimal

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import CheckConstraint, DateTime, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Wallet(Base):
    """One wallet per user. ``balance`` is a cached running total of the ledger."""

    __tablename__ = "wallets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    lifetime_credited: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    lifetime_debited: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    transactions: Mapped[list["WalletTransaction"]] = relationship(  # noqa: F821
        back_populates="wallet", order_by="WalletTransaction.created_at"
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Wallet {self.id} user_id={self.user_id} balance={self.balance}>"
