"""WalletTransaction model: append-only ledger."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.wallet_service.models.enums import (
    TransactionDirection,
    TransactionType,
    enum_values,
)
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class WalletTransaction(Base):
    """Immutable ledger of every balance change. Rows are never updated or deleted."""

    __tablename__ = "wallet_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("wallets.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    # Set for system-initiated movements (order payments/refunds) so a retry
    # cannot apply the same movement twice.
    idempotency_key: Mapped[Optional[str]] = mapped_column(
        String(100), unique=True, nullable=True
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(
            TransactionType,
            name="wallet_transaction_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    direction: Mapped[TransactionDirection] = mapped_column(
        SAEnum(
            TransactionDirection,
            name="wallet_transaction_direction_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    reference_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    reference_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    initiated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    wallet: Mapped["Wallet"] = relationship(back_populates="transactions")  # noqa: F821

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_wallet_transaction_amount_positive"),
        Index("ix_wallet_transactions_wallet_created", "wallet_id", "created_at"),
    )

    @property
    def signed_amount(self) -> Decimal:
        if self.direction == TransactionDirection.DEBIT:
            return -self.amount
        return self.amount

    def __repr__(self) -> str:
        return f"<WalletTransaction {self.id} {self.direction.value} {self.amount}>"
