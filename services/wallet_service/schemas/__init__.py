"""Wallet Service schemas package."""

from services.wallet_service.schemas.transaction import (  # noqa: F401
    TransactionListResponse,
    TransactionResponse,
)
from services.wallet_service.schemas.wallet import (  # noqa: F401
    AddMoneyRequest,
    WalletResponse,
)

__all__ = [
    "AddMoneyRequest",
    "TransactionListResponse",
    "TransactionResponse",
    "WalletResponse",
]
