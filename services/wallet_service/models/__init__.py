"""Wallet Service models package."""

from services.wallet_service.models.enums import (  # noqa: F401
    TransactionDirection,
    TransactionType,
)
from services.wallet_service.models.transaction import WalletTransaction  # noqa: F401
from services.wallet_service.models.wallet import Wallet  # noqa: F401

__all__ = [
    "TransactionDirection",
    "TransactionType",
    "Wallet",
    "WalletTransaction",
]
