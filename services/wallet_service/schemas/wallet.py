"""Wallet request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class WalletResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    balance: Decimal
    lifetime_credited: Decimal
    lifetime_debited: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AddMoneyRequest(BaseModel):
    """Simulated top-up from the customer wallet page."""

    amount: Decimal = Field(..., gt=0, le=Decimal("50000"), decimal_places=2)
