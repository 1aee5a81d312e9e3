"""Request and response schemas for the SumUp endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_serializer


class UserRequest(BaseModel):
    """Body shared by endpoints acting on behalf of a user."""

    user_id: Optional[str] = Field(
        None, description="Identifier of the authenticated application user."
    )


class AuthorizationUrlResponse(BaseModel):
    authorization_url: str


class SyncResponse(BaseModel):
    success: bool = True
    synced_count: int
    total_fetched: int


class ConnectionStatusResponse(BaseModel):
    provider: str = "sumup"
    status: Literal["connected", "disconnected"]


class DisconnectResponse(BaseModel):
    status: Literal["disconnected"] = "disconnected"
    removed: int


class TransactionOut(BaseModel):
    """A stored transaction as exposed to the web client."""

    transaction_id: str
    provider: str
    amount: Decimal
    currency: str
    status: str
    description: Optional[str] = None
    merchant_name: Optional[str] = None
    transaction_date: datetime

    @field_serializer("amount")
    def _amount_as_number(self, amount: Decimal) -> float:
        # The web client sums and formats amounts as JSON numbers.
        return float(amount)


__all__ = [
    "AuthorizationUrlResponse",
    "ConnectionStatusResponse",
    "DisconnectResponse",
    "SyncResponse",
    "TransactionOut",
    "UserRequest",
]
