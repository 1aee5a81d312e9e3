"""
Domain models for OAuth state, token and transaction persistence.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

SUMUP_PROVIDER = "sumup"
OAUTH_STATE_PROVIDER = "sumup_oauth_state"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 column value, treating naive values as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class OAuthStateRecord(BaseModel):
    """Ephemeral CSRF state bound to the user that started the OAuth flow."""

    user_id: str
    state: str
    provider: str = OAUTH_STATE_PROVIDER
    created_at: datetime = Field(default_factory=utcnow)

    def to_row(self) -> Dict[str, Any]:
        # State rows share the token table; the state value sits in access_token.
        return {
            "user_id": self.user_id,
            "provider": self.provider,
            "access_token": self.state,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OAuthStateRecord":
        return cls(
            user_id=row["user_id"],
            state=row["access_token"],
            provider=row["provider"],
            created_at=parse_timestamp(row.get("created_at")) or utcnow(),
        )


class TokenRecord(BaseModel):
    """SumUp credentials persisted for a user."""

    user_id: str
    provider: str = SUMUP_PROVIDER
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_at: Optional[datetime] = None
    scope: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type or 'Bearer'} {self.access_token}"

    def to_row(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "provider": self.provider,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "scope": self.scope,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TokenRecord":
        return cls(
            user_id=row["user_id"],
            provider=row["provider"],
            access_token=row["access_token"],
            refresh_token=row.get("refresh_token"),
            token_type=row.get("token_type") or "Bearer",
            expires_at=parse_timestamp(row.get("expires_at")),
            scope=row.get("scope"),
            created_at=parse_timestamp(row.get("created_at")) or utcnow(),
            updated_at=parse_timestamp(row.get("updated_at")) or utcnow(),
        )


class TransactionRecord(BaseModel):
    """A SumUp transaction normalized for local storage."""

    user_id: str
    provider: str = SUMUP_PROVIDER
    transaction_id: str
    amount: Decimal
    currency: str
    status: str
    description: Optional[str] = None
    merchant_name: Optional[str] = None
    transaction_date: datetime
    raw_data: Dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_row(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "provider": self.provider,
            "transaction_id": self.transaction_id,
            "amount": str(self.amount),
            "currency": self.currency,
            "status": self.status,
            "description": self.description,
            "merchant_name": self.merchant_name,
            "transaction_date": self.transaction_date.isoformat(),
            "raw_data": json.dumps(self.raw_data, default=str),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TransactionRecord":
        raw = row.get("raw_data")
        return cls(
            user_id=row["user_id"],
            provider=row["provider"],
            transaction_id=row["transaction_id"],
            amount=Decimal(row["amount"]),
            currency=row["currency"],
            status=row["status"],
            description=row.get("description"),
            merchant_name=row.get("merchant_name"),
            transaction_date=parse_timestamp(row["transaction_date"]),
            raw_data=json.loads(raw) if raw else {},
            updated_at=parse_timestamp(row.get("updated_at")) or utcnow(),
        )


__all__ = [
    "OAUTH_STATE_PROVIDER",
    "OAuthStateRecord",
    "SUMUP_PROVIDER",
    "TokenRecord",
    "TransactionRecord",
    "parse_timestamp",
    "utcnow",
]
