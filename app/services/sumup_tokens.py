"""
Helpers for reading and writing persisted SumUp OAuth tokens.
"""

from __future__ import annotations

import logging
from typing import Literal, Optional

from app.clients.sqlite_store import SQLiteStore
from app.models.records import SUMUP_PROVIDER, TokenRecord

logger = logging.getLogger(__name__)

ConnectionStatus = Literal["connected", "disconnected"]

TOKENS_TABLE = "user_tokens"


class SumUpTokenService:
    """Manages access to persisted SumUp tokens.

    The token table does not enforce one row per user, so reads always pick
    the most recently created row.
    """

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def get_token(self, *, user_id: str) -> Optional[TokenRecord]:
        row = self._store.select_one(
            TOKENS_TABLE,
            filters={"user_id": user_id, "provider": SUMUP_PROVIDER},
            order_by="created_at",
            descending=True,
        )
        return TokenRecord.from_row(row) if row else None

    def save_token(self, record: TokenRecord) -> None:
        """Store a token, replacing any earlier token for the same user."""
        self._store.upsert(
            TOKENS_TABLE, record.to_row(), on_conflict=("user_id", "provider")
        )
        logger.info("Stored SumUp token for user %s", record.user_id)

    def connection_status(self, *, user_id: str) -> ConnectionStatus:
        row = self._store.select_one(
            TOKENS_TABLE,
            filters={"user_id": user_id, "provider": SUMUP_PROVIDER},
        )
        return "connected" if row else "disconnected"

    def disconnect(self, *, user_id: str) -> int:
        removed = self._store.delete(
            TOKENS_TABLE, user_id=user_id, provider=SUMUP_PROVIDER
        )
        logger.info("Removed %s SumUp token(s) for user %s", removed, user_id)
        return removed


__all__ = ["ConnectionStatus", "SumUpTokenService", "TOKENS_TABLE"]
