"""
Synchronize SumUp transaction history into the local transactions table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from app.clients.sqlite_store import SQLiteStore
from app.clients.sumup import SumUpClient
from app.core.errors import InvalidRequest, NotConnected, StorageError, UpstreamError
from app.models.records import utcnow
from app.services.response_shapes import (
    extract_merchant_code,
    extract_transaction_items,
    normalize_transaction,
)
from app.services.sumup_tokens import SumUpTokenService

logger = logging.getLogger(__name__)

TRANSACTIONS_TABLE = "transactions"


@dataclass(slots=True)
class SyncResult:
    """Outcome of a sync run."""

    synced_count: int
    total_fetched: int


class TransactionSyncService:
    """Fetch a user's SumUp transactions and upsert them locally."""

    def __init__(
        self,
        *,
        store: SQLiteStore,
        sumup_client: SumUpClient,
        token_service: SumUpTokenService,
    ) -> None:
        self._store = store
        self._client = sumup_client
        self._tokens = token_service

    async def sync(self, user_id: Optional[str]) -> SyncResult:
        if not user_id or not user_id.strip():
            raise InvalidRequest("User ID is required.")

        token = self._tokens.get_token(user_id=user_id)
        if token is None:
            logger.warning("Sync requested for user %s without a SumUp token", user_id)
            raise NotConnected("SumUp account not connected.")

        authorization = token.authorization_header
        try:
            profile = await self._client.get_profile(authorization)
            merchant_code = extract_merchant_code(profile)
            logger.info("Resolved merchant code %s for user %s", merchant_code, user_id)
            body = await self._client.get_transaction_history(authorization, merchant_code)
        except UpstreamError as exc:
            logger.error(
                "SumUp request for user %s failed with status %s: %s",
                user_id,
                exc.upstream_status,
                exc.upstream_body,
            )
            raise

        items = extract_transaction_items(body)
        synced = 0
        now = utcnow()
        for item in items:
            try:
                record = normalize_transaction(item, user_id=user_id, now=now)
                self._store.upsert(
                    TRANSACTIONS_TABLE,
                    record.to_row(),
                    on_conflict=("provider", "transaction_id"),
                )
            except (ValueError, OverflowError, OSError, StorageError) as exc:
                logger.error("Skipping SumUp transaction for user %s: %s", user_id, exc)
                continue
            synced += 1

        logger.info(
            "Synced %s of %s SumUp transactions for user %s",
            synced,
            len(items),
            user_id,
        )
        return SyncResult(synced_count=synced, total_fetched=len(items))


__all__ = ["SyncResult", "TRANSACTIONS_TABLE", "TransactionSyncService"]
