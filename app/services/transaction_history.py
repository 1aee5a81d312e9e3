"""Read-side queries over stored transactions."""

from __future__ import annotations

from typing import List, Optional

from app.clients.sqlite_store import SQLiteStore
from app.models.records import TransactionRecord
from app.services.transaction_sync import TRANSACTIONS_TABLE


class TransactionHistoryService:
    """List a user's transactions newest first, with optional filters."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def list_transactions(
        self,
        *,
        user_id: str,
        search: Optional[str] = None,
        status: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> List[TransactionRecord]:
        filters = {"user_id": user_id}
        if status:
            filters["status"] = status
        if provider:
            filters["provider"] = provider

        rows = self._store.select(
            TRANSACTIONS_TABLE,
            filters=filters,
            order_by="transaction_date",
            descending=True,
        )
        records = [TransactionRecord.from_row(row) for row in rows]
        if search:
            records = [record for record in records if _matches(record, search)]
        return records


def _matches(record: TransactionRecord, search: str) -> bool:
    needle = search.strip().lower()
    if not needle:
        return True
    return (
        needle in (record.description or "").lower()
        or needle in str(record.amount)
        or needle in record.currency.lower()
    )


__all__ = ["TransactionHistoryService"]
