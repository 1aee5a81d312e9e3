"""Service layer exports."""

from .sumup_oauth import SumUpOAuthService
from .sumup_tokens import SumUpTokenService
from .transaction_history import TransactionHistoryService
from .transaction_sync import SyncResult, TransactionSyncService

__all__ = [
    "SumUpOAuthService",
    "SumUpTokenService",
    "SyncResult",
    "TransactionHistoryService",
    "TransactionSyncService",
]
