"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from app.clients import CredentialStore, SQLiteStore, SumUpClient
from app.core.config import get_settings
from app.services import (
    SumUpOAuthService,
    SumUpTokenService,
    TransactionHistoryService,
    TransactionSyncService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide shared SQLite record store."""
    settings = _settings()
    return SQLiteStore(settings.database_path)


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide the SumUp credential lookup."""
    return CredentialStore(_settings().sumup)


@lru_cache()
def get_sumup_client() -> SumUpClient:
    """Create a singleton SumUp API client."""
    return SumUpClient(_settings().sumup)


def get_sumup_token_service() -> SumUpTokenService:
    """Provide helper for reading and writing SumUp tokens."""
    return SumUpTokenService(get_sqlite_store())


def get_sumup_oauth_service() -> SumUpOAuthService:
    """Build the OAuth flow service from the shared clients."""
    settings = _settings()
    return SumUpOAuthService(
        store=get_sqlite_store(),
        credential_store=get_credential_store(),
        sumup_client=get_sumup_client(),
        token_service=get_sumup_token_service(),
        oauth_settings=settings.oauth,
    )


def get_transaction_sync_service() -> TransactionSyncService:
    """Build the transaction synchronizer."""
    return TransactionSyncService(
        store=get_sqlite_store(),
        sumup_client=get_sumup_client(),
        token_service=get_sumup_token_service(),
    )


def get_transaction_history_service() -> TransactionHistoryService:
    """Build the read-side transaction query service."""
    return TransactionHistoryService(get_sqlite_store())


__all__ = [
    "get_credential_store",
    "get_sqlite_store",
    "get_sumup_client",
    "get_sumup_oauth_service",
    "get_sumup_token_service",
    "get_transaction_history_service",
    "get_transaction_sync_service",
]
