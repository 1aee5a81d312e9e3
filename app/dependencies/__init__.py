"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_credential_store,
    get_sqlite_store,
    get_sumup_client,
    get_sumup_oauth_service,
    get_sumup_token_service,
    get_transaction_history_service,
    get_transaction_sync_service,
)
from .config import get_app_settings

__all__ = [
    "get_app_settings",
    "get_credential_store",
    "get_sqlite_store",
    "get_sumup_client",
    "get_sumup_oauth_service",
    "get_sumup_token_service",
    "get_transaction_history_service",
    "get_transaction_sync_service",
]
