"""Expose constructed client wrappers."""

from .credentials import CredentialStore, ProviderCredentials
from .sqlite_store import SQLiteStore
from .sumup import SumUpClient, TokenGrant

__all__ = [
    "CredentialStore",
    "ProviderCredentials",
    "SQLiteStore",
    "SumUpClient",
    "TokenGrant",
]
