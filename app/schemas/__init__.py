"""Public schema exports."""

from .sumup import (
    AuthorizationUrlResponse,
    ConnectionStatusResponse,
    DisconnectResponse,
    SyncResponse,
    TransactionOut,
    UserRequest,
)

__all__ = [
    "AuthorizationUrlResponse",
    "ConnectionStatusResponse",
    "DisconnectResponse",
    "SyncResponse",
    "TransactionOut",
    "UserRequest",
]
