"""
Error taxonomy for the SumUp connection and synchronization flow.

Every failure is terminal for the operation that raised it. Each error
carries a stable ``code`` and the HTTP status the API layer answers with.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, Optional


class SumUpIntegrationError(Exception):
    """Base class for classified failures of the SumUp workflow."""

    code = "internal_error"
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        payload.update(self.details)
        return payload


class InvalidRequest(SumUpIntegrationError):
    """Raised when a required input is missing."""

    code = "invalid_request"
    status_code = HTTPStatus.BAD_REQUEST


class ConfigurationError(SumUpIntegrationError):
    """Raised when provider credentials are missing or malformed."""

    code = "configuration_error"
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class ProviderDenied(SumUpIntegrationError):
    """Raised when the provider redirects back with an ``error`` parameter."""

    code = "provider_denied"
    status_code = HTTPStatus.BAD_REQUEST


class MissingParameters(SumUpIntegrationError):
    """Raised when the callback lacks ``code`` or ``state``."""

    code = "missing_parameters"
    status_code = HTTPStatus.BAD_REQUEST


class InvalidState(SumUpIntegrationError):
    """Raised when the state value does not match a stored state record."""

    code = "invalid_state"
    status_code = HTTPStatus.BAD_REQUEST


class UpstreamError(SumUpIntegrationError):
    """Raised when SumUp answers with a non-success status."""

    code = "upstream_error"
    status_code = HTTPStatus.BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        upstream_status: Optional[int] = None,
        upstream_body: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            details={"status": upstream_status, "details": upstream_body},
        )
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body


class TokenExchangeError(UpstreamError):
    """Raised when the token endpoint rejects the authorization code."""

    code = "token_exchange_error"


class UpstreamSchemaError(SumUpIntegrationError):
    """Raised when an upstream body matches none of the known shapes."""

    code = "upstream_schema_error"
    status_code = HTTPStatus.BAD_GATEWAY


class TokenParseError(UpstreamSchemaError):
    """Raised when the token endpoint body cannot be parsed."""

    code = "token_parse_error"


class StorageError(SumUpIntegrationError):
    """Raised when a persistence operation fails."""

    code = "storage_error"
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class NotConnected(SumUpIntegrationError):
    """Raised when a sync is requested for a user without a stored token."""

    code = "not_connected"
    status_code = HTTPStatus.BAD_REQUEST


__all__ = [
    "ConfigurationError",
    "InvalidRequest",
    "InvalidState",
    "MissingParameters",
    "NotConnected",
    "ProviderDenied",
    "StorageError",
    "SumUpIntegrationError",
    "TokenExchangeError",
    "TokenParseError",
    "UpstreamError",
    "UpstreamSchemaError",
]
