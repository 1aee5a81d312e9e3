"""Lookup of provider API credentials."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel

from app.core.config import SumUpSettings
from app.core.errors import ConfigurationError
from app.models.records import SUMUP_PROVIDER

logger = logging.getLogger(__name__)


class ProviderCredentials(BaseModel):
    """API key and/or OAuth client pair registered with a provider."""

    api_key: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    def require_client_id(self) -> str:
        if not self.client_id:
            raise ConfigurationError("SumUp client_id is not configured.")
        return self.client_id

    def require_client_pair(self) -> tuple[str, str]:
        if not self.client_id or not self.client_secret:
            raise ConfigurationError("SumUp client credentials not configured.")
        return self.client_id, self.client_secret


class CredentialStore:
    """Serve provider credentials from explicit settings."""

    def __init__(self, sumup_settings: SumUpSettings) -> None:
        self._sumup = sumup_settings

    def get_api_credential(self, provider_name: str) -> ProviderCredentials:
        if provider_name != SUMUP_PROVIDER:
            raise ConfigurationError(f"No credentials registered for '{provider_name}'.")

        credentials = ProviderCredentials(
            api_key=_clean(self._sumup.api_key),
            client_id=_clean(self._sumup.client_id),
            client_secret=_clean(self._sumup.client_secret),
        )
        if not credentials.api_key and not credentials.client_id:
            logger.error("SumUp credentials are missing from configuration")
            raise ConfigurationError("SumUp API credentials not configured.")
        if bool(credentials.client_id) != bool(credentials.client_secret):
            logger.error("SumUp client credentials are incomplete")
            raise ConfigurationError(
                "SumUp client credentials are malformed; "
                "both client_id and client_secret are required."
            )
        return credentials


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


__all__ = ["CredentialStore", "ProviderCredentials"]
