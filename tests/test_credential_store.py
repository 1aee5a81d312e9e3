from __future__ import annotations

import pytest

from app.clients.credentials import CredentialStore
from app.core.errors import ConfigurationError


def test_returns_client_pair(sumup_settings) -> None:
    credentials = CredentialStore(sumup_settings).get_api_credential("sumup")

    assert credentials.require_client_id() == "client-abc"
    assert credentials.require_client_pair() == ("client-abc", "secret-xyz")


def test_api_key_only_cannot_start_oauth(sumup_settings) -> None:
    settings = sumup_settings.model_copy(
        update={"client_id": None, "client_secret": None, "api_key": "sk_live_123"}
    )
    credentials = CredentialStore(settings).get_api_credential("sumup")

    assert credentials.api_key == "sk_live_123"
    with pytest.raises(ConfigurationError):
        credentials.require_client_id()


@pytest.mark.parametrize(
    "update",
    [
        {"client_id": None, "client_secret": None, "api_key": None},
        {"client_id": "  ", "client_secret": " ", "api_key": ""},
        {"client_secret": None},
        {"client_id": None},
    ],
    ids=["absent", "blank", "no-secret", "no-client-id"],
)
def test_missing_or_malformed_credentials(sumup_settings, update) -> None:
    settings = sumup_settings.model_copy(update=update)

    with pytest.raises(ConfigurationError):
        CredentialStore(settings).get_api_credential("sumup")


def test_unknown_provider(sumup_settings) -> None:
    with pytest.raises(ConfigurationError):
        CredentialStore(sumup_settings).get_api_credential("paypal")
