"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from typing import Any, Callable

import httpx
import pytest

from app.clients import CredentialStore, SQLiteStore, SumUpClient
from app.core.config import OAuthSettings, SumUpSettings
from app.services import (
    SumUpOAuthService,
    SumUpTokenService,
    TransactionSyncService,
)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


class FakeSumUpAPI:
    """Programmable stand-in for the SumUp HTTP endpoints."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_response = httpx.Response(
            200,
            json={
                "access_token": "access-token-123456",
                "refresh_token": "refresh-token-123456",
                "token_type": "Bearer",
                "expires_in": 3600,
                "scope": "transactions.history user.profile_readonly",
            },
        )
        self.profile_response = httpx.Response(
            200, json={"merchant_profile": {"merchant_code": "MC123"}}
        )
        self.history_response = httpx.Response(200, json={"items": []})

    def set_history(self, body: Any) -> None:
        self.history_response = httpx.Response(200, json=body)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/token":
            return self.token_response
        if path == "/v0.1/me":
            return self.profile_response
        if path.endswith("/transactions/history"):
            return self.history_response
        return httpx.Response(404, text="not found")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def sumup_settings() -> SumUpSettings:
    return SumUpSettings(
        SUMUP_CLIENT_ID="client-abc",
        SUMUP_CLIENT_SECRET="secret-xyz",
        SUMUP_REDIRECT_URI="https://example.com/api/sumup/oauth/callback",
        SUMUP_AUTH_BASE_URL="https://api.sumup.test",
        SUMUP_API_BASE_URL="https://api.sumup.test",
    )


@pytest.fixture
def fake_sumup() -> FakeSumUpAPI:
    return FakeSumUpAPI()


@pytest.fixture
def store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "sumup.db"))


@pytest.fixture
def sumup_client(sumup_settings, fake_sumup) -> SumUpClient:
    return SumUpClient(sumup_settings, transport=fake_sumup.transport())


@pytest.fixture
def token_service(store) -> SumUpTokenService:
    return SumUpTokenService(store)


@pytest.fixture
def make_oauth_service(
    store, sumup_client, token_service, sumup_settings
) -> Callable[..., SumUpOAuthService]:
    def _factory(**overrides: Any) -> SumUpOAuthService:
        settings = overrides.pop("sumup_settings", sumup_settings)
        return SumUpOAuthService(
            store=store,
            credential_store=CredentialStore(settings),
            sumup_client=sumup_client,
            token_service=token_service,
            oauth_settings=overrides.pop("oauth_settings", OAuthSettings()),
        )

    return _factory


@pytest.fixture
def oauth_service(make_oauth_service) -> SumUpOAuthService:
    return make_oauth_service()


@pytest.fixture
def sync_service(store, sumup_client, token_service) -> TransactionSyncService:
    return TransactionSyncService(
        store=store, sumup_client=sumup_client, token_service=token_service
    )
