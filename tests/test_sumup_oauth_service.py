from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from app.core.config import OAuthSettings
from app.core.errors import (
    ConfigurationError,
    InvalidRequest,
    InvalidState,
    MissingParameters,
    ProviderDenied,
    StorageError,
    TokenExchangeError,
    TokenParseError,
)
from app.models.records import OAUTH_STATE_PROVIDER, OAuthStateRecord


def _state_from(url: str) -> str:
    return parse_qs(urlparse(url).query)["state"][0]


def _state_rows(store) -> list[dict]:
    return store.select("user_tokens", filters={"provider": OAUTH_STATE_PROVIDER})


def test_initiate_builds_authorization_url(oauth_service, store) -> None:
    url = oauth_service.initiate("user-1")

    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == (
        "https://api.sumup.test/authorize"
    )
    params = parse_qs(parsed.query)
    assert params["response_type"] == ["code"]
    assert params["client_id"] == ["client-abc"]
    assert params["redirect_uri"] == ["https://example.com/api/sumup/oauth/callback"]
    assert params["scope"] == ["transactions.history user.profile_readonly"]
    assert "scope=transactions.history%20user.profile_readonly" in parsed.query
    assert "+" not in parsed.query

    rows = _state_rows(store)
    assert len(rows) == 1
    assert rows[0]["user_id"] == "user-1"
    assert rows[0]["access_token"] == params["state"][0]


def test_each_initiation_stores_a_fresh_state(oauth_service, store) -> None:
    first = _state_from(oauth_service.initiate("user-1"))
    second = _state_from(oauth_service.initiate("user-1"))

    assert first != second
    assert len(_state_rows(store)) == 2


@pytest.mark.parametrize("user_id", [None, "", "   "])
def test_initiate_requires_user_id(oauth_service, store, user_id) -> None:
    with pytest.raises(InvalidRequest):
        oauth_service.initiate(user_id)
    assert _state_rows(store) == []


def test_initiate_without_credentials_fails(
    make_oauth_service, sumup_settings, store
) -> None:
    bare = sumup_settings.model_copy(update={"client_id": None, "client_secret": None})
    service = make_oauth_service(sumup_settings=bare)

    with pytest.raises(ConfigurationError):
        service.initiate("user-1")
    assert _state_rows(store) == []


@pytest.mark.asyncio
async def test_state_is_consumed_exactly_once(
    oauth_service, token_service, fake_sumup
) -> None:
    state = _state_from(oauth_service.initiate("user-42"))

    assert oauth_service.verify_state(state).user_id == "user-42"

    token = await oauth_service.complete(code="auth-code", state=state)
    assert token.user_id == "user-42"
    assert token_service.connection_status(user_id="user-42") == "connected"

    with pytest.raises(InvalidState):
        oauth_service.verify_state(state)
    with pytest.raises(InvalidState):
        await oauth_service.complete(code="auth-code", state=state)
    assert fake_sumup.paths().count("/token") == 1


@pytest.mark.asyncio
async def test_token_exchange_uses_basic_auth_and_form_body(
    oauth_service, fake_sumup
) -> None:
    state = _state_from(oauth_service.initiate("user-1"))
    await oauth_service.complete(code="auth-code", state=state)

    request = fake_sumup.requests[-1]
    assert request.method == "POST"
    assert request.url.path == "/token"
    expected = base64.b64encode(b"client-abc:secret-xyz").decode()
    assert request.headers["authorization"] == f"Basic {expected}"
    body = parse_qs(request.content.decode())
    assert body == {
        "grant_type": ["authorization_code"],
        "code": ["auth-code"],
        "redirect_uri": ["https://example.com/api/sumup/oauth/callback"],
    }


@pytest.mark.asyncio
async def test_stored_token_fields(oauth_service, token_service) -> None:
    state = _state_from(oauth_service.initiate("user-1"))
    before = datetime.now(timezone.utc)
    await oauth_service.complete(code="auth-code", state=state)

    token = token_service.get_token(user_id="user-1")
    assert token is not None
    assert token.access_token == "access-token-123456"
    assert token.refresh_token == "refresh-token-123456"
    assert token.token_type == "Bearer"
    assert token.scope == "transactions.history user.profile_readonly"
    assert token.expires_at is not None
    assert token.expires_at >= before + timedelta(seconds=3600)


@pytest.mark.asyncio
async def test_reconnect_replaces_previous_token(
    oauth_service, fake_sumup, store, token_service
) -> None:
    state = _state_from(oauth_service.initiate("user-1"))
    await oauth_service.complete(code="first", state=state)

    fake_sumup.token_response = httpx.Response(
        200, json={"access_token": "second-access-token"}
    )
    state = _state_from(oauth_service.initiate("user-1"))
    await oauth_service.complete(code="second", state=state)

    rows = store.select(
        "user_tokens", filters={"user_id": "user-1", "provider": "sumup"}
    )
    assert len(rows) == 1
    token = token_service.get_token(user_id="user-1")
    assert token.access_token == "second-access-token"
    assert token.token_type == "Bearer"
    assert token.refresh_token is None


@pytest.mark.asyncio
async def test_tampered_state_never_reaches_token_endpoint(
    oauth_service, fake_sumup
) -> None:
    oauth_service.initiate("user-1")

    with pytest.raises(InvalidState):
        await oauth_service.complete(code="abc", state="does-not-exist")
    assert fake_sumup.requests == []


@pytest.mark.asyncio
async def test_provider_error_is_reported(oauth_service, fake_sumup) -> None:
    with pytest.raises(ProviderDenied) as excinfo:
        await oauth_service.complete(code=None, state=None, error="access_denied")
    assert excinfo.value.message == "access_denied"
    assert fake_sumup.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("code,state", [(None, "s"), ("c", None), ("", "")])
async def test_missing_parameters(oauth_service, code, state) -> None:
    with pytest.raises(MissingParameters):
        await oauth_service.complete(code=code, state=state)


@pytest.mark.asyncio
async def test_failed_exchange_captures_upstream_and_discards_state(
    oauth_service, fake_sumup, store, token_service
) -> None:
    fake_sumup.token_response = httpx.Response(400, text='{"error":"invalid_grant"}')
    state = _state_from(oauth_service.initiate("user-1"))

    with pytest.raises(TokenExchangeError) as excinfo:
        await oauth_service.complete(code="stale", state=state)

    assert excinfo.value.upstream_status == 400
    assert "invalid_grant" in excinfo.value.upstream_body
    assert _state_rows(store) == []
    assert token_service.connection_status(user_id="user-1") == "disconnected"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"token_type": "Bearer"}),
    ],
)
async def test_unparsable_token_response(
    oauth_service, fake_sumup, store, response
) -> None:
    fake_sumup.token_response = response
    state = _state_from(oauth_service.initiate("user-1"))

    with pytest.raises(TokenParseError):
        await oauth_service.complete(code="code", state=state)
    assert _state_rows(store) == []


@pytest.mark.asyncio
async def test_missing_client_secret_fails_after_state_match(
    make_oauth_service, sumup_settings, store, fake_sumup
) -> None:
    state = _state_from(make_oauth_service().initiate("user-1"))
    broken = sumup_settings.model_copy(update={"client_secret": None})
    service = make_oauth_service(sumup_settings=broken)

    with pytest.raises(ConfigurationError):
        await service.complete(code="code", state=state)
    assert fake_sumup.requests == []
    assert _state_rows(store) == []


@pytest.mark.asyncio
async def test_expired_state_is_rejected(make_oauth_service, store, fake_sumup) -> None:
    service = make_oauth_service(oauth_settings=OAuthSettings(OAUTH_STATE_TTL=60))
    stale = OAuthStateRecord(
        user_id="user-1",
        state="old-state",
        created_at=datetime.now(timezone.utc) - timedelta(minutes=5),
    )
    store.insert("user_tokens", stale.to_row())

    with pytest.raises(InvalidState):
        await service.complete(code="code", state="old-state")
    assert fake_sumup.requests == []
    assert _state_rows(store) == []


def test_duplicate_states_resolve_to_most_recent(oauth_service, store) -> None:
    now = datetime.now(timezone.utc)
    older = OAuthStateRecord(
        user_id="user-old", state="dup", created_at=now - timedelta(seconds=30)
    )
    newer = OAuthStateRecord(user_id="user-new", state="dup", created_at=now)
    store.insert("user_tokens", newer.to_row())
    store.insert("user_tokens", older.to_row())

    assert oauth_service.verify_state("dup").user_id == "user-new"


def test_initiate_fails_when_state_cannot_be_stored(
    oauth_service, store, monkeypatch
) -> None:
    def _broken_insert(table, row):
        raise StorageError("database is locked")

    monkeypatch.setattr(store, "insert", _broken_insert)

    with pytest.raises(StorageError):
        oauth_service.initiate("user-1")
    assert _state_rows(store) == []


@pytest.mark.asyncio
async def test_token_save_failure_still_discards_state(
    oauth_service, token_service, store, monkeypatch
) -> None:
    state = _state_from(oauth_service.initiate("user-1"))

    def _broken_save(record):
        raise StorageError("disk full")

    monkeypatch.setattr(token_service, "save_token", _broken_save)

    with pytest.raises(StorageError):
        await oauth_service.complete(code="auth-code", state=state)
    assert _state_rows(store) == []
    assert token_service.connection_status(user_id="user-1") == "disconnected"


@pytest.mark.asyncio
async def test_state_cleanup_failure_does_not_fail_callback(
    oauth_service, token_service, store, monkeypatch
) -> None:
    state = _state_from(oauth_service.initiate("user-1"))

    def _broken_delete(table, **filters):
        raise StorageError("database is locked")

    monkeypatch.setattr(store, "delete", _broken_delete)

    token = await oauth_service.complete(code="auth-code", state=state)

    assert token.user_id == "user-1"
    assert token_service.connection_status(user_id="user-1") == "connected"
    assert len(_state_rows(store)) == 1
