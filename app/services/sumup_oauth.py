"""
SumUp OAuth connection flow.

``initiate`` persists a random state value and returns the consent URL;
``complete`` validates the provider redirect, exchanges the authorization
code and stores the resulting token. The matched state record is removed on
every outcome once it has been found.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Optional

from app.clients.credentials import CredentialStore
from app.clients.sqlite_store import SQLiteStore
from app.clients.sumup import SumUpClient
from app.core.config import OAuthSettings
from app.core.errors import (
    InvalidRequest,
    InvalidState,
    MissingParameters,
    ProviderDenied,
    StorageError,
    TokenExchangeError,
    TokenParseError,
)
from app.core.logging import mask_secret
from app.models.records import (
    OAUTH_STATE_PROVIDER,
    SUMUP_PROVIDER,
    OAuthStateRecord,
    TokenRecord,
    utcnow,
)
from app.services.sumup_tokens import TOKENS_TABLE, SumUpTokenService

logger = logging.getLogger(__name__)


class SumUpOAuthService:
    """Start and complete the SumUp authorization code flow."""

    def __init__(
        self,
        *,
        store: SQLiteStore,
        credential_store: CredentialStore,
        sumup_client: SumUpClient,
        token_service: SumUpTokenService,
        oauth_settings: OAuthSettings,
    ) -> None:
        self._store = store
        self._credentials = credential_store
        self._client = sumup_client
        self._tokens = token_service
        self._oauth_settings = oauth_settings

    def initiate(self, user_id: Optional[str]) -> str:
        """Persist a new state record and return the SumUp consent URL."""
        if not user_id or not user_id.strip():
            raise InvalidRequest("User ID is required.")

        credentials = self._credentials.get_api_credential(SUMUP_PROVIDER)
        client_id = credentials.require_client_id()

        record = OAuthStateRecord(user_id=user_id, state=str(uuid.uuid4()))
        self._store.insert(TOKENS_TABLE, record.to_row())
        logger.info(
            "Stored OAuth state %s for user %s", mask_secret(record.state), user_id
        )

        return self._client.build_authorization_url(
            client_id=client_id, state=record.state
        )

    def verify_state(self, state: str) -> OAuthStateRecord:
        """Return the newest state record matching ``state``."""
        try:
            row = self._store.select_one(
                TOKENS_TABLE,
                filters={"provider": OAUTH_STATE_PROVIDER, "access_token": state},
                order_by="created_at",
                descending=True,
            )
        except StorageError as exc:
            logger.error("State verification failed: %s", exc)
            raise InvalidState("State verification failed.") from exc

        if not row:
            logger.warning("No OAuth state record matches %s", mask_secret(state))
            raise InvalidState("Invalid state parameter.")
        return OAuthStateRecord.from_row(row)

    async def complete(
        self,
        *,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
    ) -> TokenRecord:
        """Finish the flow for a provider redirect and return the stored token."""
        if error:
            logger.error("SumUp returned an OAuth error: %s", error)
            raise ProviderDenied(error)
        if not code or not state:
            logger.error("OAuth callback is missing code or state")
            raise MissingParameters("Missing authorization parameters.")

        state_record = self.verify_state(state)
        try:
            self._ensure_fresh(state_record)
            return await self._exchange_and_store(code, state_record.user_id)
        finally:
            self._discard_state(state)

    def _ensure_fresh(self, record: OAuthStateRecord) -> None:
        ttl = timedelta(seconds=self._oauth_settings.state_ttl_seconds)
        if utcnow() - record.created_at > ttl:
            logger.warning("OAuth state for user %s has expired", record.user_id)
            raise InvalidState("OAuth state has expired.")

    async def _exchange_and_store(self, code: str, user_id: str) -> TokenRecord:
        credentials = self._credentials.get_api_credential(SUMUP_PROVIDER)
        client_id, client_secret = credentials.require_client_pair()

        logger.info(
            "Exchanging authorization code for user %s (client %s)",
            user_id,
            mask_secret(client_id),
        )
        try:
            grant = await self._client.exchange_authorization_code(
                code, client_id=client_id, client_secret=client_secret
            )
        except TokenExchangeError as exc:
            logger.error(
                "Token exchange for user %s failed with status %s: %s",
                user_id,
                exc.upstream_status,
                exc.upstream_body,
            )
            raise
        except TokenParseError:
            logger.error("Token response for user %s could not be parsed", user_id)
            raise

        now = utcnow()
        record = TokenRecord(
            user_id=user_id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            token_type=grant.token_type or "Bearer",
            expires_at=now + timedelta(seconds=grant.expires_in)
            if grant.expires_in
            else None,
            scope=grant.scope or " ".join(self._client.scopes),
            created_at=now,
            updated_at=now,
        )
        logger.info(
            "Received SumUp token %s (scope=%s, type=%s) for user %s",
            mask_secret(record.access_token),
            record.scope,
            record.token_type,
            user_id,
        )
        self._tokens.save_token(record)
        return record

    def _discard_state(self, state: str) -> None:
        try:
            self._store.delete(
                TOKENS_TABLE, provider=OAUTH_STATE_PROVIDER, access_token=state
            )
        except StorageError as exc:
            logger.warning("Could not remove OAuth state record: %s", exc)


__all__ = ["SumUpOAuthService"]
