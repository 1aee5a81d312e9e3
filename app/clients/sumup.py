"""
SumUp OAuth and REST utilities.

These helpers build the consent URL, exchange authorization codes and read
the merchant profile and transaction history on behalf of a user.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote, urlencode

import httpx
from pydantic import BaseModel, ValidationError

from app.core.config import SumUpSettings
from app.core.errors import (
    TokenExchangeError,
    TokenParseError,
    UpstreamError,
    UpstreamSchemaError,
)

logger = logging.getLogger(__name__)


class TokenGrant(BaseModel):
    """Token endpoint response body."""

    access_token: str
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None


class SumUpClient:
    """Build SumUp authorization URLs and call the SumUp APIs."""

    AUTHORIZE_PATH = "/authorize"
    TOKEN_PATH = "/token"
    PROFILE_PATH = "/v0.1/me"
    HISTORY_PATH = "/v2.1/merchants/{merchant_code}/transactions/history"

    def __init__(
        self,
        sumup_settings: SumUpSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._sumup = sumup_settings
        self._transport = transport

    @property
    def redirect_uri(self) -> str:
        return str(self._sumup.redirect_uri)

    @property
    def scopes(self) -> tuple[str, ...]:
        return self._sumup.scopes

    @property
    def token_url(self) -> str:
        return self._sumup.auth_base_url.rstrip("/") + self.TOKEN_PATH

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._sumup.http_timeout_seconds,
            transport=self._transport,
        )

    def build_authorization_url(self, *, client_id: str, state: str) -> str:
        """Construct the SumUp OAuth consent URL."""
        params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self._sumup.scopes),
            "state": state,
        }
        # quote keeps scope separators as %20; SumUp does not accept '+'.
        query = urlencode(params, quote_via=quote)
        base = self._sumup.auth_base_url.rstrip("/") + self.AUTHORIZE_PATH
        return f"{base}?{query}"

    async def exchange_authorization_code(
        self, code: str, *, client_id: str, client_secret: str
    ) -> TokenGrant:
        """Exchange an authorization code for tokens using HTTP Basic auth."""
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        }

        try:
            async with self._http_client() as client:
                response = await client.post(
                    self.token_url,
                    data=payload,
                    auth=(client_id, client_secret),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise TokenExchangeError(
                f"Token endpoint unreachable: {exc.__class__.__name__}"
            ) from exc

        logger.info("SumUp token endpoint responded with status %s", response.status_code)
        if not response.is_success:
            raise TokenExchangeError(
                "Failed to exchange authorization code.",
                upstream_status=response.status_code,
                upstream_body=response.text,
            )

        try:
            return TokenGrant.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TokenParseError("Failed to parse token response.") from exc

    async def get_profile(self, authorization: str) -> Any:
        """Fetch the merchant profile of the authenticated account."""
        return await self._get_json(self.PROFILE_PATH, authorization, "profile lookup")

    async def get_transaction_history(self, authorization: str, merchant_code: str) -> Any:
        """Fetch the transaction history for a merchant code."""
        path = self.HISTORY_PATH.format(merchant_code=quote(merchant_code, safe=""))
        return await self._get_json(path, authorization, "transaction history")

    async def _get_json(self, path: str, authorization: str, operation: str) -> Any:
        url = self._sumup.api_base_url.rstrip("/") + path
        try:
            async with self._http_client() as client:
                response = await client.get(
                    url,
                    headers={
                        "Authorization": authorization,
                        "Accept": "application/json",
                    },
                )
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"SumUp {operation} failed: {exc.__class__.__name__}"
            ) from exc

        logger.info("SumUp %s responded with status %s", operation, response.status_code)
        if not response.is_success:
            raise UpstreamError(
                f"SumUp {operation} failed.",
                upstream_status=response.status_code,
                upstream_body=response.text,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamSchemaError(
                f"SumUp {operation} returned a non-JSON body."
            ) from exc


__all__ = ["SumUpClient", "TokenGrant"]
