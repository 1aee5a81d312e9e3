"""
FastAPI routes for the SumUp connection and transaction sync flow.
"""

from __future__ import annotations

import html
import logging
from http import HTTPStatus
from typing import Annotated, Any, List
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from app.core.errors import SumUpIntegrationError
from app.dependencies import (
    get_app_settings,
    get_sumup_oauth_service,
    get_sumup_token_service,
    get_transaction_history_service,
    get_transaction_sync_service,
)
from app.schemas import (
    AuthorizationUrlResponse,
    ConnectionStatusResponse,
    DisconnectResponse,
    SyncResponse,
    TransactionOut,
    UserRequest,
)

router = APIRouter()
logger = logging.getLogger(__name__)


# User-facing wording for callback failures whose internal message is not
# meant for the browser.
_CALLBACK_MESSAGES = {
    "configuration_error": "SumUp credentials not configured",
    "token_exchange_error": "Failed to exchange authorization code",
    "token_parse_error": "Failed to parse token response",
    "storage_error": "Failed to store access token",
}

_STATUS_PAGE = """<!DOCTYPE html>
<html>
  <head><title>SumUp connection</title></head>
  <body>
    <h1>{title}</h1>
    <p>{message}</p>
    <p>You can close this window.</p>
  </body>
</html>
"""


def _http_error(exc: SumUpIntegrationError) -> HTTPException:
    return HTTPException(status_code=int(exc.status_code), detail=exc.to_dict())


def _callback_response(settings: Any, error_message: str | None = None) -> Response:
    """Send the browser back to the app, or render a status page."""
    if settings.frontend_base_url:
        params = (
            {"sumup": "error", "message": error_message}
            if error_message
            else {"sumup": "connected"}
        )
        target = (
            f"{str(settings.frontend_base_url).rstrip('/')}/connections?"
            f"{urlencode(params, quote_via=quote)}"
        )
        return RedirectResponse(url=target, status_code=HTTPStatus.FOUND)

    if error_message:
        body = _STATUS_PAGE.format(
            title="SumUp connection failed", message=html.escape(error_message)
        )
        return HTMLResponse(body, status_code=HTTPStatus.BAD_REQUEST)
    body = _STATUS_PAGE.format(
        title="SumUp connected", message="Your SumUp account is now connected."
    )
    return HTMLResponse(body, status_code=HTTPStatus.OK)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post(
    "/sumup/oauth/init",
    response_model=AuthorizationUrlResponse,
    status_code=HTTPStatus.OK,
)
async def start_sumup_oauth_flow(
    payload: UserRequest,
    oauth_service: Annotated[Any, Depends(get_sumup_oauth_service)],
) -> AuthorizationUrlResponse:
    """Create a state record and hand back the SumUp consent URL."""
    logger.info("SumUp OAuth init requested for user %s", payload.user_id)
    try:
        authorization_url = oauth_service.initiate(payload.user_id)
    except SumUpIntegrationError as exc:
        logger.error("SumUp OAuth init failed (%s): %s", exc.code, exc.message)
        raise _http_error(exc) from exc
    return AuthorizationUrlResponse(authorization_url=authorization_url)


@router.get("/sumup/oauth/callback")
async def handle_sumup_oauth_callback(
    oauth_service: Annotated[Any, Depends(get_sumup_oauth_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
    code: str | None = Query(default=None, description="Authorization code."),
    state: str | None = Query(default=None, description="OAuth state value."),
    error: str | None = Query(default=None, description="Provider error code."),
) -> Response:
    """Complete the OAuth exchange and report the outcome to the browser."""
    logger.info(
        "SumUp OAuth callback received (code=%s, state=%s, error=%s)",
        bool(code),
        bool(state),
        error,
    )
    try:
        token = await oauth_service.complete(code=code, state=state, error=error)
    except SumUpIntegrationError as exc:
        logger.error("SumUp OAuth callback failed (%s): %s", exc.code, exc.message)
        return _callback_response(
            settings, _CALLBACK_MESSAGES.get(exc.code, exc.message)
        )
    except Exception:
        logger.exception("Unexpected error during SumUp OAuth callback")
        return _callback_response(settings, "Unexpected error occurred")

    logger.info("SumUp OAuth flow completed for user %s", token.user_id)
    return _callback_response(settings)


@router.post(
    "/sumup/transactions/sync",
    response_model=SyncResponse,
    status_code=HTTPStatus.OK,
)
async def sync_sumup_transactions(
    payload: UserRequest,
    sync_service: Annotated[Any, Depends(get_transaction_sync_service)],
) -> SyncResponse:
    """Pull the user's SumUp history into the transactions table."""
    try:
        result = await sync_service.sync(payload.user_id)
    except SumUpIntegrationError as exc:
        logger.error("SumUp sync failed (%s): %s", exc.code, exc.message)
        raise _http_error(exc) from exc
    return SyncResponse(
        success=True,
        synced_count=result.synced_count,
        total_fetched=result.total_fetched,
    )


@router.get(
    "/sumup/connection",
    response_model=ConnectionStatusResponse,
    status_code=HTTPStatus.OK,
)
async def get_sumup_connection_status(
    token_service: Annotated[Any, Depends(get_sumup_token_service)],
    user_id: str = Query(..., description="User identifier to check."),
) -> ConnectionStatusResponse:
    """Report whether the user has a stored SumUp token."""
    try:
        status = token_service.connection_status(user_id=user_id)
    except SumUpIntegrationError as exc:
        raise _http_error(exc) from exc
    return ConnectionStatusResponse(status=status)


@router.delete(
    "/sumup/connection",
    response_model=DisconnectResponse,
    status_code=HTTPStatus.OK,
)
async def disconnect_sumup(
    token_service: Annotated[Any, Depends(get_sumup_token_service)],
    user_id: str = Query(..., description="User identifier to disconnect."),
) -> DisconnectResponse:
    """Forget every stored SumUp token for the user."""
    try:
        removed = token_service.disconnect(user_id=user_id)
    except SumUpIntegrationError as exc:
        raise _http_error(exc) from exc
    return DisconnectResponse(removed=removed)


@router.get(
    "/transactions",
    response_model=List[TransactionOut],
    status_code=HTTPStatus.OK,
)
async def list_transactions(
    history_service: Annotated[Any, Depends(get_transaction_history_service)],
    user_id: str = Query(..., description="Owner of the transactions."),
    search: str | None = Query(
        default=None,
        description="Case-insensitive match on description, amount or currency.",
    ),
    status: str | None = Query(default=None, description="Exact status filter."),
    provider: str | None = Query(default=None, description="Exact provider filter."),
) -> List[TransactionOut]:
    """List stored transactions, newest first."""
    try:
        records = history_service.list_transactions(
            user_id=user_id, search=search, status=status, provider=provider
        )
    except SumUpIntegrationError as exc:
        raise _http_error(exc) from exc
    return [TransactionOut.model_validate(record.model_dump()) for record in records]
