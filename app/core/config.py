"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the OAuth flow and the
transaction synchronizer share one configuration surface. Services receive
the relevant section at construction time instead of reading the
environment themselves.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class SumUpSettings(BaseSettings):
    """Configuration required for interacting with the SumUp APIs."""

    model_config = SettingsConfigDict(populate_by_name=True)

    client_id: Optional[str] = Field(None, validation_alias="SUMUP_CLIENT_ID")
    client_secret: Optional[str] = Field(
        None, validation_alias="SUMUP_CLIENT_SECRET"
    )
    api_key: Optional[str] = Field(
        None,
        validation_alias="SUMUP_API_KEY",
        description="Optional opaque API key issued in the SumUp dashboard.",
    )
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="SUMUP_REDIRECT_URI")
    auth_base_url: str = Field(
        "https://api.sumup.com", validation_alias="SUMUP_AUTH_BASE_URL"
    )
    api_base_url: str = Field(
        "https://api.sumup.com", validation_alias="SUMUP_API_BASE_URL"
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("transactions.history", "user.profile_readonly"),
        validation_alias="SUMUP_SCOPES",
    )
    http_timeout_seconds: float = Field(10.0, validation_alias="SUMUP_HTTP_TIMEOUT")

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma or space separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope for scope in value.replace(",", " ").split() if scope)


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Optional URL of the web app the OAuth callback redirects to.",
    )
    database_path: str = Field("data/sumup.db", validation_alias="DATABASE_PATH")
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    sumup: SumUpSettings = Field(default_factory=SumUpSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "SumUpSettings",
    "get_settings",
]
