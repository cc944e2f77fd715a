"""
Application configuration models and helpers.

Centralizes settings management so the HTTP app, the Lambda entrypoint and the
environment check script share one configuration surface. Settings are built
once and handed to clients explicitly; nothing below the dependency layer reads
the environment on its own.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AliasChoices, AnyHttpUrl, Field, ValidationError, field_validator
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


def _split_csv(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or malformed."""


class CognitoSettings(BaseSettings):
    """Settings for the Cognito user pool backing every account."""

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True)

    client_id: str = Field(
        ..., validation_alias=AliasChoices("COGNITO_CLIENT_ID", "CLIENT_ID")
    )
    user_pool_id: str = Field(
        ..., validation_alias=AliasChoices("COGNITO_USER_POOL_ID", "USER_POOL_ID")
    )
    region_name: str = Field(
        "us-east-1", validation_alias=AliasChoices("AWS_REGION", "REGION")
    )


class GoogleSettings(BaseSettings):
    """Configuration required for the Google sign-in flow."""

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True)

    client_id: str = Field(..., validation_alias="GOOGLE_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="GOOGLE_CLIENT_SECRET")
    redirect_uri: Optional[AnyHttpUrl] = Field(
        None,
        validation_alias="GOOGLE_REDIRECT_URI",
        description=(
            "Fixed callback URL. When omitted the callback route URL of the "
            "incoming request is used."
        ),
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("email", "profile", "openid"),
        validation_alias="GOOGLE_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        return _split_csv(value)


class SecuritySettings(BaseSettings):
    """Secrets used to derive linked-account passwords and sign OAuth state."""

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True)

    derived_credential_secret: str = Field(
        ...,
        min_length=16,
        validation_alias="DERIVED_CREDENTIAL_SECRET",
        description="Key for the HMAC that derives passwords for Google-linked users.",
    )
    oauth_state_secret: Optional[str] = Field(
        None,
        validation_alias="OAUTH_STATE_SECRET",
        description="Key used to sign OAuth state tokens. Defaults to the Google client secret.",
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True)

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")


class AppSettings(BaseSettings):
    """Root settings object for the HTTP application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        ("*",),
        validation_alias="ALLOWED_ORIGINS",
        description="Comma-separated CORS allow-list; '*' allows any origin.",
    )
    frontend_url: Optional[AnyHttpUrl] = Field(
        None,
        validation_alias="FRONTEND_URL",
        description="When set, the Google callback redirects here with tokens as query parameters.",
    )
    upstream_timeout_seconds: float = Field(
        10.0, gt=0, validation_alias="UPSTREAM_TIMEOUT_SECONDS"
    )
    api_base_path: str = Field("/", validation_alias="API_BASE_PATH")
    cognito: CognitoSettings = Field(default_factory=CognitoSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing origins as a comma-separated string."""
        origins = _split_csv(value)
        return origins or ("*",)

    @property
    def allow_any_origin(self) -> bool:
        return "*" in self.allowed_origins

    @property
    def oauth_state_key(self) -> str:
        return self.security.oauth_state_secret or self.google.client_secret


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object, failing fast on missing values."""
    try:
        return AppSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        missing = sorted(
            {
                str(error["loc"][-1])
                for error in exc.errors()
                if error.get("loc")
            }
        )
        raise ConfigurationError(
            "Invalid or missing configuration: " + ", ".join(missing)
        ) from exc


__all__ = [
    "AppSettings",
    "CognitoSettings",
    "ConfigurationError",
    "GoogleSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]
