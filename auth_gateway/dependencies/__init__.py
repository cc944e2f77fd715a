"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_auth_operations_service,
    get_cognito_client,
    get_derived_credential_service,
    get_google_account_linker,
    get_google_oauth_client,
    get_oauth_state_encoder,
)
from .config import get_app_settings

__all__ = [
    "get_app_settings",
    "get_auth_operations_service",
    "get_cognito_client",
    "get_derived_credential_service",
    "get_google_account_linker",
    "get_google_oauth_client",
    "get_oauth_state_encoder",
]
