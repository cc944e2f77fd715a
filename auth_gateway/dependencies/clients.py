"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Clients are built lazily from the settings the app was created with and kept on
``app.state`` so every request served by one app shares them.
"""

from typing import Any, Callable

from fastapi import Request

from auth_gateway.clients import (
    CognitoIdentityClient,
    GoogleOAuthClient,
    OAuthStateEncoder,
)
from auth_gateway.core.config import AppSettings
from auth_gateway.services import (
    AuthOperationsService,
    DerivedCredentialService,
    GoogleAccountLinker,
)


def _app_singleton(
    request: Request, name: str, factory: Callable[[AppSettings], Any]
) -> Any:
    state = request.app.state
    instance = getattr(state, name, None)
    if instance is None:
        instance = factory(state.settings)
        setattr(state, name, instance)
    return instance


def get_cognito_client(request: Request) -> CognitoIdentityClient:
    """Create a per-app user pool client."""
    return _app_singleton(
        request,
        "cognito_client",
        lambda settings: CognitoIdentityClient(
            settings.cognito, timeout_seconds=settings.upstream_timeout_seconds
        ),
    )


def get_google_oauth_client(request: Request) -> GoogleOAuthClient:
    """Create a per-app Google OAuth client."""
    return _app_singleton(
        request,
        "google_oauth_client",
        lambda settings: GoogleOAuthClient(
            settings.google, timeout_seconds=settings.upstream_timeout_seconds
        ),
    )


def get_oauth_state_encoder(request: Request) -> OAuthStateEncoder:
    """Provide an OAuth state encoder keyed with the state secret."""
    return _app_singleton(
        request,
        "oauth_state_encoder",
        lambda settings: OAuthStateEncoder(
            secret_key=settings.oauth_state_key,
            ttl_seconds=settings.oauth.state_ttl_seconds,
        ),
    )


def get_derived_credential_service(request: Request) -> DerivedCredentialService:
    """Provide the keyed password derivation for Google-linked accounts."""
    return _app_singleton(
        request,
        "derived_credential_service",
        lambda settings: DerivedCredentialService(
            secret=settings.security.derived_credential_secret
        ),
    )


def get_auth_operations_service(request: Request) -> AuthOperationsService:
    """Build the account operations service."""
    return AuthOperationsService(get_cognito_client(request))


def get_google_account_linker(request: Request) -> GoogleAccountLinker:
    """Build the Google account linking sequence."""
    return GoogleAccountLinker(
        oauth_client=get_google_oauth_client(request),
        identity_client=get_cognito_client(request),
        credentials=get_derived_credential_service(request),
    )


__all__ = [
    "get_auth_operations_service",
    "get_cognito_client",
    "get_derived_credential_service",
    "get_google_account_linker",
    "get_google_oauth_client",
    "get_oauth_state_encoder",
]
