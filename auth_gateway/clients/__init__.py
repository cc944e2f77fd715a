"""Expose constructed client wrappers."""

from .cognito import CognitoIdentityClient, IdentityErrorKind, IdentityProviderError
from .google_auth import GoogleOAuthClient, OAuthStateEncoder

__all__ = [
    "CognitoIdentityClient",
    "GoogleOAuthClient",
    "IdentityErrorKind",
    "IdentityProviderError",
    "OAuthStateEncoder",
]
