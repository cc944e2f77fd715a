"""Public schema exports."""

from .auth import (
    ForgotPasswordRequest,
    RefreshTokensRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignUpRequest,
    VerifyEmailRequest,
)

__all__ = [
    "ForgotPasswordRequest",
    "RefreshTokensRequest",
    "ResetPasswordRequest",
    "SignInRequest",
    "SignUpRequest",
    "VerifyEmailRequest",
]
