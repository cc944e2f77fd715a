"""Request bodies accepted by the account endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SignUpRequest(BaseModel):
    """Payload for registering a new account."""

    email: str = Field(..., min_length=1, description="Email address used as the username.")
    password: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, description="Optional display name attribute.")


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class VerifyEmailRequest(BaseModel):
    email: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1, description="Confirmation code sent by email.")


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    """Payload completing a password reset with the emailed code."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, alias="newPassword")


class RefreshTokensRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., min_length=1, alias="refreshToken")


__all__ = [
    "ForgotPasswordRequest",
    "RefreshTokensRequest",
    "ResetPasswordRequest",
    "SignInRequest",
    "SignUpRequest",
    "VerifyEmailRequest",
]
