"""
Account operations backed by the Cognito user pool.

Each method wraps exactly one user pool call and returns the uniform
``{"success", "message", ...}`` shape the HTTP layer serializes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from auth_gateway.clients.cognito import (
    CognitoIdentityClient,
    IdentityErrorKind,
    IdentityProviderError,
)

logger = logging.getLogger(__name__)


class AuthOperationsService:
    """Sign-up, sign-in, verification, password reset and token refresh."""

    def __init__(self, identity_client: CognitoIdentityClient) -> None:
        self._identity = identity_client

    async def sign_up(
        self,
        email: str,
        password: str,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        logger.info("Signing up user", extra={"username": email})
        user_attributes = {"email": email}
        user_attributes.update({k: v for k, v in (attributes or {}).items() if v})
        user_sub = await self._identity.sign_up(email, password, user_attributes)
        return {
            "success": True,
            "message": "User registration successful. Please check your email for verification code.",
            "userSub": user_sub,
        }

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        logger.info("Signing in user", extra={"username": email})
        try:
            tokens = await self._identity.initiate_password_auth(email, password)
        except IdentityProviderError as exc:
            if exc.kind is IdentityErrorKind.NOT_CONFIRMED:
                return {
                    "success": False,
                    "message": "User is not verified. Please check your email for verification code.",
                    "unverified": True,
                }
            raise
        return {
            "success": True,
            "message": "Sign in successful",
            "tokens": tokens.to_payload(),
        }

    async def confirm_sign_up(self, email: str, code: str) -> Dict[str, Any]:
        logger.info("Verifying email", extra={"username": email})
        await self._identity.confirm_sign_up(email, code)
        return {
            "success": True,
            "message": "Email verification successful. You can now sign in.",
        }

    async def forgot_password(self, email: str) -> Dict[str, Any]:
        logger.info("Starting password reset", extra={"username": email})
        delivery = await self._identity.forgot_password(email)
        result: Dict[str, Any] = {
            "success": True,
            "message": "Password reset code has been sent to your email.",
        }
        if delivery.get("DeliveryMedium"):
            result["deliveryMedium"] = delivery["DeliveryMedium"]
        return result

    async def confirm_forgot_password(
        self, email: str, new_password: str, code: str
    ) -> Dict[str, Any]:
        logger.info("Completing password reset", extra={"username": email})
        await self._identity.confirm_forgot_password(email, code, new_password)
        return {
            "success": True,
            "message": "Password has been reset successfully. You can now sign in with your new password.",
        }

    async def refresh_tokens(self, refresh_token: str) -> Dict[str, Any]:
        """Issue fresh ID/access tokens; the refresh token itself is never echoed."""
        logger.info("Refreshing tokens")
        tokens = await self._identity.initiate_refresh_auth(refresh_token)
        return {
            "success": True,
            "message": "Token refresh successful",
            "tokens": tokens.to_payload(include_refresh_token=False),
        }


__all__ = ["AuthOperationsService"]
