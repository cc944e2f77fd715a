"""
Amazon Cognito user pool client wrapper.

Runs the blocking boto3 calls in a worker thread, bounds each one with the
configured upstream timeout and translates provider error codes into
``IdentityProviderError`` kinds the services can branch on.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from auth_gateway.core.config import CognitoSettings
from auth_gateway.core.errors import AuthGatewayError, UpstreamTimeoutError
from auth_gateway.models.identity import TokenSet

logger = logging.getLogger(__name__)


class IdentityErrorKind(str, Enum):
    """Provider-independent failure kinds for user pool operations."""

    USER_EXISTS = "UserExists"
    INVALID_PASSWORD = "InvalidPassword"
    NOT_CONFIRMED = "NotConfirmed"
    INVALID_CREDENTIALS = "InvalidCredentials"
    INVALID_REFRESH_TOKEN = "InvalidRefreshToken"
    CODE_MISMATCH = "CodeMismatch"
    EXPIRED_CODE = "ExpiredCode"
    USER_NOT_FOUND = "UserNotFound"
    RATE_LIMITED = "RateLimited"
    INVALID_PARAMETER = "InvalidParameter"
    CHALLENGE_REQUIRED = "ChallengeRequired"
    UNKNOWN = "Unknown"


_PROVIDER_CODES: Dict[str, IdentityErrorKind] = {
    "UsernameExistsException": IdentityErrorKind.USER_EXISTS,
    "InvalidPasswordException": IdentityErrorKind.INVALID_PASSWORD,
    "UserNotConfirmedException": IdentityErrorKind.NOT_CONFIRMED,
    "NotAuthorizedException": IdentityErrorKind.INVALID_CREDENTIALS,
    "CodeMismatchException": IdentityErrorKind.CODE_MISMATCH,
    "ExpiredCodeException": IdentityErrorKind.EXPIRED_CODE,
    "UserNotFoundException": IdentityErrorKind.USER_NOT_FOUND,
    "LimitExceededException": IdentityErrorKind.RATE_LIMITED,
    "TooManyRequestsException": IdentityErrorKind.RATE_LIMITED,
    "TooManyFailedAttemptsException": IdentityErrorKind.RATE_LIMITED,
    "InvalidParameterException": IdentityErrorKind.INVALID_PARAMETER,
}


class IdentityProviderError(AuthGatewayError):
    """Raised when the user pool rejects or fails an operation."""

    def __init__(
        self,
        kind: IdentityErrorKind,
        message: str,
        *,
        provider_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.provider_code = provider_code

    @classmethod
    def from_client_error(
        cls,
        exc: ClientError,
        overrides: Optional[Mapping[str, IdentityErrorKind]] = None,
    ) -> "IdentityProviderError":
        error = exc.response.get("Error", {})
        code = error.get("Code", "")
        message = error.get("Message") or str(exc)
        kind = (overrides or {}).get(code) or _PROVIDER_CODES.get(
            code, IdentityErrorKind.UNKNOWN
        )
        return cls(kind, message, provider_code=code)


_REFRESH_OVERRIDES = {"NotAuthorizedException": IdentityErrorKind.INVALID_REFRESH_TOKEN}


def _attribute_list(attributes: Mapping[str, str]) -> list[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in attributes.items()]


class CognitoIdentityClient:
    """Thin async facade over the ``cognito-idp`` API for one app client."""

    def __init__(
        self,
        settings: CognitoSettings,
        *,
        timeout_seconds: float = 10.0,
        client: Any = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout_seconds
        self._client = client or boto3.client(
            "cognito-idp",
            region_name=settings.region_name,
            config=Config(
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                retries={"total_max_attempts": 1, "mode": "standard"},
            ),
        )

    async def _call(
        self,
        operation: str,
        *,
        error_overrides: Optional[Mapping[str, IdentityErrorKind]] = None,
        **params: Any,
    ) -> Dict[str, Any]:
        method = getattr(self._client, operation)
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(method, **params), timeout=self._timeout
            )
        except (asyncio.TimeoutError, ConnectTimeoutError, ReadTimeoutError) as exc:
            logger.warning("Cognito call timed out", extra={"operation": operation})
            raise UpstreamTimeoutError(
                f"Identity provider did not respond to {operation} in time."
            ) from exc
        except ClientError as exc:
            error = IdentityProviderError.from_client_error(exc, error_overrides)
            logger.info(
                "Cognito rejected call",
                extra={"operation": operation, "provider_code": error.provider_code},
            )
            raise error from exc
        except BotoCoreError as exc:
            logger.error("Cognito call failed", extra={"operation": operation})
            raise IdentityProviderError(IdentityErrorKind.UNKNOWN, str(exc)) from exc

    @staticmethod
    def _tokens_from(response: Dict[str, Any]) -> TokenSet:
        result = response.get("AuthenticationResult")
        if not result:
            challenge = response.get("ChallengeName", "unknown")
            raise IdentityProviderError(
                IdentityErrorKind.CHALLENGE_REQUIRED,
                f"Additional authentication challenge required: {challenge}.",
            )
        return TokenSet.from_authentication_result(result)

    async def sign_up(
        self, username: str, password: str, attributes: Mapping[str, str]
    ) -> str:
        """Register an unconfirmed user and return its subject identifier."""
        response = await self._call(
            "sign_up",
            ClientId=self._settings.client_id,
            Username=username,
            Password=password,
            UserAttributes=_attribute_list(attributes),
        )
        return response["UserSub"]

    async def initiate_password_auth(self, username: str, password: str) -> TokenSet:
        response = await self._call(
            "initiate_auth",
            AuthFlow="USER_PASSWORD_AUTH",
            ClientId=self._settings.client_id,
            AuthParameters={"USERNAME": username, "PASSWORD": password},
        )
        return self._tokens_from(response)

    async def initiate_refresh_auth(self, refresh_token: str) -> TokenSet:
        """Exchange a refresh token. Cognito does not rotate the refresh token here."""
        response = await self._call(
            "initiate_auth",
            error_overrides=_REFRESH_OVERRIDES,
            AuthFlow="REFRESH_TOKEN_AUTH",
            ClientId=self._settings.client_id,
            AuthParameters={"REFRESH_TOKEN": refresh_token},
        )
        return self._tokens_from(response)

    async def confirm_sign_up(self, username: str, code: str) -> None:
        await self._call(
            "confirm_sign_up",
            ClientId=self._settings.client_id,
            Username=username,
            ConfirmationCode=code,
        )

    async def forgot_password(self, username: str) -> Dict[str, Any]:
        response = await self._call(
            "forgot_password",
            ClientId=self._settings.client_id,
            Username=username,
        )
        return response.get("CodeDeliveryDetails", {})

    async def confirm_forgot_password(
        self, username: str, code: str, new_password: str
    ) -> None:
        await self._call(
            "confirm_forgot_password",
            ClientId=self._settings.client_id,
            Username=username,
            ConfirmationCode=code,
            Password=new_password,
        )

    async def admin_get_user(self, username: str) -> Dict[str, Any]:
        return await self._call(
            "admin_get_user",
            UserPoolId=self._settings.user_pool_id,
            Username=username,
        )

    async def admin_create_user(
        self,
        username: str,
        temporary_password: str,
        attributes: Mapping[str, str],
    ) -> Dict[str, Any]:
        """Create a user without sending Cognito's invitation message."""
        response = await self._call(
            "admin_create_user",
            UserPoolId=self._settings.user_pool_id,
            Username=username,
            TemporaryPassword=temporary_password,
            UserAttributes=_attribute_list(attributes),
            MessageAction="SUPPRESS",
        )
        return response.get("User", {})

    async def admin_set_user_password(
        self, username: str, password: str, *, permanent: bool = True
    ) -> None:
        await self._call(
            "admin_set_user_password",
            UserPoolId=self._settings.user_pool_id,
            Username=username,
            Password=password,
            Permanent=permanent,
        )


__all__ = ["CognitoIdentityClient", "IdentityErrorKind", "IdentityProviderError"]
