"""
Link a Google identity to a password-based user pool account.

The sequence is a small state machine::

    ExchangeCode -> FetchProfile -> TrySignIn -> Success
                                        |
                                        v
                                    EnsureUser -> RetrySignIn -> Success | Fail

Each step returns the next state. Steps raise only for terminal failures; the
runner turns those into a ``LinkOutcome`` so callers always get a structured
result. No state survives between runs, so a failed link is retried from the
top, never resumed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from auth_gateway.clients.cognito import (
    CognitoIdentityClient,
    IdentityErrorKind,
    IdentityProviderError,
)
from auth_gateway.clients.google_auth import (
    GoogleOAuthClient,
    OAuthError,
    OAuthExchangeFailed,
    OAuthProfileFailed,
)
from auth_gateway.core.errors import AuthGatewayError, UpstreamTimeoutError
from auth_gateway.models.identity import ExternalIdentity, GoogleTokens, TokenSet
from auth_gateway.services.derived_credentials import DerivedCredentialService

logger = logging.getLogger(__name__)


class LinkState(str, Enum):
    EXCHANGE_CODE = "ExchangeCode"
    FETCH_PROFILE = "FetchProfile"
    TRY_SIGN_IN = "TrySignIn"
    ENSURE_USER = "EnsureUser"
    RETRY_SIGN_IN = "RetrySignIn"
    SUCCESS = "Success"
    FAIL = "Fail"


class LinkErrorKind(str, Enum):
    OAUTH_EXCHANGE_FAILED = "OAuthExchangeFailed"
    OAUTH_PROFILE_FAILED = "OAuthProfileFailed"
    OAUTH_LINK_FAILED = "OAuthLinkFailed"
    IDENTITY_PROVIDER_ERROR = "IdentityProviderError"
    GATEWAY_TIMEOUT = "GatewayTimeout"
    UNEXPECTED = "Unexpected"


# Sign-in failures that mean "no usable account yet" rather than a broken pool.
_RECOVERABLE_SIGN_IN = frozenset(
    {IdentityErrorKind.USER_NOT_FOUND, IdentityErrorKind.INVALID_CREDENTIALS}
)


class OAuthLinkFailed(AuthGatewayError):
    """Raised when sign-in still fails after the account was ensured."""


@dataclass
class LinkOutcome:
    """Terminal result of one linking run."""

    success: bool
    message: str
    identity: Optional[ExternalIdentity] = None
    tokens: Optional[TokenSet] = None
    error_kind: Optional[LinkErrorKind] = None
    states: List[LinkState] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        if not (self.success and self.identity and self.tokens):
            return {"success": False, "message": self.message}
        return {
            "success": True,
            "message": self.message,
            "userInfo": self.identity.to_payload(),
            "tokens": self.tokens.to_payload(),
        }


@dataclass
class _LinkContext:
    code: str
    redirect_uri: str
    google_tokens: Optional[GoogleTokens] = None
    identity: Optional[ExternalIdentity] = None
    password: Optional[str] = field(default=None, repr=False)
    tokens: Optional[TokenSet] = None
    states: List[LinkState] = field(default_factory=list)

    def credentials(self) -> Tuple[ExternalIdentity, str]:
        """Return the profile and derived password the sign-in steps need."""
        if self.identity is None or self.password is None:
            raise OAuthProfileFailed("Google profile was not resolved before sign-in.")
        return self.identity, self.password


Step = Callable[[_LinkContext], Awaitable[LinkState]]


class GoogleAccountLinker:
    """Run the Google callback against the user pool."""

    def __init__(
        self,
        *,
        oauth_client: GoogleOAuthClient,
        identity_client: CognitoIdentityClient,
        credentials: DerivedCredentialService,
    ) -> None:
        self._oauth = oauth_client
        self._identity = identity_client
        self._credentials = credentials
        self._steps: Dict[LinkState, Step] = {
            LinkState.EXCHANGE_CODE: self._exchange_code,
            LinkState.FETCH_PROFILE: self._fetch_profile,
            LinkState.TRY_SIGN_IN: self._try_sign_in,
            LinkState.ENSURE_USER: self._ensure_user,
            LinkState.RETRY_SIGN_IN: self._retry_sign_in,
        }

    async def link(self, code: str, redirect_uri: str) -> LinkOutcome:
        ctx = _LinkContext(code=code, redirect_uri=redirect_uri)
        state = LinkState.EXCHANGE_CODE
        while state in self._steps:
            ctx.states.append(state)
            try:
                state = await self._steps[state](ctx)
            except Exception as exc:  # pylint: disable=broad-except
                return self._failure(ctx, exc)

        ctx.states.append(state)
        logger.info(
            "Google account linked",
            extra={"username": ctx.identity.email if ctx.identity else None},
        )
        return LinkOutcome(
            success=True,
            message="Google authentication successful",
            identity=ctx.identity,
            tokens=ctx.tokens,
            states=list(ctx.states),
        )

    def _failure(self, ctx: _LinkContext, exc: Exception) -> LinkOutcome:
        failed_in = ctx.states[-1]
        ctx.states.append(LinkState.FAIL)
        if isinstance(exc, UpstreamTimeoutError):
            kind = LinkErrorKind.GATEWAY_TIMEOUT
        elif isinstance(exc, OAuthProfileFailed):
            kind = LinkErrorKind.OAUTH_PROFILE_FAILED
        elif isinstance(exc, OAuthError):
            kind = LinkErrorKind.OAUTH_EXCHANGE_FAILED
        elif isinstance(exc, OAuthLinkFailed):
            kind = LinkErrorKind.OAUTH_LINK_FAILED
        elif isinstance(exc, IdentityProviderError):
            kind = LinkErrorKind.IDENTITY_PROVIDER_ERROR
        else:
            kind = LinkErrorKind.UNEXPECTED
            logger.exception("Unexpected error while linking Google account")

        logger.warning(
            "Google account linking failed",
            extra={"state": failed_in.value, "error_kind": kind.value},
        )
        message = str(exc) or "An error occurred during Google authentication"
        return LinkOutcome(
            success=False,
            message=message,
            identity=ctx.identity,
            error_kind=kind,
            states=list(ctx.states),
        )

    async def _exchange_code(self, ctx: _LinkContext) -> LinkState:
        ctx.google_tokens = await self._oauth.exchange_authorization_code(
            ctx.code, ctx.redirect_uri
        )
        return LinkState.FETCH_PROFILE

    async def _fetch_profile(self, ctx: _LinkContext) -> LinkState:
        if ctx.google_tokens is None:
            raise OAuthExchangeFailed("No Google access token to read the profile with.")
        ctx.identity = await self._oauth.fetch_user_info(ctx.google_tokens.access_token)
        ctx.password = self._credentials.derive(ctx.identity.subject_id)
        return LinkState.TRY_SIGN_IN

    async def _sign_in(self, ctx: _LinkContext) -> None:
        identity, password = ctx.credentials()
        ctx.tokens = await self._identity.initiate_password_auth(identity.email, password)

    async def _try_sign_in(self, ctx: _LinkContext) -> LinkState:
        try:
            await self._sign_in(ctx)
        except IdentityProviderError as exc:
            if exc.kind in _RECOVERABLE_SIGN_IN:
                logger.info(
                    "Linked sign-in failed, ensuring user",
                    extra={"provider_code": exc.provider_code},
                )
                return LinkState.ENSURE_USER
            raise
        return LinkState.SUCCESS

    async def _ensure_user(self, ctx: _LinkContext) -> LinkState:
        identity, password = ctx.credentials()
        email = identity.email
        try:
            await self._identity.admin_get_user(email)
        except IdentityProviderError as exc:
            if exc.kind is not IdentityErrorKind.USER_NOT_FOUND:
                raise
            logger.info("Creating user for Google identity", extra={"username": email})
            await self._identity.admin_create_user(
                email,
                password,
                {
                    "email": email,
                    "email_verified": "true",
                    "name": identity.name or "",
                    "picture": identity.picture or "",
                },
            )
        else:
            logger.info("Resetting linked credential", extra={"username": email})
        await self._identity.admin_set_user_password(email, password, permanent=True)
        return LinkState.RETRY_SIGN_IN

    async def _retry_sign_in(self, ctx: _LinkContext) -> LinkState:
        try:
            await self._sign_in(ctx)
        except IdentityProviderError as exc:
            raise OAuthLinkFailed(
                f"Sign-in failed after linking Google account: {exc.message}"
            ) from exc
        return LinkState.SUCCESS


__all__ = [
    "GoogleAccountLinker",
    "LinkErrorKind",
    "LinkOutcome",
    "LinkState",
    "OAuthLinkFailed",
]
