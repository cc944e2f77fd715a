"""
Google OAuth utilities.

These helpers build the consent URL, sign the anti-forgery state token and talk
to Google's token and userinfo endpoints during the callback.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError as PydanticValidationError

from auth_gateway.core.config import GoogleSettings
from auth_gateway.core.errors import AuthGatewayError, UpstreamTimeoutError, ValidationError
from auth_gateway.models.identity import ExternalIdentity, GoogleTokens

logger = logging.getLogger(__name__)


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str, *, ttl_seconds: int = 900) -> None:
        self._secret_key = secret_key.encode("utf-8")
        self._ttl = timedelta(seconds=ttl_seconds)

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("Malformed OAuth state.") from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise ValidationError("Invalid OAuth state signature.")
        return json.loads(serialized)

    def issue(self) -> str:
        """Create a fresh state token carrying a random nonce and issue time."""
        return self.encode(
            {
                "nonce": secrets.token_hex(16),
                "issued_at": datetime.now(timezone.utc).isoformat(),
            }
        )

    def verify(self, token: str) -> Dict[str, Any]:
        """Check signature and age of a state token returned by the browser."""
        payload = self.decode(token)
        issued_at_raw = payload.get("issued_at")
        if not issued_at_raw:
            raise ValidationError("Missing issued_at in OAuth state.")
        try:
            issued_at = datetime.fromisoformat(issued_at_raw)
        except ValueError as exc:
            raise ValidationError("Invalid issued_at in OAuth state.") from exc
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - issued_at > self._ttl:
            raise ValidationError("OAuth state has expired.")
        return payload


class OAuthError(AuthGatewayError):
    """Base class for failures talking to the OAuth provider."""


class OAuthExchangeFailed(OAuthError):
    """Raised when the token endpoint rejects the authorization code."""


class OAuthProfileFailed(OAuthError):
    """Raised when the userinfo endpoint cannot produce a usable profile."""


class GoogleOAuthClient:
    """Build Google authorization URLs, exchange codes and read profiles."""

    AUTH_BASE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

    def __init__(
        self,
        google_settings: GoogleSettings,
        *,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._google = google_settings
        self._timeout = timeout_seconds
        self._transport = transport

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def build_authorization_url(
        self, state: str, redirect_uri: str, access_type: str = "offline"
    ) -> str:
        """Construct the Google OAuth consent URL."""
        params = {
            "client_id": self._google.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(self._google.scopes),
            "state": state,
            "access_type": access_type,
            "prompt": "consent",
        }
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_authorization_code(
        self, code: str, redirect_uri: str
    ) -> GoogleTokens:
        """
        Exchange a single-use authorization code for Google tokens.

        Never retried: a code that reached Google once cannot be redeemed again.
        """
        payload = {
            "code": code,
            "client_id": self._google.client_id,
            "client_secret": self._google.client_secret,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        }

        try:
            async with self._http_client() as client:
                response = await client.post(self.TOKEN_URL, data=payload)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError("Google token endpoint timed out.") from exc
        except httpx.HTTPError as exc:
            raise OAuthExchangeFailed(
                f"Could not reach Google token endpoint: {exc}"
            ) from exc

        if not response.is_success:
            logger.warning(
                "Google code exchange rejected", extra={"status": response.status_code}
            )
            raise OAuthExchangeFailed(
                f"Failed to exchange authorization code ({response.status_code})."
            )

        try:
            return GoogleTokens.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise OAuthExchangeFailed(
                "Incomplete token payload returned from Google."
            ) from exc

    async def fetch_user_info(self, access_token: str) -> ExternalIdentity:
        """Read the signed-in user's profile with the exchanged access token."""
        try:
            async with self._http_client() as client:
                response = await client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError("Google userinfo endpoint timed out.") from exc
        except httpx.HTTPError as exc:
            raise OAuthProfileFailed(
                f"Could not reach Google userinfo endpoint: {exc}"
            ) from exc

        if not response.is_success:
            raise OAuthProfileFailed(
                f"Failed to fetch Google profile ({response.status_code})."
            )

        try:
            return ExternalIdentity.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise OAuthProfileFailed(
                "Google profile is missing an email or subject id."
            ) from exc


__all__ = [
    "GoogleOAuthClient",
    "OAuthError",
    "OAuthExchangeFailed",
    "OAuthProfileFailed",
    "OAuthStateEncoder",
]
