"""Keyed derivation of passwords for Google-linked user pool accounts."""

from __future__ import annotations

import hashlib
import hmac


class DerivedCredentialService:
    """Derive a stable password for an external subject id.

    The value bridges a Google identity into the password-based user pool. It
    is keyed with a server-side secret that is never shared with Google, and it
    must never leave the server.
    """

    # Satisfies the upper/lower/digit/symbol classes of Cognito's default policy.
    PREFIX = "Google-1!"

    def __init__(self, *, secret: str, provider: str = "google") -> None:
        if not secret:
            raise ValueError("Derived credential secret must be provided.")
        self._key = secret.encode("utf-8")
        self._provider = provider

    def derive(self, subject_id: str) -> str:
        if not subject_id:
            raise ValueError("Subject id is required to derive a credential.")
        message = f"{self._provider}:{subject_id}".encode("utf-8")
        digest = hmac.new(self._key, message, hashlib.sha256).hexdigest()
        return f"{self.PREFIX}{digest}"


__all__ = ["DerivedCredentialService"]
