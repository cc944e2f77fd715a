"""
Base error types shared by clients, services and the HTTP layer.

Every error raised on purpose by this service derives from ``AuthGatewayError``
and carries the HTTP status it should be rendered with. The FastAPI exception
handlers in ``auth_gateway.main`` turn them into ``{"success": false, "message"}``.
"""

from __future__ import annotations

from http import HTTPStatus


class AuthGatewayError(Exception):
    """Root of the service's error taxonomy."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationError(AuthGatewayError):
    """A required request field is missing or a request value is malformed."""

    status_code = HTTPStatus.BAD_REQUEST


class UpstreamTimeoutError(AuthGatewayError):
    """An identity or OAuth provider call exceeded the configured timeout."""

    status_code = HTTPStatus.GATEWAY_TIMEOUT


__all__ = ["AuthGatewayError", "UpstreamTimeoutError", "ValidationError"]
