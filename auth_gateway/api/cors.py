"""
CORS handling with an explicit preflight response.

Starlette's stock middleware answers preflight with ``200`` and plain text; the
browser frontends of this service expect ``204`` and a JSON rejection body, so
the allow-list is enforced here instead. Unhandled errors are rendered here too
so a browser can read the 500 body.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Iterable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from auth_gateway.core.errors import AuthGatewayError

logger = logging.getLogger(__name__)

ALLOWED_METHODS = "GET,POST,PUT,DELETE,OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization, X-Requested-With"
MAX_AGE_SECONDS = "3600"


class CORSMiddleware(BaseHTTPMiddleware):
    """Allow-list based CORS with credentials enabled."""

    def __init__(self, app, allowed_origins: Iterable[str] = ("*",)) -> None:
        super().__init__(app)
        self.allowed_origins = frozenset(allowed_origins)
        self.allow_any = "*" in self.allowed_origins

    def is_allowed(self, origin: str | None) -> bool:
        # Requests without an Origin header (curl, mobile apps) are not CORS requests.
        if not origin:
            return True
        return self.allow_any or origin in self.allowed_origins

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin")

        if not self.is_allowed(origin):
            logger.warning("Rejected origin", extra={"origin": origin})
            return JSONResponse(
                status_code=HTTPStatus.FORBIDDEN,
                content={"success": False, "message": "Not allowed by CORS"},
            )

        if request.method == "OPTIONS":
            headers = {
                "Access-Control-Allow-Methods": ALLOWED_METHODS,
                "Access-Control-Allow-Headers": ALLOWED_HEADERS,
                "Access-Control-Max-Age": MAX_AGE_SECONDS,
                "Access-Control-Allow-Credentials": "true",
                "Vary": "Origin",
            }
            if origin:
                headers["Access-Control-Allow-Origin"] = origin
            return Response(status_code=HTTPStatus.NO_CONTENT, headers=headers)

        try:
            response = await call_next(request)
        except Exception:  # pylint: disable=broad-except
            # Rendered here so the error body still carries the CORS headers.
            logger.exception("Unhandled error", extra={"path": request.url.path})
            response = JSONResponse(
                status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                content=AuthGatewayError("An unexpected error occurred").to_payload(),
            )
        if origin:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
        return response


__all__ = ["CORSMiddleware"]
