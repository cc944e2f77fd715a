"""
FastAPI application entrypoint for the authentication gateway.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from auth_gateway.api.cors import CORSMiddleware
from auth_gateway.api.routes import router as api_router
from auth_gateway.core.config import AppSettings, get_settings
from auth_gateway.core.errors import AuthGatewayError
from auth_gateway.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def _handle_gateway_error(request: Request, exc: AuthGatewayError) -> JSONResponse:
    logger.warning(
        "Request failed",
        extra={"path": request.url.path, "error": type(exc).__name__},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = sorted(
        {
            ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
            for error in exc.errors()
        }
    )
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={
            "success": False,
            "message": "Missing or invalid required field(s): " + ", ".join(fields),
        },
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "An unexpected error occurred"},
    )


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Factory for the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Auth Gateway",
        version="0.1.0",
        description="REST facade over a Cognito user pool with Google sign-in.",
    )
    app.state.settings = settings
    app.add_middleware(CORSMiddleware, allowed_origins=settings.allowed_origins)
    app.add_exception_handler(AuthGatewayError, _handle_gateway_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)
    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
