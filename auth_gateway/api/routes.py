"""
FastAPI routes for the authentication gateway.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Annotated, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from auth_gateway.core.errors import ValidationError
from auth_gateway.dependencies import (
    get_app_settings,
    get_auth_operations_service,
    get_google_account_linker,
    get_google_oauth_client,
    get_oauth_state_encoder,
)
from auth_gateway.schemas import (
    ForgotPasswordRequest,
    RefreshTokensRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignUpRequest,
    VerifyEmailRequest,
)
from auth_gateway.services.google_linking import LinkErrorKind, LinkOutcome

router = APIRouter()
logger = logging.getLogger(__name__)

GOOGLE_CALLBACK_ROUTE = "google_oauth_callback"


@router.get("/", status_code=HTTPStatus.OK)
async def root() -> dict:
    return {"status": "ok", "message": "Auth service running"}


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post("/signup", status_code=HTTPStatus.OK)
async def sign_up(
    payload: SignUpRequest,
    service: Annotated[Any, Depends(get_auth_operations_service)],
) -> dict:
    """Register a new, unconfirmed account."""
    attributes = {"name": payload.name} if payload.name else {}
    return await service.sign_up(payload.email, payload.password, attributes)


@router.post("/signin", status_code=HTTPStatus.OK)
async def sign_in(
    payload: SignInRequest,
    service: Annotated[Any, Depends(get_auth_operations_service)],
) -> dict:
    """Authenticate with email and password; unverified users get ``unverified: true``."""
    return await service.sign_in(payload.email, payload.password)


@router.post("/verify", status_code=HTTPStatus.OK)
async def verify_email(
    payload: VerifyEmailRequest,
    service: Annotated[Any, Depends(get_auth_operations_service)],
) -> dict:
    return await service.confirm_sign_up(payload.email, payload.code)


@router.post("/forgot-password", status_code=HTTPStatus.OK)
async def forgot_password(
    payload: ForgotPasswordRequest,
    service: Annotated[Any, Depends(get_auth_operations_service)],
) -> dict:
    return await service.forgot_password(payload.email)


@router.post("/reset-password", status_code=HTTPStatus.OK)
async def reset_password(
    payload: ResetPasswordRequest,
    service: Annotated[Any, Depends(get_auth_operations_service)],
) -> dict:
    return await service.confirm_forgot_password(
        payload.email, payload.new_password, payload.code
    )


@router.post("/refresh-tokens", status_code=HTTPStatus.OK)
async def refresh_tokens(
    payload: RefreshTokensRequest,
    service: Annotated[Any, Depends(get_auth_operations_service)],
) -> dict:
    return await service.refresh_tokens(payload.refresh_token)


def _callback_redirect_uri(request: Request, settings: Any) -> str:
    """Public callback URL, including the API Gateway base path Mangum strips."""
    if settings.google.redirect_uri:
        return str(settings.google.redirect_uri)
    url = request.url_for(GOOGLE_CALLBACK_ROUTE)
    base_path = "/" + settings.api_base_path.strip("/")
    if base_path != "/" and not url.path.startswith(base_path + "/"):
        url = url.replace(path=base_path + url.path)
    return str(url)


@router.get("/google/auth", status_code=HTTPStatus.OK)
async def start_google_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_google_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """
    Kick off the OAuth flow by generating a state token and authorization URL.
    """
    state = state_encoder.issue()
    auth_url = oauth_client.build_authorization_url(
        state=state, redirect_uri=_callback_redirect_uri(request, settings)
    )
    return {"success": True, "authUrl": auth_url, "state": state}


def _frontend_redirect_url(frontend_url: str, outcome: LinkOutcome) -> str:
    """Append the link outcome to the frontend URL as query parameters."""
    if outcome.success and outcome.identity and outcome.tokens:
        params = {"success": "true"}
        identity = outcome.identity.to_payload()
        params.update({key: value for key, value in identity.items() if value})
        params.update(
            {key: str(value) for key, value in outcome.tokens.to_payload().items()}
        )
    else:
        params = {"success": "false", "message": outcome.message}

    parts = urlsplit(frontend_url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


@router.get(
    "/google/callback", status_code=HTTPStatus.OK, name=GOOGLE_CALLBACK_ROUTE
)
async def handle_google_oauth_callback(
    request: Request,
    linker: Annotated[Any, Depends(get_google_account_linker)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    settings: Annotated[Any, Depends(get_app_settings)],
    code: str | None = Query(
        default=None, description="Authorization code returned by Google."
    ),
    state: str | None = Query(default=None, description="OAuth state token."),
) -> Response:
    """Complete the Google sign-in and deliver user pool tokens."""
    if not code:
        raise ValidationError("Authorization code is required")
    if state:
        state_encoder.verify(state)

    outcome = await linker.link(code, _callback_redirect_uri(request, settings))

    if settings.frontend_url:
        return RedirectResponse(
            url=_frontend_redirect_url(str(settings.frontend_url), outcome),
            status_code=HTTPStatus.FOUND,
        )

    if outcome.success:
        status_code = HTTPStatus.OK
    elif outcome.error_kind is LinkErrorKind.GATEWAY_TIMEOUT:
        status_code = HTTPStatus.GATEWAY_TIMEOUT
    else:
        status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    return JSONResponse(content=outcome.to_payload(), status_code=status_code)


__all__ = ["router"]
