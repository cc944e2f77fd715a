"""
AWS Lambda entrypoint serving the FastAPI app behind API Gateway.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from mangum import Mangum

from auth_gateway.core.config import AppSettings, get_settings
from auth_gateway.main import app, create_app


def build_handler(settings: Optional[AppSettings] = None) -> Mangum:
    """Wrap the app so API Gateway paths under ``api_base_path`` reach its routes."""
    if settings is None:
        return Mangum(
            app, lifespan="off", api_gateway_base_path=get_settings().api_base_path
        )
    return Mangum(
        create_app(settings),
        lifespan="off",
        api_gateway_base_path=settings.api_base_path,
    )


handler = build_handler()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Delegate API Gateway and Function URL events to the ASGI app."""
    return handler(event, context)


__all__ = ["build_handler", "handler", "lambda_handler"]
