"""
API middleware and access dependencies.

This module implements:
- CORS configuration from CORS_ORIGINS
- Request logging (method, path, status, duration)
- Admin authentication dependency (Bearer token or auth_token cookie)
"""

import os
import time
import logging
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from dotenv import load_dotenv

from auth.admin import AUTH_COOKIE_NAME, extract_token, get_token_manager

load_dotenv()

logger = logging.getLogger("catalog.api")

# Endpoints skipped by the request logger
QUIET_PATHS: frozenset[str] = frozenset({"/", "/healthz", "/readyz"})


# =============================================================================
# Dependency for Admin Routes
# =============================================================================

async def require_admin(request: Request) -> dict[str, Any]:
    """
    FastAPI dependency that requires a valid admin session.

    Returns:
        The verified token payload

    Raises:
        AdminAuthError: If the token is missing, expired or forged
            (rendered as 401 {"error": ...} by the app's exception handler)
    """
    token = extract_token(
        request.headers.get("Authorization"),
        request.cookies.get(AUTH_COOKIE_NAME),
    )
    return get_token_manager().verify(token)


# =============================================================================
# Middleware Setup
# =============================================================================

def setup_middlewares(app) -> None:
    """
    Configure all middlewares for the FastAPI application.

    Adds:
    - CORS middleware for cross-origin requests

    Args:
        app: FastAPI application instance
    """
    from fastapi.middleware.cors import CORSMiddleware

    cors_origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Found-Files", "X-Filename-Collisions", "X-Missing-Codes"],
    )

    logger.info("Middlewares configured: CORS (origins=%s)", cors_origins)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        if request.url.path not in QUIET_PATHS:
            logger.debug(
                "%s %s - %d (%.3fs)",
                request.method,
                request.url.path,
                response.status_code,
                process_time,
            )

        return response


def setup_request_logging(app) -> None:
    """
    Add request logging middleware for debugging.

    Logs incoming requests with method, path, and response time.
    """
    app.add_middleware(RequestLoggingMiddleware)
    logger.info("Request logging middleware configured")
