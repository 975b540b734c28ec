"""
Admin Auth Routes Module.

- POST /api/auth/login: exchange the admin password for a session token
- GET /api/auth/me: current session
- POST /api/auth/logout: clear the session cookie
"""

import logging
import os
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.middleware import require_admin
from api.models import AdminUser, LoginRequest
from auth.admin import AUTH_COOKIE_NAME, get_admin_auth_settings, get_token_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

COOKIE_SECURE = os.getenv("AUTH_COOKIE_SECURE", "false").lower() in ("true", "1", "yes")


@router.post("/login")
async def login(payload: LoginRequest) -> JSONResponse:
    settings = get_admin_auth_settings()
    if not settings.enabled:
        logger.error("Admin login attempted but ADMIN_PASSWORD is not configured")
        return JSONResponse(status_code=500, content={"error": "Admin password is not configured"})

    if not payload.password:
        return JSONResponse(status_code=400, content={"error": "Password is required"})

    manager = get_token_manager()
    if not manager.check_password(payload.password):
        logger.warning("Rejected admin login")
        return JSONResponse(status_code=401, content={"error": "Invalid credentials"})

    token = manager.issue()
    response = JSONResponse(content={"success": True, "token": token, "expires_in": manager.ttl_seconds})
    response.set_cookie(
        AUTH_COOKIE_NAME,
        token,
        max_age=manager.ttl_seconds,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    logger.info("Admin logged in")
    return response


@router.get("/me", response_model=AdminUser)
async def me(session: dict[str, Any] = Depends(require_admin)) -> AdminUser:
    return AdminUser(role=session.get("role", "admin"))


@router.post("/logout")
async def logout() -> JSONResponse:
    response = JSONResponse(content={"success": True})
    response.delete_cookie(AUTH_COOKIE_NAME, path="/")
    return response
