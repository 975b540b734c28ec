"""
Authentication module.

Contains:
- Admin session tokens (admin.py)
"""

from auth.admin import (
    AUTH_COOKIE_NAME,
    AdminAuthError,
    AdminAuthSettings,
    AdminTokenManager,
    extract_token,
    get_admin_auth_settings,
    get_token_manager,
)

__all__ = [
    "AUTH_COOKIE_NAME",
    "AdminAuthError",
    "AdminAuthSettings",
    "AdminTokenManager",
    "extract_token",
    "get_admin_auth_settings",
    "get_token_manager",
]
