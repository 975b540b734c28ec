"""
Admin session tokens.

Contains:
- AdminAuthSettings: password, signing secret and token lifetime from env
- AdminTokenManager: signs/validates admin session tokens
- AdminAuthError: raised for bad credentials or tokens

Tokens are itsdangerous timed signatures; they travel either in an
``Authorization: Bearer`` header or in the ``auth_token`` cookie.
"""

from __future__ import annotations

import hmac
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any
from uuid import uuid4

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

# =============================================================================
# CONSTANTS
# =============================================================================

TOKEN_SALT = "catalog-admin-session"
AUTH_COOKIE_NAME = "auth_token"
ADMIN_ROLE = "admin"


class AdminAuthError(ValueError):
    """Raised when admin credentials or tokens are rejected."""


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass(frozen=True)
class AdminAuthSettings:
    """Admin authentication configuration loaded from environment variables."""

    password: str | None
    secret: str
    token_ttl_seconds: int

    @property
    def enabled(self) -> bool:
        return bool(self.password)


@lru_cache(maxsize=1)
def get_admin_auth_settings() -> AdminAuthSettings:
    """Load admin auth settings from environment variables."""
    password = os.getenv("ADMIN_PASSWORD")
    secret = os.getenv("AUTH_SECRET")
    ttl_days = int(os.getenv("AUTH_TOKEN_TTL_DAYS", "7"))

    if password and not secret:
        raise RuntimeError("AUTH_SECRET must be set when ADMIN_PASSWORD is configured")

    return AdminAuthSettings(
        password=password,
        secret=secret or "",
        token_ttl_seconds=ttl_days * 24 * 60 * 60,
    )


# =============================================================================
# TOKEN MANAGER
# =============================================================================

class AdminTokenManager:
    """Issues and verifies admin session tokens."""

    def __init__(self, settings: AdminAuthSettings) -> None:
        self._settings = settings
        self._serializer = URLSafeTimedSerializer(settings.secret, salt=TOKEN_SALT)
        self._ttl_seconds = settings.token_ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def check_password(self, candidate: str | None) -> bool:
        if not self._settings.enabled or not candidate:
            return False
        return hmac.compare_digest(candidate.encode("utf-8"), self._settings.password.encode("utf-8"))

    def issue(self) -> str:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self._ttl_seconds)
        payload = {
            "role": ADMIN_ROLE,
            "nonce": uuid4().hex,
            "exp": expires_at.isoformat(),
        }
        return self._serializer.dumps(payload)

    def verify(self, token: str | None) -> dict[str, Any]:
        if not token:
            raise AdminAuthError("Authentication required")
        try:
            data = self._serializer.loads(token, max_age=self._ttl_seconds)
        except SignatureExpired as exc:
            raise AdminAuthError("Session expired") from exc
        except BadSignature as exc:
            raise AdminAuthError("Invalid token") from exc
        if not isinstance(data, dict) or data.get("role") != ADMIN_ROLE:
            raise AdminAuthError("Invalid token")
        return data


@lru_cache(maxsize=1)
def get_token_manager() -> AdminTokenManager:
    return AdminTokenManager(get_admin_auth_settings())


def extract_token(authorization: str | None, cookie_value: str | None) -> str | None:
    """Bearer header wins over the cookie."""
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    return cookie_value or None
