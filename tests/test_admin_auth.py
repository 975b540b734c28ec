"""
Unit tests for auth/admin.py
"""

import pytest
from itsdangerous import URLSafeTimedSerializer

from auth.admin import (
    TOKEN_SALT,
    AdminAuthError,
    AdminAuthSettings,
    AdminTokenManager,
    extract_token,
    get_admin_auth_settings,
)


@pytest.fixture
def manager():
    return AdminTokenManager(AdminAuthSettings(password="s3cret", secret="signing-key", token_ttl_seconds=3600))


class TestPassword:

    def test_correct_password(self, manager):
        assert manager.check_password("s3cret")

    def test_wrong_or_missing_password(self, manager):
        assert not manager.check_password("nope")
        assert not manager.check_password(None)

    def test_disabled_without_password(self):
        disabled = AdminTokenManager(AdminAuthSettings(password=None, secret="k", token_ttl_seconds=60))

        assert not disabled.check_password("")
        assert not disabled.check_password("anything")


class TestTokens:

    def test_issued_token_verifies(self, manager):
        payload = manager.verify(manager.issue())

        assert payload["role"] == "admin"

    def test_missing_token(self, manager):
        with pytest.raises(AdminAuthError, match="Authentication required"):
            manager.verify(None)

    def test_token_from_other_secret_is_rejected(self, manager):
        other = AdminTokenManager(AdminAuthSettings(password="s3cret", secret="other-key", token_ttl_seconds=3600))

        with pytest.raises(AdminAuthError, match="Invalid token"):
            manager.verify(other.issue())

    def test_signed_payload_without_admin_role_is_rejected(self, manager):
        forged = URLSafeTimedSerializer("signing-key", salt=TOKEN_SALT).dumps({"role": "guest"})

        with pytest.raises(AdminAuthError):
            manager.verify(forged)


class TestExtractToken:

    def test_bearer_header_wins(self):
        assert extract_token("Bearer abc", "cookie") == "abc"

    def test_cookie_fallback(self):
        assert extract_token(None, "cookie") == "cookie"
        assert extract_token("Basic xyz", "cookie") == "cookie"

    def test_nothing(self):
        assert extract_token(None, None) is None


class TestSettings:

    def test_password_requires_secret(self, monkeypatch):
        monkeypatch.setenv("ADMIN_PASSWORD", "pw")
        monkeypatch.delenv("AUTH_SECRET", raising=False)
        get_admin_auth_settings.cache_clear()
        try:
            with pytest.raises(RuntimeError):
                get_admin_auth_settings()
        finally:
            get_admin_auth_settings.cache_clear()

    def test_ttl_from_env(self, monkeypatch):
        monkeypatch.setenv("ADMIN_PASSWORD", "pw")
        monkeypatch.setenv("AUTH_SECRET", "k")
        monkeypatch.setenv("AUTH_TOKEN_TTL_DAYS", "2")
        get_admin_auth_settings.cache_clear()
        try:
            assert get_admin_auth_settings().token_ttl_seconds == 2 * 86400
        finally:
            get_admin_auth_settings.cache_clear()
