"""
Shared fixtures: a controllable clock and an in-memory bucket.
"""

from datetime import datetime, timedelta, timezone

import pytest

from api.services.file_listing import FileListingService
from utils.listing_cache import ListingCache
from utils.signed_url_cache import SignedUrlCache

ROOT = "public/files/"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeStorage:
    """In-memory stand-in for GCSStorageManager."""

    bucket_name = "test-bucket"

    def __init__(self, objects: dict[str, bytes] | None = None, fail_signing: bool = False):
        self.objects: dict[str, bytes] = dict(objects or {})
        self.content_types: dict[str, str | None] = {}
        self.fail_signing = fail_signing
        self.sign_calls: list[str] = []
        self.list_calls: list[str] = []

    def add(self, *keys: str, data: bytes = b"img") -> None:
        for key in keys:
            self.objects[key] = data

    def get_public_url(self, object_key: str) -> str:
        return f"https://storage.googleapis.com/{self.bucket_name}/{object_key}"

    def list_keys(self, prefix: str) -> list[str]:
        self.list_calls.append(prefix)
        return sorted(key for key in self.objects if key.startswith(prefix))

    def exists(self, object_key: str) -> bool:
        return object_key in self.objects

    def upload_bytes(self, object_key, data, content_type=None, metadata=None) -> str:
        self.objects[object_key] = data
        self.content_types[object_key] = content_type
        return f"gs://{self.bucket_name}/{object_key}"

    def download_bytes(self, object_key: str) -> bytes:
        return self.objects[object_key]

    def copy(self, source_key: str, target_key: str) -> None:
        self.objects[target_key] = self.objects[source_key]

    def delete(self, object_key: str) -> None:
        del self.objects[object_key]

    def generate_signed_url(self, object_key: str, expiration: timedelta) -> str:
        self.sign_calls.append(object_key)
        if self.fail_signing:
            raise RuntimeError("signing credentials unavailable")
        return f"https://signed.example/{object_key}?n={len(self.sign_calls)}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def listing_cache(clock):
    return ListingCache(clock=clock)


@pytest.fixture
def url_cache(storage, clock):
    return SignedUrlCache(storage, clock=clock)


@pytest.fixture
def service(storage, listing_cache, url_cache):
    return FileListingService(
        storage=storage,
        listing_cache=listing_cache,
        url_cache=url_cache,
        root_prefix=ROOT,
    )


ADMIN_PASSWORD = "test-admin-password"


@pytest.fixture
def admin_env(monkeypatch):
    """Configure admin auth for the duration of a test."""
    from auth.admin import get_admin_auth_settings, get_token_manager

    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.setenv("AUTH_SECRET", "test-signing-secret")
    monkeypatch.setenv("AUTH_TOKEN_TTL_DAYS", "7")
    get_admin_auth_settings.cache_clear()
    get_token_manager.cache_clear()
    yield
    get_admin_auth_settings.cache_clear()
    get_token_manager.cache_clear()


@pytest.fixture
def app(service):
    from api.services.file_listing import get_file_service
    from main import app as fastapi_app

    fastapi_app.dependency_overrides[get_file_service] = lambda: service
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app, admin_env):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def admin_headers(admin_env):
    from auth.admin import get_token_manager

    return {"Authorization": f"Bearer {get_token_manager().issue()}"}
