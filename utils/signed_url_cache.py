from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

SIGNED_URL_VALIDITY = timedelta(hours=24)
# Entries expire an hour before the URL itself so a cached URL is never stale.
SIGNED_URL_CACHE_TTL = timedelta(hours=23)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UrlSigner(Protocol):
    bucket_name: str

    def generate_signed_url(self, object_key: str, expiration: timedelta) -> str: ...

    def get_public_url(self, object_key: str) -> str: ...


@dataclass(slots=True)
class CachedSignedUrl:
    """Represents a cached signed URL entry with its expiry metadata."""

    key: str
    url: str
    cached_at: datetime
    expires_at: datetime


@dataclass(slots=True, frozen=True)
class SignedUrlResult:
    """Outcome of a URL lookup: a signed URL, or a public fallback."""

    url: str
    signed: bool
    cached: bool = False

    @property
    def is_fallback(self) -> bool:
        return not self.signed


class SignedUrlCache:
    """In-memory TTL cache for object signed URLs."""

    def __init__(
        self,
        signer: UrlSigner,
        *,
        ttl: timedelta = SIGNED_URL_CACHE_TTL,
        validity: timedelta = SIGNED_URL_VALIDITY,
        clock: Clock | None = None,
    ) -> None:
        self._signer = signer
        self._ttl = ttl
        self._validity = validity
        self._clock = clock or _utcnow
        self._cache: Dict[str, CachedSignedUrl] = {}

    @property
    def ttl(self) -> timedelta:
        """Return the configured time-to-live window."""

        return self._ttl

    def cache_key(self, object_key: str) -> str:
        return f"signed:{self._signer.bucket_name}:{object_key}"

    def get(self, key: str) -> Optional[CachedSignedUrl]:
        """Return a non-expired cache entry for the given cache key if available."""

        entry = self._cache.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._cache.pop(key, None)
            return None
        return entry

    def set(self, key: str, url: str) -> CachedSignedUrl:
        """Store a fresh cache entry for the key and return it."""

        now = self._clock()
        entry = CachedSignedUrl(key=key, url=url, cached_at=now, expires_at=now + self._ttl)
        self._cache[key] = entry
        return entry

    async def get_signed_url(self, object_key: str) -> SignedUrlResult:
        """Return a display URL for the object, signing it on a cache miss.

        Signing failures are not raised: the object's public URL is returned
        instead and nothing is cached, so the next call tries to sign again.
        """

        self.purge_expired()
        key = self.cache_key(object_key)

        cached = self.get(key)
        if cached is not None:
            return SignedUrlResult(url=cached.url, signed=True, cached=True)

        try:
            url = await asyncio.to_thread(self._signer.generate_signed_url, object_key, self._validity)
        except Exception as exc:
            logger.warning("Signing failed for %s, using public URL: %s", object_key, exc)
            return SignedUrlResult(url=self._signer.get_public_url(object_key), signed=False)

        self.set(key, url)
        return SignedUrlResult(url=url, signed=True)

    async def get_many(self, object_keys: list[str]) -> dict[str, SignedUrlResult]:
        """Resolve URLs for several objects concurrently."""

        results = await asyncio.gather(
            *(self.get_signed_url(object_key) for object_key in object_keys)
        )
        return dict(zip(object_keys, results))

    def purge_expired(self) -> int:
        """Remove every expired entry; runs before each lookup."""

        now = self._clock()
        expired_keys = [key for key, entry in self._cache.items() if entry.expires_at <= now]
        for key in expired_keys:
            self._cache.pop(key, None)
        return len(expired_keys)

    def clear(self) -> None:
        self._cache.clear()

    def stats(self) -> dict[str, int]:
        self.purge_expired()
        return {"entries": len(self._cache)}

    def __len__(self) -> int:
        return len(self._cache)


__all__ = [
    "CachedSignedUrl",
    "SignedUrlCache",
    "SignedUrlResult",
    "SIGNED_URL_CACHE_TTL",
    "SIGNED_URL_VALIDITY",
]
