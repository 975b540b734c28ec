from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

DEFAULT_LISTING_TTL = timedelta(minutes=15)
KEY_SEPARATOR = ":"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class CacheEntry:
    """A cached listing response with its expiry metadata."""

    data: Any
    created_at: datetime
    expires_at: datetime


class ListingCache:
    """In-memory TTL cache for categorized file listing responses.

    Entries are keyed by the storage prefix first, so every key for a
    directory and its descendants shares the same leading text and can be
    dropped with a single prefix invalidation.
    """

    def __init__(self, ttl: timedelta = DEFAULT_LISTING_TTL, clock: Clock | None = None) -> None:
        self._ttl = ttl
        self._clock = clock or _utcnow
        self._entries: Dict[str, CacheEntry] = {}

    @property
    def ttl(self) -> timedelta:
        """Return the configured time-to-live window."""

        return self._ttl

    @staticmethod
    def key(prefix: str, directory: str, search: str, page: int, limit: int, show_all: bool) -> str:
        """Build the cache key for one listing query."""

        return KEY_SEPARATOR.join(
            (prefix, directory, search, str(page), str(limit), "true" if show_all else "false")
        )

    def get(self, key: str) -> Optional[Any]:
        """Return cached data for the key, or None when absent or expired."""

        now = self._clock()
        self._sweep(now)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if now >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.data

    def put(self, key: str, data: Any) -> CacheEntry:
        """Store data under the key for one TTL window."""

        now = self._clock()
        entry = CacheEntry(data=data, created_at=now, expires_at=now + self._ttl)
        self._entries[key] = entry
        return entry

    def invalidate(self, prefix: str | None = None) -> int:
        """Drop every entry whose key starts with prefix, or all entries.

        Returns the number of entries removed.
        """

        if not prefix:
            removed = len(self._entries)
            self._entries.clear()
            return removed

        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def purge_expired(self) -> int:
        """Remove expired entries and return how many were dropped."""

        return self._sweep(self._clock())

    def stats(self) -> dict[str, int]:
        self.purge_expired()
        return {"entries": len(self._entries)}

    def __len__(self) -> int:
        self.purge_expired()
        return len(self._entries)

    def _sweep(self, now: datetime) -> int:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)


__all__ = ["CacheEntry", "ListingCache", "DEFAULT_LISTING_TTL"]
