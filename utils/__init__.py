"""
Shared utilities module.

Contains:
- logger_config: Non-blocking logging configuration
- listing_cache: TTL cache for catalog listings
- signed_url_cache: Signed URL memoization with public fallback
- name_utils: Path sanitizing, search normalization, slugs
- image_processing: Upload re-encoding with Pillow
"""

from utils.logger_config import (
    configure_non_blocking_logging,
    get_log_listener,
    stop_logging,
    DEFAULT_LOG_FORMAT,
    DEFAULT_DATE_FORMAT,
)
from utils.listing_cache import CacheEntry, ListingCache
from utils.signed_url_cache import SignedUrlCache, SignedUrlResult

__all__ = [
    # Logger
    "configure_non_blocking_logging",
    "get_log_listener",
    "stop_logging",
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_DATE_FORMAT",
    # Caches
    "CacheEntry",
    "ListingCache",
    "SignedUrlCache",
    "SignedUrlResult",
]
