"""
API Services Module.

Contains business logic services used by route handlers.
"""

from .file_listing import (
    FILES_ROOT_PREFIX,
    FOLDER_MARKER,
    FileListingService,
    FileServiceError,
    InvalidNameError,
    InvalidUploadError,
    ItemExistsError,
    ItemNotFoundError,
    StorageConfigError,
    get_file_service,
    get_listing_cache,
    get_signed_url_cache,
)
from .order_archive import OrderArchive, build_order_archive


__all__ = [
    "FILES_ROOT_PREFIX",
    "FOLDER_MARKER",
    "FileListingService",
    "FileServiceError",
    "InvalidNameError",
    "InvalidUploadError",
    "ItemExistsError",
    "ItemNotFoundError",
    "StorageConfigError",
    "get_file_service",
    "get_listing_cache",
    "get_signed_url_cache",
    "OrderArchive",
    "build_order_archive",
]
