"""
Catalog file listing and file tree mutations.

The bucket is a flat key space. Catalog objects live under
FILES_ROOT_PREFIX ("public/files/" by default) and are grouped into
categories by the first path segment below the directory being viewed:

    public/files/<dir>/<category>/<image>   -> image of <category>
    public/files/<dir>/<image>              -> image of the current directory
    public/files/<dir>/<category>/.folder   -> marker keeping an empty category visible

Anything deeper than one segment below <dir> is left out of that listing;
it shows up once the caller navigates into the subfolder.

Listings are cached per query (see utils.listing_cache) and every mutation
invalidates the cache for the directory it touched.
"""

import asyncio
import logging
import math
import os
import posixpath
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable, Optional

from dotenv import load_dotenv

from storage.gcs import GCSStorageManager
from utils.image_processing import ImageProcessingError, normalize_image
from utils.listing_cache import ListingCache
from utils.name_utils import (
    InvalidPathError,
    image_code,
    is_image_name,
    normalize_search_text,
    parent_dir,
    sanitize_name,
    sanitize_path,
    slugify,
)
from utils.signed_url_cache import SignedUrlCache, SignedUrlResult

load_dotenv()

logger = logging.getLogger(__name__)

FILES_ROOT_PREFIX = os.getenv("FILES_ROOT_PREFIX", "public/files/").strip("/") + "/"
FOLDER_MARKER = ".folder"
DEFAULT_PAGE_LIMIT = 50
LISTING_CACHE_TTL_MINUTES = int(os.getenv("LISTING_CACHE_TTL_MINUTES", "15"))


# =============================================================================
# ERRORS
# =============================================================================

class FileServiceError(Exception):
    """Base error for file operations; carries the HTTP status to report."""

    status_code = 500
    error = "File operation failed"

    def __init__(self, message: str, *, error: str | None = None):
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error

    def to_payload(self) -> dict[str, str]:
        return {"error": self.error, "message": self.message}


class InvalidNameError(FileServiceError):
    status_code = 400
    error = "Invalid name"


class InvalidUploadError(FileServiceError):
    status_code = 400
    error = "Invalid file"


class ItemNotFoundError(FileServiceError):
    status_code = 404
    error = "Item not found"


class ItemExistsError(FileServiceError):
    status_code = 409
    error = "Item already exists"


class StorageConfigError(FileServiceError):
    status_code = 500
    error = "Storage not configured"


# =============================================================================
# CLASSIFICATION
# =============================================================================

@dataclass
class ClassifiedKeys:
    """Object keys of one directory grouped into categories."""

    categories: dict[str, list[str]] = field(default_factory=dict)
    current_images: list[str] = field(default_factory=list)

    def all_image_keys(self) -> list[str]:
        keys = list(self.current_images)
        for image_keys in self.categories.values():
            keys.extend(image_keys)
        return keys


def directory_prefix(directory: str, root_prefix: str = FILES_ROOT_PREFIX) -> str:
    """Storage prefix of a catalog directory ('' is the catalog root)."""
    return f"{root_prefix}{directory}/" if directory else root_prefix


def classify_keys(keys: Iterable[str], prefix: str) -> ClassifiedKeys:
    """
    Group keys under prefix into categories and current-directory images.

    Markers (``<name>/.folder`` or a bare ``<name>/`` key) create a category
    without an image. Images count only zero or one segment below prefix.
    """
    result = ClassifiedKeys()

    for key in keys:
        if not key.startswith(prefix):
            continue
        relative = key[len(prefix):]
        if not relative:
            continue

        parts = relative.split("/")
        leaf = parts[-1]

        if leaf in (FOLDER_MARKER, ""):
            if len(parts) == 2 and parts[0]:
                result.categories.setdefault(parts[0], [])
            continue

        if not is_image_name(leaf):
            continue

        if len(parts) == 1:
            result.current_images.append(key)
        elif len(parts) == 2 and parts[0]:
            result.categories.setdefault(parts[0], []).append(key)

    return result


def matches_search(name: str, search: str) -> bool:
    term = normalize_search_text(search)
    if not term:
        return True
    return term in normalize_search_text(name)


def paginate(items: list, page: int, limit: int, show_all: bool) -> tuple[list, dict[str, int]]:
    """Slice one page out of items and describe it."""
    total = len(items)
    if show_all:
        return list(items), {"total": total, "page": 1, "limit": total, "totalPages": 1}

    page = max(1, page)
    limit = max(1, limit)
    start = (page - 1) * limit
    return items[start:start + limit], {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit),
    }


def _sort_key(name: str) -> tuple[str, str]:
    return (normalize_search_text(name), name)


# =============================================================================
# SERVICE
# =============================================================================

class FileListingService:
    """Builds catalog listings and applies file tree mutations."""

    def __init__(
        self,
        storage: GCSStorageManager,
        listing_cache: ListingCache,
        url_cache: SignedUrlCache,
        root_prefix: str = FILES_ROOT_PREFIX,
    ) -> None:
        self.storage = storage
        self.listing_cache = listing_cache
        self.url_cache = url_cache
        self.root_prefix = root_prefix

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def prefix_for(self, directory: str) -> str:
        return directory_prefix(directory, self.root_prefix)

    @staticmethod
    def clean_directory(directory: str | None) -> str:
        try:
            return sanitize_path(directory)
        except InvalidPathError as exc:
            raise InvalidNameError(str(exc)) from exc

    def invalidate_directory(self, directory: str) -> int:
        """
        Drop cached listings affected by a change inside directory.

        The parent is invalidated too, because the directory appears there
        as a category with its images.
        """
        prefix = self.prefix_for(parent_dir(directory))
        removed = self.listing_cache.invalidate(prefix)
        logger.debug("Invalidated %d cached listings under %s", removed, prefix)
        return removed

    async def _list_keys(self, prefix: str) -> list[str]:
        try:
            return await asyncio.to_thread(self.storage.list_keys, prefix)
        except Exception as exc:
            raise FileServiceError(f"Failed to list files under {prefix}: {exc}") from exc

    def _describe_image(self, key: str, category: str, url: SignedUrlResult) -> dict[str, str]:
        name = posixpath.basename(key)
        return {
            "name": name,
            "code": image_code(name),
            "url": url.url,
            "category": category,
        }

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    async def list_files(
        self,
        directory: str = "",
        search: str = "",
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        show_all: bool = False,
    ) -> dict[str, Any]:
        """
        Categorized listing of a catalog directory.

        Returns:
            {"categories": [{id, name, slug, images}], "images": [...],
             "pagination": {total, page, limit, totalPages}}
        """
        directory = self.clean_directory(directory)
        search = (search or "").strip()
        prefix = self.prefix_for(directory)

        cache_key = self.listing_cache.key(prefix, directory, search, page, limit, show_all)
        cached = self.listing_cache.get(cache_key)
        if cached is not None:
            logger.debug("Listing cache hit: %s", cache_key)
            return cached

        keys = await self._list_keys(prefix)
        classified = classify_keys(keys, prefix)
        urls = await self.url_cache.get_many(classified.all_image_keys())

        fallbacks = sum(1 for result in urls.values() if result.is_fallback)
        if fallbacks:
            logger.warning("%d of %d image URLs fell back to public URLs", fallbacks, len(urls))

        categories = []
        for index, name in enumerate(sorted(classified.categories, key=_sort_key), start=1):
            image_keys = sorted(classified.categories[name], key=posixpath.basename)
            categories.append({
                "id": f"cat_{index}",
                "name": name,
                "slug": slugify(name),
                "images": [self._describe_image(key, name, urls[key]) for key in image_keys],
            })

        if search:
            categories = [category for category in categories if matches_search(category["name"], search)]

        page_items, pagination = paginate(categories, page, limit, show_all)
        current_category = posixpath.basename(directory)
        response = {
            "categories": page_items,
            "images": [
                self._describe_image(key, current_category, urls[key])
                for key in sorted(classified.current_images, key=posixpath.basename)
            ],
            "pagination": pagination,
        }

        self.listing_cache.put(cache_key, response)
        logger.info(
            "Listed %s: %d categories (%d on page), %d current images",
            prefix,
            pagination["total"],
            len(page_items),
            len(response["images"]),
        )
        return response

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create_folder(self, directory: str | None, folder_name: str | None) -> str:
        directory = self.clean_directory(directory)
        try:
            name = sanitize_name(folder_name)
        except InvalidPathError as exc:
            raise InvalidNameError(str(exc)) from exc

        folder_prefix = f"{self.prefix_for(directory)}{name}/"
        if await self._list_keys(folder_prefix):
            raise ItemExistsError(f"Folder '{name}' already exists")

        try:
            await asyncio.to_thread(
                self.storage.upload_bytes,
                folder_prefix + FOLDER_MARKER,
                b"",
                "application/x-empty",
            )
        except Exception as exc:
            raise FileServiceError(f"Failed to create folder '{name}': {exc}") from exc

        self.invalidate_directory(directory)
        logger.info("Created folder %s", folder_prefix)
        return f"Folder '{name}' created"

    async def upload(self, directory: str | None, filename: str | None, data: bytes) -> str:
        directory = self.clean_directory(directory)
        base_name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
        try:
            name = sanitize_name(base_name)
        except InvalidPathError as exc:
            raise InvalidNameError(str(exc)) from exc

        if not is_image_name(name):
            raise InvalidUploadError(f"Unsupported file type: {name}")
        if not data:
            raise InvalidUploadError(f"File is empty: {name}")

        try:
            processed = await asyncio.to_thread(normalize_image, data, name)
        except ImageProcessingError as exc:
            raise InvalidUploadError(str(exc)) from exc

        object_key = self.prefix_for(directory) + name
        try:
            await asyncio.to_thread(
                self.storage.upload_bytes,
                object_key,
                processed.data,
                processed.content_type,
            )
        except Exception as exc:
            raise FileServiceError(f"Failed to upload '{name}': {exc}") from exc

        self.invalidate_directory(directory)
        return f"File '{name}' uploaded"

    async def rename_folder(self, directory: str | None, old_name: str | None, new_name: str | None) -> str:
        directory = self.clean_directory(directory)
        try:
            old = sanitize_name(old_name)
            new = sanitize_name(new_name)
        except InvalidPathError as exc:
            raise InvalidNameError(str(exc)) from exc
        if old == new:
            raise InvalidNameError("New folder name must differ from the current one")

        base = self.prefix_for(directory)
        old_prefix = f"{base}{old}/"
        new_prefix = f"{base}{new}/"

        keys = await self._list_keys(old_prefix)
        if not keys:
            raise ItemNotFoundError(f"Folder '{old}' not found")
        if await self._list_keys(new_prefix):
            raise ItemExistsError(f"Folder '{new}' already exists")

        try:
            await asyncio.to_thread(self._move_objects, keys, old_prefix, new_prefix)
        except Exception as exc:
            raise FileServiceError(f"Failed to rename folder '{old}': {exc}") from exc
        finally:
            self.invalidate_directory(directory)

        logger.info("Renamed %s -> %s (%d objects)", old_prefix, new_prefix, len(keys))
        return f"Folder '{old}' renamed to '{new}'"

    def _move_objects(self, keys: list[str], old_prefix: str, new_prefix: str) -> None:
        # Copy everything before deleting anything so a failure leaves the source intact.
        for key in keys:
            self.storage.copy(key, new_prefix + key[len(old_prefix):])
        for key in keys:
            self.storage.delete(key)

    async def delete(self, directory: str | None, path: str | None) -> str:
        """Delete one object, or a whole folder when path is not an object."""
        directory = self.clean_directory(directory)
        try:
            relative = sanitize_path(path, allow_empty=False)
        except InvalidPathError as exc:
            raise InvalidNameError(str(exc)) from exc

        object_key = self.prefix_for(directory) + relative
        try:
            is_object = await asyncio.to_thread(self.storage.exists, object_key)
        except Exception as exc:
            raise FileServiceError(f"Failed to look up '{relative}': {exc}") from exc

        if is_object:
            keys = [object_key]
        else:
            keys = await self._list_keys(object_key + "/")
            if not keys:
                raise ItemNotFoundError(f"'{relative}' not found")

        try:
            await asyncio.to_thread(self._delete_objects, keys)
        except Exception as exc:
            raise FileServiceError(f"Failed to delete '{relative}': {exc}") from exc
        finally:
            self.invalidate_directory(directory)

        if is_object:
            return f"File '{relative}' deleted"
        return f"Folder '{relative}' deleted ({len(keys)} objects)"

    def _delete_objects(self, keys: list[str]) -> None:
        for key in keys:
            self.storage.delete(key)

    # -------------------------------------------------------------------------
    # Lookups across the whole catalog
    # -------------------------------------------------------------------------

    async def list_catalog_images(self) -> list[str]:
        """Every image key under the catalog root, at any depth."""
        keys = await self._list_keys(self.root_prefix)
        return [key for key in keys if is_image_name(key)]

    async def find_image(self, code: str) -> Optional[dict[str, str]]:
        """Locate the first catalog image whose name matches code."""
        for key in sorted(await self.list_catalog_images()):
            if code_matches(posixpath.basename(key), code):
                url = await self.url_cache.get_signed_url(key)
                logger.info("Image found for code %r: %s", code, key)
                return {"url": url.url, "path": key[len(self.root_prefix):]}
        logger.info("No image found for code %r", code)
        return None


_CODE_EXTENSION = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)
_TRAILING_DOTS = re.compile(r"\.+$")
_NON_WORD = re.compile(r"[^\w-]")
_SPACES = re.compile(r"\s+")


def code_matches(file_name: str, code: str) -> bool:
    """Loose comparison of an image file name with an order image code."""
    stem = image_code(file_name)
    clean = _CODE_EXTENSION.sub("", code)
    return (
        stem == clean
        or stem == code
        or file_name == code
        or _TRAILING_DOTS.sub("", stem) == _TRAILING_DOTS.sub("", clean)
        or _SPACES.sub("", stem) == _SPACES.sub("", clean)
        or _NON_WORD.sub("", stem) == _NON_WORD.sub("", clean)
    )


# =============================================================================
# PROCESS-WIDE INSTANCES
# =============================================================================

_listing_cache: ListingCache | None = None
_storage: GCSStorageManager | None = None
_signed_url_cache: SignedUrlCache | None = None
_file_service: FileListingService | None = None


def get_listing_cache() -> ListingCache:
    global _listing_cache
    if _listing_cache is None:
        _listing_cache = ListingCache(ttl=timedelta(minutes=LISTING_CACHE_TTL_MINUTES))
    return _listing_cache


def get_storage() -> GCSStorageManager:
    """Process-wide bucket client; a missing GCS_BUCKET raises StorageConfigError."""
    global _storage
    if _storage is None:
        try:
            _storage = GCSStorageManager()
        except ValueError as exc:
            raise StorageConfigError(str(exc)) from exc
    return _storage


def get_signed_url_cache() -> SignedUrlCache:
    global _signed_url_cache
    if _signed_url_cache is None:
        _signed_url_cache = SignedUrlCache(get_storage())
    return _signed_url_cache


def get_file_service() -> FileListingService:
    """Process-wide service; storage config errors surface as StorageConfigError."""
    global _file_service
    if _file_service is None:
        _file_service = FileListingService(
            storage=get_storage(),
            listing_cache=get_listing_cache(),
            url_cache=get_signed_url_cache(),
        )
    return _file_service


__all__ = [
    "FILES_ROOT_PREFIX",
    "FOLDER_MARKER",
    "ClassifiedKeys",
    "FileListingService",
    "FileServiceError",
    "InvalidNameError",
    "InvalidUploadError",
    "ItemExistsError",
    "ItemNotFoundError",
    "StorageConfigError",
    "classify_keys",
    "code_matches",
    "directory_prefix",
    "get_file_service",
    "get_listing_cache",
    "get_signed_url_cache",
    "get_storage",
    "matches_search",
    "paginate",
]
