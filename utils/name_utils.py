"""
Name and path helpers for the virtual catalog tree.

Object storage has no folders, only keys, so every user supplied folder or
file name goes through here before it becomes part of a key.
"""

import posixpath
import re
import unicodedata

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp"})

_WHITESPACE = re.compile(r"\s+")


class InvalidPathError(ValueError):
    """Raised when a user supplied name cannot be turned into a safe key."""


def sanitize_path(value: str | None, *, allow_empty: bool = True) -> str:
    """
    Normalize a relative path inside the catalog root.

    Strips surrounding whitespace and slashes, collapses repeated slashes,
    and rejects traversal segments, backslashes and control characters.
    """
    text = (value or "").strip().strip("/")
    if not text:
        if allow_empty:
            return ""
        raise InvalidPathError("Name is required")

    if "\\" in text or "\x00" in text or any(ord(ch) < 32 for ch in text):
        raise InvalidPathError(f"Invalid characters in name: {value!r}")

    segments = [segment.strip() for segment in text.split("/") if segment.strip()]
    if any(segment in ("..", ".") for segment in segments):
        raise InvalidPathError(f"Path traversal is not allowed: {value!r}")
    if not segments:
        if allow_empty:
            return ""
        raise InvalidPathError("Name is required")
    return "/".join(segments)


def sanitize_name(value: str | None) -> str:
    """Validate a single folder or file name (no slashes left after trimming)."""
    name = sanitize_path(value, allow_empty=False)
    if "/" in name:
        raise InvalidPathError(f"Name must not contain '/': {value!r}")
    return name


def parent_dir(directory: str) -> str:
    """Return the parent of a relative directory ('' for top level)."""
    return posixpath.dirname(directory.rstrip("/"))


def file_extension(name: str) -> str:
    return posixpath.splitext(name)[1].lstrip(".").lower()


def is_image_name(name: str) -> bool:
    return file_extension(name) in IMAGE_EXTENSIONS


def image_code(name: str) -> str:
    """File base name without its extension."""
    return posixpath.splitext(posixpath.basename(name))[0]


def normalize_search_text(value: str | None) -> str:
    """Fold text for search: strip accents, lowercase, collapse whitespace."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped).strip().casefold()


def slugify(value: str) -> str:
    return _WHITESPACE.sub("-", value.strip().lower())


__all__ = [
    "IMAGE_EXTENSIONS",
    "InvalidPathError",
    "sanitize_path",
    "sanitize_name",
    "parent_dir",
    "file_extension",
    "is_image_name",
    "image_code",
    "normalize_search_text",
    "slugify",
]
