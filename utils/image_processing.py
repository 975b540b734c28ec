"""
Upload image normalization.

Images are re-encoded before they reach the bucket: anything wider than
UPLOAD_MAX_WIDTH is scaled down (aspect ratio kept) and every format is
re-compressed with its own settings.
"""

import io
import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv
from PIL import Image, ImageOps, UnidentifiedImageError

from utils.name_utils import file_extension

load_dotenv()

logger = logging.getLogger(__name__)

UPLOAD_MAX_WIDTH = int(os.getenv("UPLOAD_MAX_WIDTH", "1920"))
JPEG_QUALITY = 85
WEBP_QUALITY = 85

_FORMATS = {
    "jpg": ("JPEG", "image/jpeg"),
    "jpeg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
    "webp": ("WEBP", "image/webp"),
}


class ImageProcessingError(ValueError):
    """Raised when uploaded bytes are not a decodable image."""


@dataclass
class ProcessedImage:
    data: bytes
    content_type: str
    width: int
    height: int
    resized: bool


def normalize_image(data: bytes, filename: str, max_width: int = UPLOAD_MAX_WIDTH) -> ProcessedImage:
    """
    Resize and re-compress an uploaded image according to its extension.

    Args:
        data: Raw uploaded bytes
        filename: Original file name; its extension picks the output format
        max_width: Width threshold above which the image is scaled down

    Returns:
        ProcessedImage with the encoded bytes and final dimensions

    Raises:
        ImageProcessingError: If the extension is unsupported, the bytes
            cannot be decoded, or the image cannot be written in that format
    """
    ext = file_extension(filename)
    if ext not in _FORMATS:
        raise ImageProcessingError(f"Unsupported image type: .{ext}")
    output_format, content_type = _FORMATS[ext]

    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except Image.DecompressionBombError as exc:
        raise ImageProcessingError(f"Image {filename} is too large: {exc}") from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageProcessingError(f"Could not decode image {filename}: {exc}") from exc

    # Bake EXIF orientation into pixels; the tag is dropped on re-encode.
    image = ImageOps.exif_transpose(image)

    resized = False
    if image.width > max_width:
        new_height = max(1, round(image.height * max_width / image.width))
        original_size = image.size
        image = image.resize((max_width, new_height), Image.Resampling.LANCZOS)
        resized = True
        logger.debug("Resized %s from %s to %s", filename, original_size, image.size)

    save_kwargs: dict = {"format": output_format}
    if output_format == "JPEG":
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        save_kwargs.update(quality=JPEG_QUALITY, optimize=True, progressive=True)
    elif output_format == "PNG":
        save_kwargs.update(optimize=True)
    else:
        save_kwargs.update(quality=WEBP_QUALITY, method=4)

    buffer = io.BytesIO()
    try:
        image.save(buffer, **save_kwargs)
    except (OSError, ValueError) as exc:
        raise ImageProcessingError(f"Could not encode {filename} as {output_format}: {exc}") from exc
    result = buffer.getvalue()

    logger.info(
        "Normalized upload %s: %d -> %d bytes (%dx%d)",
        filename,
        len(data),
        len(result),
        image.width,
        image.height,
    )
    return ProcessedImage(
        data=result,
        content_type=content_type,
        width=image.width,
        height=image.height,
        resized=resized,
    )


__all__ = [
    "ImageProcessingError",
    "ProcessedImage",
    "UPLOAD_MAX_WIDTH",
    "normalize_image",
]
