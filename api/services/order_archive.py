"""
Zip archives of the catalog images selected in an order.

Images are matched by code (file name without extension) anywhere under the
catalog root. The archive is flat, so two objects with the same file name
collide: the first one (in key order) is kept and the others are reported.
"""

import asyncio
import io
import logging
import posixpath
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime

from api.services.file_listing import FileListingService
from utils.name_utils import image_code

logger = logging.getLogger(__name__)

_UNSAFE_FOLDER_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


@dataclass
class OrderArchive:
    filename: str
    data: bytes
    found_files: list[str] = field(default_factory=list)
    collisions: list[str] = field(default_factory=list)
    missing_codes: list[str] = field(default_factory=list)


def archive_folder_name(customer_name: str, order_number: str, order_date: date | datetime | str | None) -> str:
    """``<YYYY-MM-DD>_<customer>_<order>`` with path-hostile characters removed."""
    if isinstance(order_date, datetime):
        day = order_date.date().isoformat()
    elif isinstance(order_date, date):
        day = order_date.isoformat()
    elif order_date:
        day = str(order_date)[:10]
    else:
        day = date.today().isoformat()

    raw = f"{day}_{customer_name.strip()}_{order_number.strip()}"
    return _UNSAFE_FOLDER_CHARS.sub("-", raw).strip(". ")


def select_objects(image_keys: list[str], codes: list[str]) -> tuple[list[str], list[str], list[str]]:
    """
    Pick the keys whose code is wanted, dropping file name collisions.

    Returns:
        (selected keys, colliding keys that were skipped, codes with no match)
    """
    wanted = set(codes)
    selected: list[str] = []
    collisions: list[str] = []
    taken_names: set[str] = set()
    matched_codes: set[str] = set()

    for key in sorted(image_keys):
        name = posixpath.basename(key)
        code = image_code(name)
        if code not in wanted:
            continue
        matched_codes.add(code)
        if name in taken_names:
            collisions.append(key)
            continue
        taken_names.add(name)
        selected.append(key)

    missing = [code for code in codes if code not in matched_codes]
    return selected, collisions, missing


async def build_order_archive(
    service: FileListingService,
    selected_images: list[str],
    customer_name: str,
    order_number: str,
    order_date: date | datetime | str | None = None,
) -> OrderArchive:
    """Download the order's images from storage and zip them in memory."""
    folder = archive_folder_name(customer_name, order_number, order_date)
    image_keys = await service.list_catalog_images()
    selected, collisions, missing = select_objects(image_keys, selected_images)

    if collisions:
        logger.warning("Order %s: %d file name collisions skipped", order_number, len(collisions))
    if missing:
        logger.warning("Order %s: no image found for codes %s", order_number, missing)

    payloads = await asyncio.gather(
        *(asyncio.to_thread(service.storage.download_bytes, key) for key in selected)
    )

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for key, payload in zip(selected, payloads):
            archive.writestr(f"{folder}/{posixpath.basename(key)}", payload)

    logger.info("Built archive %s.zip with %d files", folder, len(selected))
    return OrderArchive(
        filename=f"{folder}.zip",
        data=buffer.getvalue(),
        found_files=selected,
        collisions=collisions,
        missing_codes=missing,
    )


__all__ = ["OrderArchive", "archive_folder_name", "build_order_archive", "select_objects"]
