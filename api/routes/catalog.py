"""
Public Catalog Routes Module.

Read-only views used by the storefront:
- GET /api/public-catalog: same listing as /api/files, no session needed
- GET /api/images?code=: locate one image by its code
- POST /api/download: zip the images selected in an order
"""

import logging
from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from api.models import DownloadRequest, ImageLookupResponse, ListingResponse
from api.routes.files import listing_params
from api.services.file_listing import (
    FileListingService,
    InvalidNameError,
    ItemNotFoundError,
    get_file_service,
)
from api.services.order_archive import build_order_archive

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/public-catalog", response_model=ListingResponse)
async def public_catalog(
    params: dict[str, Any] = Depends(listing_params),
    service: FileListingService = Depends(get_file_service),
) -> dict[str, Any]:
    return await service.list_files(**params)


@router.get("/images", response_model=ImageLookupResponse)
async def find_image(
    code: str | None = Query(None, description="Image code, with or without extension"),
    service: FileListingService = Depends(get_file_service),
) -> dict[str, str]:
    code = (code or "").strip()
    if not code:
        raise InvalidNameError("Image code is required", error="Missing code")

    found = await service.find_image(code)
    if found is None:
        raise ItemNotFoundError(f"No image found for code '{code}'", error="Image not found")
    return found


@router.post("/download")
async def download_order(
    request: DownloadRequest,
    service: FileListingService = Depends(get_file_service),
) -> Response:
    """
    Zip every catalog image whose code was selected in the order.

    Response headers:
    - X-Found-Files: number of files in the archive
    - X-Filename-Collisions: comma separated keys skipped for duplicate names
    - X-Missing-Codes: comma separated selected codes with no catalog image
    """
    archive = await build_order_archive(
        service,
        request.selected_images,
        request.customer_name,
        request.order_number,
        request.date,
    )

    headers = {
        "Content-Disposition": f"attachment; filename*=UTF-8''{quote(archive.filename)}",
        "X-Found-Files": str(len(archive.found_files)),
    }
    if archive.collisions:
        headers["X-Filename-Collisions"] = quote(",".join(archive.collisions), safe=",/")
    if archive.missing_codes:
        headers["X-Missing-Codes"] = quote(",".join(archive.missing_codes), safe=",")

    return Response(content=archive.data, media_type="application/zip", headers=headers)
