"""
File Routes Module.

Catalog file tree backed by the storage bucket:
- GET /api/files: categorized listing (cached per query)
- POST /api/files: form actions createFolder, upload, renameFolder
- DELETE /api/files: delete an object, or a whole folder

Mutations require an admin session and invalidate cached listings.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from api.middleware import require_admin
from api.models import FileAction, ListingResponse, MessageResponse
from api.services.file_listing import (
    DEFAULT_PAGE_LIMIT,
    FileListingService,
    InvalidNameError,
    InvalidUploadError,
    get_file_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


def listing_params(
    directory: str = Query("", alias="dir", description="Directory below the catalog root"),
    search: str = Query("", description="Accent-insensitive category name filter"),
    page: int = Query(1, description="1-based page of categories"),
    limit: int = Query(DEFAULT_PAGE_LIMIT, description="Categories per page"),
    show_all: bool = Query(False, alias="all", description="Return every category on one page"),
) -> dict[str, Any]:
    return {
        "directory": directory,
        "search": search,
        "page": page,
        "limit": limit,
        "show_all": show_all,
    }


# =============================================================================
# GET /api/files - Categorized listing
# =============================================================================

@router.get("", response_model=ListingResponse)
async def list_files(
    params: dict[str, Any] = Depends(listing_params),
    service: FileListingService = Depends(get_file_service),
) -> dict[str, Any]:
    return await service.list_files(**params)


# =============================================================================
# POST /api/files - Folder and upload actions
# =============================================================================

@router.post("", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def file_action(
    action: str = Form(...),
    directory: str = Form("", alias="dir"),
    folder_name: str | None = Form(None, alias="folderName"),
    old_name: str | None = Form(None, alias="oldName"),
    new_name: str | None = Form(None, alias="newName"),
    file: UploadFile | None = File(None),
    service: FileListingService = Depends(get_file_service),
) -> MessageResponse:
    """
    Dispatch a form action.

    Fields per action:
    - createFolder: dir, folderName
    - upload: dir, file
    - renameFolder: dir, oldName, newName
    """
    try:
        selected = FileAction(action)
    except ValueError:
        raise InvalidNameError(f"Unknown action: {action}", error="Invalid action")

    if selected is FileAction.CREATE_FOLDER:
        message = await service.create_folder(directory, folder_name)
    elif selected is FileAction.UPLOAD:
        if file is None:
            raise InvalidUploadError("No file provided")
        data = await file.read()
        message = await service.upload(directory, file.filename, data)
    else:
        message = await service.rename_folder(directory, old_name, new_name)

    logger.info("File action %s in '%s': %s", selected.value, directory, message)
    return MessageResponse(message=message)


# =============================================================================
# DELETE /api/files - Delete object or folder
# =============================================================================

@router.delete("", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_item(
    directory: str = Query("", alias="dir"),
    path: str = Query(..., description="Object or folder path relative to dir"),
    service: FileListingService = Depends(get_file_service),
) -> MessageResponse:
    message = await service.delete(directory, path)
    logger.info("Deleted in '%s': %s", directory, message)
    return MessageResponse(message=message)
