"""
Shared Pydantic models for the catalog API.

Request bodies are validated here; listing and order responses are plain
dicts produced by the services and storage classes.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================

class FileAction(str, Enum):
    CREATE_FOLDER = "createFolder"
    UPLOAD = "upload"
    RENAME_FOLDER = "renameFolder"


class OrderStatus(str, Enum):
    PENDING = "pending"
    ART_MOUNTED = "art_mounted"
    IN_PRODUCTION = "in_production"
    FINALIZED = "finalized"
    CANCELED = "canceled"


# =============================================================================
# LISTING RESPONSES
# =============================================================================

class ImageDescriptor(BaseModel):
    name: str
    code: str
    url: str
    category: str


class CategoryRecord(BaseModel):
    id: str
    name: str
    slug: str
    images: list[ImageDescriptor] = Field(default_factory=list)


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int


class ListingResponse(BaseModel):
    categories: list[CategoryRecord] = Field(default_factory=list)
    images: list[ImageDescriptor] = Field(default_factory=list)
    pagination: Pagination


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None


class ImageLookupResponse(BaseModel):
    url: str
    path: str


# =============================================================================
# ORDERS
# =============================================================================

class OrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, description="Customer display name")
    quantity_purchased: int = Field(..., ge=1, description="Number of images the customer paid for")
    selected_images: list[str] = Field(default_factory=list, description="Image codes picked from the catalog")
    whatsapp_message: str | None = Field(None, description="Message sent to the shop on WhatsApp")
    order: str = Field(..., min_length=1, description="Customer-facing order number")

    @field_validator("customer_name", "order")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class OrderPatch(BaseModel):
    """
    One of three admin actions:
    - {finalize: true, orderIds: [...]}: finalize orders
    - {cancel: true, id: <uuid>}: cancel one order
    - {id: <order number>}: mark the order's art as mounted
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    finalize: bool = False
    cancel: bool = False
    order_ids: list[str] | None = Field(None, alias="orderIds")


class OrderIdsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_ids: list[str] = Field(default_factory=list, alias="orderIds")


class OrderListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    orders: list[dict[str, Any]]
    total: int
    page: int
    page_size: int = Field(..., alias="pageSize")


class ProductionStartResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    orders: list[dict[str, Any]]
    batch_id: str = Field(..., alias="batchId")


# =============================================================================
# PRODUCTION HISTORY
# =============================================================================

class ProductionBatch(BaseModel):
    id: str
    created_at: datetime
    order_count: int


class ProductionHistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    batches: list[ProductionBatch]
    total: int
    page: int
    page_size: int = Field(..., alias="pageSize")


# =============================================================================
# DOWNLOAD
# =============================================================================

class DownloadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    selected_images: list[str] = Field(..., alias="selectedImages")
    customer_name: str = Field(..., alias="customerName")
    order_number: str = Field(..., alias="orderNumber")
    date: Optional[datetime] = None

    @field_validator("selected_images")
    @classmethod
    def require_images(cls, value: list[str]) -> list[str]:
        codes = [code.strip() for code in value if code and code.strip()]
        if not codes:
            raise ValueError("at least one image code is required")
        return codes


# =============================================================================
# AUTH
# =============================================================================

class LoginRequest(BaseModel):
    password: str | None = None


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    expires_in: int


class AdminUser(BaseModel):
    id: str = "admin"
    role: str = "admin"
