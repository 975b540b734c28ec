"""
Production History Routes Module.

- GET /api/production-history: batches newest first with order counts
- GET /api/production-history/{batch_id}/orders: orders of one batch
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from api.middleware import require_admin
from api.models import ProductionHistoryResponse
from db.storage.production import ProductionStorage

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/production-history",
    tags=["production-history"],
    dependencies=[Depends(require_admin)],
)

MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 20

# Lazy initialization
_production_storage: ProductionStorage | None = None


def get_production_storage() -> ProductionStorage:
    global _production_storage
    if _production_storage is None:
        _production_storage = ProductionStorage()
    return _production_storage


@router.get("", response_model=ProductionHistoryResponse)
async def list_batches(
    period_from: str | None = Query(None, alias="periodFrom"),
    period_to: str | None = Query(None, alias="periodTo"),
    page: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, alias="pageSize"),
    storage: ProductionStorage = Depends(get_production_storage),
) -> ProductionHistoryResponse:
    page = max(1, page)
    page_size = min(MAX_PAGE_SIZE, max(1, page_size))
    batches, total = await storage.get_production_batches(
        period_from=period_from,
        period_to=period_to,
        page=page,
        page_size=page_size,
    )
    return ProductionHistoryResponse(batches=batches, total=total, page=page, page_size=page_size)


@router.get("/{batch_id}/orders")
async def batch_orders(
    batch_id: str,
    storage: ProductionStorage = Depends(get_production_storage),
) -> list[dict[str, Any]]:
    return await storage.get_production_batch_orders(batch_id)
