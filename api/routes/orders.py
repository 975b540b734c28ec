"""
Order Routes Module.

- POST /api/orders: create an order (storefront)
- GET /api/orders?order=<number> | ?ids=a,b: public lookups
- GET /api/orders: admin list, filtered and paginated when status is given
- PATCH /api/orders: finalize, cancel, or mark art as mounted (admin)
- PUT /api/orders: send orders to production as one batch (admin)
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from api.middleware import require_admin
from api.models import (
    OrderCreate,
    OrderIdsRequest,
    OrderListResponse,
    OrderPatch,
    ProductionStartResponse,
)
from db.storage.orders import OrderError, OrderStorage, check_statuses

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20

# Lazy initialization
_order_storage: OrderStorage | None = None


def get_order_storage() -> OrderStorage:
    global _order_storage
    if _order_storage is None:
        _order_storage = OrderStorage()
    return _order_storage


# =============================================================================
# POST /api/orders - Create order
# =============================================================================

@router.post("")
async def create_order(
    payload: OrderCreate,
    storage: OrderStorage = Depends(get_order_storage),
) -> dict[str, Any]:
    return await storage.create_order(
        customer_name=payload.customer_name,
        quantity_purchased=payload.quantity_purchased,
        selected_images=payload.selected_images,
        order_number=payload.order,
        whatsapp_message=payload.whatsapp_message,
    )


# =============================================================================
# GET /api/orders - Lookups and admin list
# =============================================================================

@router.get("")
async def list_orders(
    request: Request,
    order: str | None = Query(None, description="Order number lookup (public)"),
    ids: str | None = Query(None, description="Comma separated order ids (public)"),
    status: list[str] | None = Query(None, description="Repeatable status filter"),
    period_from: str | None = Query(None, alias="periodFrom"),
    period_to: str | None = Query(None, alias="periodTo"),
    search: str | None = Query(None),
    page: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, alias="pageSize"),
    ids_only: bool = Query(False, alias="idsOnly"),
    include_canceled: bool = Query(False, alias="includeCanceled"),
    storage: OrderStorage = Depends(get_order_storage),
):
    if order:
        return await storage.get_orders_by_order_number(order)

    id_list = [value.strip() for value in (ids or "").split(",") if value.strip()]
    if id_list:
        return await storage.get_orders_by_ids(id_list)

    await require_admin(request)

    statuses = check_statuses(status or [])
    if not statuses:
        return await storage.get_orders(include_canceled=include_canceled)

    filters = {"period_from": period_from, "period_to": period_to, "search": search}
    if ids_only:
        return await storage.get_order_ids_filtered(statuses, **filters)

    page = max(1, page)
    page_size = min(MAX_PAGE_SIZE, max(1, page_size))
    orders, total = await storage.get_orders_filtered(statuses, page=page, page_size=page_size, **filters)
    return OrderListResponse(orders=orders, total=total, page=page, page_size=page_size)


# =============================================================================
# PATCH /api/orders - Finalize / cancel / mark art mounted
# =============================================================================

@router.patch("", dependencies=[Depends(require_admin)])
async def update_orders(
    payload: OrderPatch,
    storage: OrderStorage = Depends(get_order_storage),
):
    if payload.finalize and payload.order_ids is not None:
        return await storage.finalize_orders(payload.order_ids)

    if payload.cancel and payload.id:
        logger.info("Canceling order %s", payload.id)
        return await storage.cancel_order(payload.id)

    if not payload.id:
        raise OrderError("Order id is required")

    # Here id is the customer-facing order number.
    orders = await storage.get_orders_by_order_number(payload.id)
    if not orders or orders[0].get("finalized_at"):
        raise OrderError("Order is already finalized or was not found")

    logger.info("Marking art mounted for order %s", payload.id)
    return await storage.update_order_status(orders[0]["id"], is_pending=False)


# =============================================================================
# PUT /api/orders - Send to production
# =============================================================================

@router.put("", response_model=ProductionStartResponse, dependencies=[Depends(require_admin)])
async def start_production(
    payload: OrderIdsRequest,
    storage: OrderStorage = Depends(get_order_storage),
) -> ProductionStartResponse:
    if not payload.order_ids:
        raise OrderError("Order ids are required and must be a non-empty list")

    logger.info("Sending %d orders to production", len(payload.order_ids))
    orders, batch_id = await storage.mark_orders_in_production(payload.order_ids)
    return ProductionStartResponse(orders=orders, batch_id=batch_id)
