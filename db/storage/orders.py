"""
Database storage for customer orders.

Table: orders
- selected_images is JSONB (list of image codes)
- "order" is the customer-facing order number (unique)
- Lifecycle columns: is_pending, in_production/in_production_at,
  finalized_at, canceled_at

Derived statuses used by the admin filters:
- pending: not yet art-mounted, not in production, not finalized, not canceled
- art_mounted: is_pending = false, not in production, not finalized, not canceled
- in_production: in production, not finalized, not canceled
- finalized: finalized, not canceled
- canceled: canceled_at set
"""

import logging
import uuid
from typing import Any, Iterable, Optional

import psycopg2
from psycopg2.extras import Json, RealDictCursor

from db.connection_pool import get_db_connection
from db.db_config import get_db_config
from db.schema_constants import (
    BATCH_ORDERS_FULL,
    BATCHES_FULL,
    COL_ORDER_NUMBER,
    ORDER_STATUSES,
    ORDERS_FULL,
)

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Raised when a database operation fails due to connection or query issues"""
    pass


class OrderError(Exception):
    """Raised when a request breaks an order business rule."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


_NOT_CLOSED = "canceled_at IS NULL AND finalized_at IS NULL"
_NOT_IN_PRODUCTION = "COALESCE(in_production, false) = false"

STATUS_CONDITIONS: dict[str, str] = {
    "pending": f"{_NOT_CLOSED} AND {_NOT_IN_PRODUCTION} AND is_pending = true",
    "art_mounted": f"{_NOT_CLOSED} AND {_NOT_IN_PRODUCTION} AND is_pending = false",
    "in_production": f"{_NOT_CLOSED} AND in_production = true",
    "finalized": "canceled_at IS NULL AND finalized_at IS NOT NULL",
    "canceled": "canceled_at IS NOT NULL",
}


def build_order_filters(
    statuses: Iterable[str],
    period_from: str | None = None,
    period_to: str | None = None,
    search: str | None = None,
) -> tuple[str, list[Any]]:
    """
    Build the WHERE clause for the admin order filters.

    Statuses are OR-ed together; period bounds apply to the creation date
    (inclusive); search matches customer name or order number.

    Returns:
        (sql fragment starting with WHERE, or "", params)
    """
    clauses: list[str] = []
    params: list[Any] = []

    conditions = [f"({STATUS_CONDITIONS[s]})" for s in statuses if s in STATUS_CONDITIONS]
    if conditions:
        clauses.append("(" + " OR ".join(conditions) + ")")
    if period_from:
        clauses.append("DATE(created_at) >= %s")
        params.append(period_from)
    if period_to:
        clauses.append("DATE(created_at) <= %s")
        params.append(period_to)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        clauses.append(f"(customer_name ILIKE %s OR {COL_ORDER_NUMBER} ILIKE %s)")
        params.extend([pattern, pattern])

    if not clauses:
        return "", params
    return "WHERE " + " AND ".join(clauses), params


def _valid_uuids(values: Iterable[str]) -> list[str]:
    valid = []
    for value in values:
        try:
            valid.append(str(uuid.UUID(str(value))))
        except ValueError:
            continue
    return valid


def row_to_order(row: dict | None) -> Optional[dict[str, Any]]:
    if row is None:
        return None
    order = dict(row)
    order["id"] = str(order["id"])
    order["selected_images"] = order.get("selected_images") or []
    return order


class OrderStorage:
    """
    Handles database operations for customer orders.
    """

    def __init__(self):
        self.db_config = get_db_config()

    def _fetch_all(self, query: str, params: tuple | list = ()) -> list[dict[str, Any]]:
        try:
            with get_db_connection(self.db_config) as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(query, params)
                    return [row_to_order(row) for row in cur.fetchall()]
        except psycopg2.Error as exc:
            logger.error("Order query failed: %s", exc, exc_info=True)
            raise DatabaseError(str(exc)) from exc

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_order(
        self,
        customer_name: str,
        quantity_purchased: int,
        selected_images: list[str],
        order_number: str,
        whatsapp_message: str | None = None,
    ) -> dict[str, Any]:
        """
        Create a new order.

        Raises:
            OrderError: If an order with the same number already exists
            DatabaseError: On connection or query failure
        """
        if await self.order_exists(order_number):
            raise OrderError("An order with this number already exists")

        try:
            with get_db_connection(self.db_config) as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO {ORDERS_FULL}
                        (customer_name, quantity_purchased, selected_images, whatsapp_message, {COL_ORDER_NUMBER})
                        VALUES (%s, %s, %s, %s, %s)
                        RETURNING *
                        """,
                        (
                            customer_name,
                            quantity_purchased,
                            Json(selected_images),
                            whatsapp_message,
                            order_number,
                        ),
                    )
                    order = row_to_order(cur.fetchone())
        except psycopg2.errors.UniqueViolation as exc:
            raise OrderError("An order with this number already exists") from exc
        except psycopg2.Error as exc:
            logger.error("Failed to create order: %s", exc, exc_info=True)
            raise DatabaseError(str(exc)) from exc

        logger.info("Created order: id=%s, number=%s, images=%d", order["id"], order_number, len(selected_images))
        return order

    # =========================================================================
    # READ
    # =========================================================================

    async def order_exists(self, order_number: str) -> bool:
        rows = self._fetch_all(
            f"SELECT id FROM {ORDERS_FULL} WHERE {COL_ORDER_NUMBER} = %s LIMIT 1",
            (order_number,),
        )
        return bool(rows)

    async def get_orders(self, include_canceled: bool = False) -> list[dict[str, Any]]:
        where = "" if include_canceled else "WHERE canceled_at IS NULL"
        return self._fetch_all(f"SELECT * FROM {ORDERS_FULL} {where} ORDER BY created_at ASC")

    async def get_order_by_id(self, order_id: str) -> Optional[dict[str, Any]]:
        ids = _valid_uuids([order_id])
        if not ids:
            return None
        rows = self._fetch_all(f"SELECT * FROM {ORDERS_FULL} WHERE id = %s", (ids[0],))
        return rows[0] if rows else None

    async def get_orders_by_ids(self, order_ids: list[str]) -> list[dict[str, Any]]:
        ids = _valid_uuids(order_ids)
        if not ids:
            return []
        return self._fetch_all(
            f"SELECT * FROM {ORDERS_FULL} WHERE id = ANY(%s::uuid[]) ORDER BY created_at ASC",
            (ids,),
        )

    async def get_orders_by_order_number(self, order_number: str) -> list[dict[str, Any]]:
        return self._fetch_all(
            f"SELECT * FROM {ORDERS_FULL} WHERE {COL_ORDER_NUMBER} = %s ORDER BY created_at ASC",
            (order_number,),
        )

    async def get_orders_filtered(
        self,
        statuses: list[str],
        *,
        period_from: str | None = None,
        period_to: str | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[dict[str, Any]], int]:
        """One page of orders matching the filters, plus the total count."""
        where, params = build_order_filters(statuses, period_from, period_to, search)
        offset = (max(1, page) - 1) * page_size

        try:
            with get_db_connection(self.db_config) as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(f"SELECT COUNT(*) AS total FROM {ORDERS_FULL} {where}", params)
                    total = int(cur.fetchone()["total"])
                    cur.execute(
                        f"SELECT * FROM {ORDERS_FULL} {where} ORDER BY created_at DESC LIMIT %s OFFSET %s",
                        [*params, page_size, offset],
                    )
                    orders = [row_to_order(row) for row in cur.fetchall()]
        except psycopg2.Error as exc:
            logger.error("Failed to filter orders: %s", exc, exc_info=True)
            raise DatabaseError(str(exc)) from exc

        return orders, total

    async def get_order_ids_filtered(
        self,
        statuses: list[str],
        *,
        period_from: str | None = None,
        period_to: str | None = None,
        search: str | None = None,
    ) -> list[str]:
        where, params = build_order_filters(statuses, period_from, period_to, search)
        rows = self._fetch_all(f"SELECT id FROM {ORDERS_FULL} {where} ORDER BY created_at DESC", params)
        return [row["id"] for row in rows]

    # =========================================================================
    # UPDATE
    # =========================================================================

    async def update_order_status(self, order_id: str, is_pending: bool) -> dict[str, Any]:
        rows = self._fetch_all(
            f"""
            UPDATE {ORDERS_FULL}
            SET is_pending = %s, updated_at = NOW()
            WHERE id = %s
            RETURNING *
            """,
            (is_pending, order_id),
        )
        if not rows:
            raise OrderError("Order not found", status_code=404)
        return rows[0]

    async def mark_orders_in_production(self, order_ids: list[str]) -> tuple[list[dict[str, Any]], str]:
        """
        Move orders into production and record them as one production batch.

        Returns:
            (updated orders, batch_id)

        Raises:
            OrderError: If the list is empty or some orders are missing,
                finalized, canceled or already in production
        """
        ids = _valid_uuids(order_ids)
        if not order_ids:
            raise OrderError("No orders selected")
        if len(set(ids)) != len(set(order_ids)):
            raise OrderError("Some orders were not found or are already in production")

        try:
            with get_db_connection(self.db_config) as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(
                        f"""
                        SELECT id FROM {ORDERS_FULL}
                        WHERE id = ANY(%s::uuid[])
                          AND {_NOT_IN_PRODUCTION}
                          AND finalized_at IS NULL
                          AND canceled_at IS NULL
                        FOR UPDATE
                        """,
                        (ids,),
                    )
                    if len(cur.fetchall()) != len(set(ids)):
                        raise OrderError("Some orders were not found or are already in production")

                    cur.execute(
                        f"""
                        UPDATE {ORDERS_FULL}
                        SET in_production = true, in_production_at = NOW(), updated_at = NOW()
                        WHERE id = ANY(%s::uuid[])
                        RETURNING *
                        """,
                        (ids,),
                    )
                    orders = [row_to_order(row) for row in cur.fetchall()]

                    cur.execute(f"INSERT INTO {BATCHES_FULL} DEFAULT VALUES RETURNING id")
                    batch_id = str(cur.fetchone()["id"])
                    cur.executemany(
                        f"INSERT INTO {BATCH_ORDERS_FULL} (batch_id, order_id) VALUES (%s, %s)",
                        [(batch_id, order_id) for order_id in set(ids)],
                    )
        except psycopg2.Error as exc:
            logger.error("Failed to mark orders in production: %s", exc, exc_info=True)
            raise DatabaseError(str(exc)) from exc

        logger.info("Production batch %s created with %d orders", batch_id, len(orders))
        return orders, batch_id

    async def finalize_orders(self, order_ids: list[str]) -> list[dict[str, Any]]:
        ids = _valid_uuids(order_ids)
        if not order_ids:
            raise OrderError("No orders selected")

        try:
            with get_db_connection(self.db_config) as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(
                        f"SELECT id FROM {ORDERS_FULL} WHERE id = ANY(%s::uuid[]) AND finalized_at IS NULL FOR UPDATE",
                        (ids,),
                    )
                    if len(set(ids)) != len(set(order_ids)) or len(cur.fetchall()) != len(set(ids)):
                        raise OrderError("Some orders are already finalized or were not found")
                    cur.execute(
                        f"""
                        UPDATE {ORDERS_FULL}
                        SET finalized_at = NOW(), updated_at = NOW()
                        WHERE id = ANY(%s::uuid[]) AND finalized_at IS NULL
                        RETURNING *
                        """,
                        (ids,),
                    )
                    orders = [row_to_order(row) for row in cur.fetchall()]
        except psycopg2.Error as exc:
            logger.error("Failed to finalize orders: %s", exc, exc_info=True)
            raise DatabaseError(str(exc)) from exc

        logger.info("Finalized %d orders", len(orders))
        return orders

    async def cancel_order(self, order_id: str) -> dict[str, Any]:
        """
        Cancel an order that is neither finalized nor already canceled.

        Raises:
            OrderError: 404 if missing, 400 if finalized or already canceled
        """
        order = await self.get_order_by_id(order_id)
        if order is None:
            raise OrderError("Order not found", status_code=404)
        if order.get("finalized_at"):
            raise OrderError("Order is already finalized and cannot be canceled")
        if order.get("canceled_at"):
            raise OrderError("Order is already canceled")

        rows = self._fetch_all(
            f"""
            UPDATE {ORDERS_FULL}
            SET canceled_at = NOW(), updated_at = NOW()
            WHERE id = %s AND canceled_at IS NULL AND finalized_at IS NULL
            RETURNING *
            """,
            (order["id"],),
        )
        if not rows:
            raise OrderError("Order changed while canceling, try again", status_code=409)
        logger.info("Canceled order %s", order["id"])
        return rows[0]


def check_statuses(values: Iterable[str]) -> list[str]:
    """Keep only known status names, preserving order."""
    return [value for value in values if value in ORDER_STATUSES]


__all__ = [
    "DatabaseError",
    "OrderError",
    "OrderStorage",
    "STATUS_CONDITIONS",
    "build_order_filters",
    "check_statuses",
]
