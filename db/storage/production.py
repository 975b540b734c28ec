"""
Database storage for production history.

Tables:
- production_batches: one row per "send to production" action
- production_batch_orders: orders included in each batch (cascade on delete)
"""

import logging
import uuid
from typing import Any

import psycopg2
from psycopg2.extras import RealDictCursor

from db.connection_pool import get_db_connection
from db.db_config import get_db_config
from db.schema_constants import BATCH_ORDERS_FULL, BATCHES_FULL, ORDERS_FULL
from db.storage.orders import DatabaseError, row_to_order

logger = logging.getLogger(__name__)


class ProductionStorage:
    """
    Handles read access to production batches.

    Batches are written by OrderStorage.mark_orders_in_production so the
    batch and the order updates share one transaction.
    """

    def __init__(self):
        self.db_config = get_db_config()

    async def get_production_batches(
        self,
        *,
        period_from: str | None = None,
        period_to: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        Batches newest first with their order counts.

        Returns:
            (batches, total)
        """
        clauses: list[str] = []
        params: list[Any] = []
        if period_from:
            clauses.append("DATE(b.created_at) >= %s")
            params.append(period_from)
        if period_to:
            clauses.append("DATE(b.created_at) <= %s")
            params.append(period_to)
        where = ("WHERE " + " AND ".join(clauses)) if clauses else ""
        offset = (max(1, page) - 1) * page_size

        try:
            with get_db_connection(self.db_config) as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(f"SELECT COUNT(*) AS total FROM {BATCHES_FULL} b {where}", params)
                    total = int(cur.fetchone()["total"])
                    cur.execute(
                        f"""
                        SELECT b.id, b.created_at, COUNT(bo.order_id) AS order_count
                        FROM {BATCHES_FULL} b
                        LEFT JOIN {BATCH_ORDERS_FULL} bo ON bo.batch_id = b.id
                        {where}
                        GROUP BY b.id, b.created_at
                        ORDER BY b.created_at DESC
                        LIMIT %s OFFSET %s
                        """,
                        [*params, page_size, offset],
                    )
                    batches = [
                        {
                            "id": str(row["id"]),
                            "created_at": row["created_at"],
                            "order_count": int(row["order_count"]),
                        }
                        for row in cur.fetchall()
                    ]
        except psycopg2.Error as exc:
            logger.error("Failed to list production batches: %s", exc, exc_info=True)
            raise DatabaseError(str(exc)) from exc

        return batches, total

    async def get_production_batch_orders(self, batch_id: str) -> list[dict[str, Any]]:
        try:
            batch_uuid = str(uuid.UUID(batch_id))
        except ValueError:
            return []

        try:
            with get_db_connection(self.db_config) as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(
                        f"""
                        SELECT o.*
                        FROM {BATCH_ORDERS_FULL} bo
                        JOIN {ORDERS_FULL} o ON o.id = bo.order_id
                        WHERE bo.batch_id = %s
                        ORDER BY o.created_at ASC
                        """,
                        (batch_uuid,),
                    )
                    return [row_to_order(row) for row in cur.fetchall()]
        except psycopg2.Error as exc:
            logger.error("Failed to load orders of batch %s: %s", batch_id, exc, exc_info=True)
            raise DatabaseError(str(exc)) from exc
