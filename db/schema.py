"""
Schema bootstrap for the catalog tables.

Idempotent: every statement uses IF NOT EXISTS so it can run on each deploy.
"""

import logging

from psycopg2.extras import RealDictCursor

from db.connection_pool import get_db_connection
from db.db_config import get_db_config
from db.schema_constants import (
    BATCH_ORDERS_FULL,
    BATCHES_FULL,
    COL_ORDER_NUMBER,
    ORDERS_FULL,
    SCHEMA,
)

logger = logging.getLogger(__name__)


SCHEMA_STATEMENTS = [
    f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}",
    f"""
    CREATE TABLE IF NOT EXISTS {ORDERS_FULL} (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        customer_name TEXT NOT NULL,
        quantity_purchased INTEGER NOT NULL,
        selected_images JSONB NOT NULL DEFAULT '[]'::jsonb,
        whatsapp_message TEXT,
        {COL_ORDER_NUMBER} TEXT NOT NULL UNIQUE,
        is_pending BOOLEAN NOT NULL DEFAULT true,
        in_production BOOLEAN NOT NULL DEFAULT false,
        in_production_at TIMESTAMPTZ,
        finalized_at TIMESTAMPTZ,
        canceled_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    f"CREATE INDEX IF NOT EXISTS idx_orders_created_at ON {ORDERS_FULL} (created_at DESC)",
    f"""
    CREATE TABLE IF NOT EXISTS {BATCHES_FULL} (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {BATCH_ORDERS_FULL} (
        batch_id UUID NOT NULL REFERENCES {BATCHES_FULL}(id) ON DELETE CASCADE,
        order_id UUID NOT NULL REFERENCES {ORDERS_FULL}(id) ON DELETE CASCADE,
        PRIMARY KEY (batch_id, order_id)
    )
    """,
]


def initialize_schema() -> dict[str, int]:
    """
    Create the catalog tables if missing.

    Returns:
        Row count per table after the bootstrap
    """
    counts: dict[str, int] = {}
    with get_db_connection(get_db_config()) as conn:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)
            for table in (ORDERS_FULL, BATCHES_FULL, BATCH_ORDERS_FULL):
                cur.execute(f"SELECT COUNT(*) AS total FROM {table}")
                counts[table] = int(cur.fetchone()["total"])

    logger.info("Schema initialized: %s", counts)
    return counts


def check_connection() -> bool:
    """Run a trivial query against the configured database."""
    with get_db_connection(get_db_config()) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
            return cur.fetchone()[0] == 1
