"""
Schema constants for catalog tables.

The schema is configurable via the DB_SCHEMA env variable; "public" keeps
the tables where the storefront has always had them.
"""

import os
from dotenv import load_dotenv

# Load environment variables BEFORE reading DB_SCHEMA
load_dotenv()

SCHEMA = os.getenv("DB_SCHEMA", "public")


# =============================================================================
# TABLE NAMES - Orders
# =============================================================================

ORDERS_TABLE = "orders"
ORDERS_FULL = f"{SCHEMA}.{ORDERS_TABLE}"

# "order" is a reserved word and must stay quoted in SQL.
COL_ORDER_NUMBER = '"order"'


# =============================================================================
# TABLE NAMES - Production history
# =============================================================================

BATCHES_TABLE = "production_batches"
BATCHES_FULL = f"{SCHEMA}.{BATCHES_TABLE}"

BATCH_ORDERS_TABLE = "production_batch_orders"
BATCH_ORDERS_FULL = f"{SCHEMA}.{BATCH_ORDERS_TABLE}"


# =============================================================================
# ORDER STATUSES
# =============================================================================

ORDER_STATUSES = ("pending", "art_mounted", "in_production", "finalized", "canceled")
