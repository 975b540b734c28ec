"""
Database Connection Pool Manager
=================================

Provides a process-wide, thread-safe psycopg2 connection pool.

Features:
- ThreadedConnectionPool created lazily on first use
- Retry with backoff while acquiring a connection
- Stale connection check before handing a connection out
- Connection timeout configuration

Usage:
    from db.connection_pool import get_db_connection

    with get_db_connection(get_db_config()) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import psycopg2
from psycopg2 import pool
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

MIN_CONNECTIONS = int(os.getenv("DB_POOL_MIN_CONNECTIONS", "1"))
MAX_CONNECTIONS = int(os.getenv("DB_POOL_MAX_CONNECTIONS", "10"))
CONNECTION_TIMEOUT = int(os.getenv("DB_CONNECTION_TIMEOUT", "30"))
MAX_RETRIES = int(os.getenv("DB_MAX_RETRIES", "3"))
RETRY_DELAY_BASE = float(os.getenv("DB_RETRY_DELAY_BASE", "2.0"))


# =============================================================================
# GLOBAL POOL INSTANCE
# =============================================================================

_pool: Optional[pool.ThreadedConnectionPool] = None
_pool_lock = Lock()
_pool_config: Optional[dict] = None


def _get_pool(db_config: dict) -> pool.ThreadedConnectionPool:
    """Return the pool for db_config, (re)creating it when the config changed."""
    global _pool, _pool_config

    with _pool_lock:
        if _pool is not None and _pool_config == db_config:
            return _pool

        if _pool is not None:
            logger.info("Database config changed, closing existing pool")
            _pool.closeall()
            _pool = None

        _pool = pool.ThreadedConnectionPool(
            MIN_CONNECTIONS,
            MAX_CONNECTIONS,
            connect_timeout=CONNECTION_TIMEOUT,
            **db_config,
        )
        _pool_config = dict(db_config)
        logger.info(
            "Database connection pool initialized: min=%d, max=%d, timeout=%ds, host=%s",
            MIN_CONNECTIONS,
            MAX_CONNECTIONS,
            CONNECTION_TIMEOUT,
            db_config.get("host"),
        )
        return _pool


def _acquire(db_config: dict):
    """Get a pooled connection, retrying on exhaustion or connection failures."""
    last_exception: Exception | None = None

    for attempt in range(1, MAX_RETRIES + 1):
        try:
            return _get_pool(db_config).getconn()
        except (pool.PoolError, psycopg2.OperationalError) as exc:
            last_exception = exc
            if attempt < MAX_RETRIES:
                delay = RETRY_DELAY_BASE ** min(attempt, 3)
                logger.warning(
                    "Database connection failed (attempt %d/%d): %s. Retrying in %.1fs...",
                    attempt,
                    MAX_RETRIES,
                    exc,
                    delay,
                )
                time.sleep(delay)
            else:
                logger.error("Database connection failed after %d attempts: %s", MAX_RETRIES, exc)

    raise last_exception


def _is_connection_valid(conn) -> bool:
    if conn.closed:
        return False
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
        conn.rollback()
        return True
    except psycopg2.Error:
        return False


# =============================================================================
# CONTEXT MANAGER
# =============================================================================

class DatabaseConnection:
    """
    Context manager for pooled connections.

    Commits when the block exits cleanly, rolls back on error, and always
    returns the connection to the pool (broken connections are discarded).

    Usage:
        with DatabaseConnection(db_config) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM orders")
    """

    def __init__(self, db_config: dict):
        self.db_config = db_config
        self.conn = None

    def __enter__(self):
        conn = _acquire(self.db_config)
        if not _is_connection_valid(conn):
            logger.warning("Stale connection detected, replacing it")
            _get_pool(self.db_config).putconn(conn, close=True)
            conn = _acquire(self.db_config)
        self.conn = conn
        return conn

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.conn is None:
            return False

        connection_pool = _get_pool(self.db_config)
        broken = False
        try:
            if exc_type is None:
                self.conn.commit()
            else:
                self.conn.rollback()
        except psycopg2.Error as exc:
            logger.error("Error finishing transaction: %s", exc, exc_info=True)
            broken = True
        finally:
            connection_pool.putconn(self.conn, close=broken or bool(self.conn.closed))
            self.conn = None

        return False


# =============================================================================
# PUBLIC API
# =============================================================================

def get_db_connection(db_config: dict) -> DatabaseConnection:
    """
    Get a database connection context manager.

    This is the main entry point for all storage classes:
        with get_db_connection(self.db_config) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT ...")
    """
    return DatabaseConnection(db_config)


def close_all_connections() -> None:
    """Close all connections in the pool (for graceful shutdown)."""
    global _pool, _pool_config

    with _pool_lock:
        if _pool is not None:
            logger.info("Closing all database connections in pool")
            _pool.closeall()
            _pool = None
            _pool_config = None


def get_pool_stats() -> dict:
    """Basic information about the connection pool."""
    return {
        "pool_initialized": _pool is not None,
        "min_connections": MIN_CONNECTIONS,
        "max_connections": MAX_CONNECTIONS,
        "connection_timeout": CONNECTION_TIMEOUT,
        "max_retries": MAX_RETRIES,
    }
