"""
Diagnostics Routes Module.

- GET /api/test-connection: SELECT 1 through the pool
- GET /api/debug: env presence, DB connectivity, cache and pool stats
- POST /api/init-db: create catalog tables if missing (admin)
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import psycopg2
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.middleware import require_admin
from api.services.file_listing import StorageConfigError, get_listing_cache, get_signed_url_cache
from db.connection_pool import get_pool_stats
from db.db_config import describe_db_env, validate_db_config
from db.schema import check_connection, initialize_schema
from db.storage.orders import DatabaseError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["diagnostics"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _signed_url_cache_stats() -> dict[str, Any]:
    try:
        return get_signed_url_cache().stats()
    except StorageConfigError as exc:
        return {"entries": 0, "error": exc.message}


async def _probe_database() -> tuple[bool, str | None]:
    valid, error = validate_db_config()
    if not valid:
        return False, error
    try:
        return await asyncio.to_thread(check_connection), None
    except psycopg2.Error as exc:
        logger.warning("Database probe failed: %s", exc)
        return False, str(exc)


@router.get("/test-connection")
async def test_connection() -> JSONResponse:
    connected, error = await _probe_database()
    if not connected:
        return JSONResponse(
            status_code=500,
            content={"status": "error", "connected": False, "message": error, "timestamp": _timestamp()},
        )
    return JSONResponse(content={"status": "success", "connected": True, "timestamp": _timestamp()})


@router.get("/debug", dependencies=[Depends(require_admin)])
async def debug_info() -> dict[str, Any]:
    connected, error = await _probe_database()
    return {
        "env": describe_db_env(),
        "database": {"connected": connected, "error": error},
        "pool": get_pool_stats(),
        "listing_cache": get_listing_cache().stats(),
        "signed_url_cache": _signed_url_cache_stats(),
        "timestamp": _timestamp(),
    }


@router.post("/init-db", dependencies=[Depends(require_admin)])
async def init_db() -> JSONResponse:
    valid, error = validate_db_config()
    if not valid:
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": error, "config": describe_db_env(), "timestamp": _timestamp()},
        )
    try:
        counts = await asyncio.to_thread(initialize_schema)
    except psycopg2.Error as exc:
        logger.error("Schema initialization failed: %s", exc, exc_info=True)
        raise DatabaseError(str(exc)) from exc

    return JSONResponse(content={"status": "success", "data": counts, "timestamp": _timestamp()})
