"""
Database Configuration Module
=============================

Centralized database configuration with support for local/prod environments.

Environment Variables:
    USE_LOCAL_DB: Set to 'true' to use local database (default: false)

    Production DB (when USE_LOCAL_DB=false):
        DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD, DB_SSLMODE

    Local DB (when USE_LOCAL_DB=true):
        LOCAL_DB_HOST, LOCAL_DB_PORT, LOCAL_DB_NAME, LOCAL_DB_USER, LOCAL_DB_PASSWORD
        (Falls back to localhost:5432/catalog_local without SSL if not set)

Usage:
    from db.db_config import get_db_config, validate_db_config

    config = get_db_config()
"""

import os
import logging
from typing import Dict

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("host", "database", "user", "password")


def is_local_db() -> bool:
    """True if USE_LOCAL_DB is set to 'true', '1', or 'yes'."""
    return os.getenv("USE_LOCAL_DB", "false").lower() in ("true", "1", "yes")


def _get_prod_db_config() -> Dict[str, str | int | None]:
    return {
        "host": os.getenv("DB_HOST"),
        "port": int(os.getenv("DB_PORT", "5432")),
        "database": os.getenv("DB_NAME"),
        "user": os.getenv("DB_USER"),
        "password": os.getenv("DB_PASSWORD"),
        # Managed Postgres hosts require TLS but ship self-signed chains.
        "sslmode": os.getenv("DB_SSLMODE", "require"),
    }


def _get_local_db_config() -> Dict[str, str | int | None]:
    return {
        "host": os.getenv("LOCAL_DB_HOST", "localhost"),
        "port": int(os.getenv("LOCAL_DB_PORT", "5432")),
        "database": os.getenv("LOCAL_DB_NAME", "catalog_local"),
        "user": os.getenv("LOCAL_DB_USER", "postgres"),
        "password": os.getenv("LOCAL_DB_PASSWORD", "postgres"),
        "sslmode": os.getenv("LOCAL_DB_SSLMODE", "disable"),
    }


def get_db_config() -> Dict[str, str | int | None]:
    """
    Get the active database configuration based on USE_LOCAL_DB.

    Returns:
        Database configuration dict with host, port, database, user, password, sslmode
    """
    if is_local_db():
        config = _get_local_db_config()
        logger.debug("Using LOCAL database: %s:%s/%s", config["host"], config["port"], config["database"])
    else:
        config = _get_prod_db_config()
        logger.debug("Using PRODUCTION database: %s:%s/%s", config["host"], config["port"], config["database"])
    return config


def validate_db_config() -> tuple[bool, str]:
    """
    Validate that required database configuration is present.

    Returns:
        Tuple of (is_valid, error_message)
    """
    config = get_db_config()
    missing = [key for key in REQUIRED_KEYS if not config.get(key)]

    if missing:
        db_type = "LOCAL" if is_local_db() else "PRODUCTION"
        prefix = "LOCAL_" if is_local_db() else ""
        names = {"database": "NAME"}
        missing_vars = [f"{prefix}DB_{names.get(k, k.upper())}" for k in missing]
        return False, f"{db_type} database config missing: {', '.join(missing_vars)}"

    return True, ""


def describe_db_env() -> Dict[str, bool]:
    """Which DB_* variables are set (values are never exposed)."""
    return {name: bool(os.getenv(name)) for name in ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD")}
