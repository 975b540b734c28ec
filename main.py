"""
Main Entry Point - FastAPI Application.

This file contains:
- FastAPI app initialization
- Route mounting from api/routes/
- Middleware setup from api/middleware.py
- Error handlers for service, order and auth errors
- Health check endpoints

NO BUSINESS LOGIC - just wiring and setup.

Usage:
    uvicorn main:app --reload
    python main.py
"""

import os
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

# Load environment variables with explicit path (works when run from any directory)
_env_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env")
load_dotenv(_env_path)

# ============================================================================
# NON-BLOCKING LOGGING SETUP (MUST BE BEFORE OTHER IMPORTS)
# ============================================================================
from utils.logger_config import configure_non_blocking_logging, stop_logging

_log_listener = configure_non_blocking_logging(level=os.getenv("LOG_LEVEL"))

# Import routes
from api.routes import (
    files_router,
    catalog_router,
    orders_router,
    production_history_router,
    auth_router,
    diagnostics_router,
)

# Import middleware setup
from api.middleware import setup_middlewares, setup_request_logging
from api.services.file_listing import FileServiceError
from auth.admin import AdminAuthError
from db.connection_pool import close_all_connections
from db.storage.orders import DatabaseError, OrderError

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


# =============================================================================
# LIFESPAN EVENTS
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Catalog API starting up...")
    yield
    logger.info("Catalog API shutting down...")
    close_all_connections()
    stop_logging()


# =============================================================================
# FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="Catalog Storefront API",
    description="Image catalog backed by a storage bucket, with orders and production history",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Setup middlewares (CORS, request logging)
setup_middlewares(app)
setup_request_logging(app)


# =============================================================================
# ROUTES
# =============================================================================

# Catalog file tree (router has /api/files prefix)
app.include_router(files_router, tags=["Files"])

# Storefront views (public catalog, image lookup, order download)
app.include_router(catalog_router, tags=["Catalog"])

# Orders (router has /api/orders prefix)
app.include_router(orders_router, tags=["Orders"])

# Production history (router has /api/production-history prefix)
app.include_router(production_history_router, tags=["Production History"])

# Admin session (router has /api/auth prefix)
app.include_router(auth_router, tags=["Auth"])

# Connection checks and schema bootstrap
app.include_router(diagnostics_router, tags=["Diagnostics"])


# =============================================================================
# HEALTH CHECK
# =============================================================================

@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint - health check."""
    return {"status": "ok", "version": APP_VERSION, "service": "catalog-api"}


@app.get("/healthz", include_in_schema=False)
async def healthz():
    """Kubernetes liveness probe."""
    return {"status": "healthy"}


@app.get("/readyz", include_in_schema=False)
async def readyz():
    """Kubernetes readiness probe."""
    return {"status": "ready"}


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(FileServiceError)
async def file_service_exception_handler(request: Request, exc: FileServiceError):
    if exc.status_code >= 500:
        logger.error("File operation failed on %s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(OrderError)
async def order_exception_handler(request: Request, exc: OrderError):
    logger.info("Order request rejected (%d): %s", exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(DatabaseError)
async def database_exception_handler(request: Request, exc: DatabaseError):
    return JSONResponse(
        status_code=500,
        content={"error": "Database error", "message": str(exc)},
    )


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())[1:]) or "request"
        parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    message = _describe_validation_errors(exc)
    logger.info("Invalid request %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": "Invalid request", "message": message})


@app.exception_handler(AdminAuthError)
async def auth_exception_handler(request: Request, exc: AdminAuthError):
    return JSONResponse(status_code=401, content={"error": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc)},
    )


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # Suppress health check access logs
    class _HealthCheckFilter(logging.Filter):
        _SUPPRESSED = {"/healthz", "/readyz", "/"}

        def filter(self, record: logging.LogRecord) -> bool:
            msg = record.getMessage()
            return not any(f'"{path} ' in msg or f" {path} " in msg for path in self._SUPPRESSED)

    logging.getLogger("uvicorn.access").addFilter(_HealthCheckFilter())

    port = int(os.getenv("PORT", "8000"))
    workers = int(os.getenv("UVICORN_WORKERS", "1"))

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        workers=workers,
        log_level=os.getenv("UVICORN_LOG_LEVEL", "info").lower(),
    )
