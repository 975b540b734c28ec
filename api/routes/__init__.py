"""
API Routes Module.

Contains route handlers:
- files: Catalog file tree (/api/files)
- catalog: Storefront views (/api/public-catalog, /api/images, /api/download)
- orders: Order CRUD (/api/orders)
- production_history: Production batches (/api/production-history)
- auth: Admin session (/api/auth/*)
- diagnostics: Connection checks and schema bootstrap
"""

from .files import router as files_router
from .catalog import router as catalog_router
from .orders import router as orders_router
from .production_history import router as production_history_router
from .auth import router as auth_router
from .diagnostics import router as diagnostics_router

__all__ = [
    "files_router",
    "catalog_router",
    "orders_router",
    "production_history_router",
    "auth_router",
    "diagnostics_router",
]
