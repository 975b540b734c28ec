"""
Database storage submodule.

Contains all runtime storage classes for database operations.
"""

from db.storage.orders import DatabaseError, OrderError, OrderStorage
from db.storage.production import ProductionStorage

__all__ = [
    "DatabaseError",
    "OrderError",
    "OrderStorage",
    "ProductionStorage",
]
