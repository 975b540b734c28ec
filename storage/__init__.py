"""
Cloud storage module.

Contains:
- gcs: Google Cloud Storage operations
"""

from storage.gcs import GCSStorageManager, PUBLIC_GCS_ENDPOINT

__all__ = [
    "GCSStorageManager",
    "PUBLIC_GCS_ENDPOINT",
]
