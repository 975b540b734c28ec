"""
Google Cloud Storage access for the image catalog.

Handles:
1. Listing object keys under a prefix
2. Reading, writing, copying and deleting objects
3. Generating signed URLs (and public URLs as a fallback)

Methods are synchronous; async callers run them through asyncio.to_thread.
Errors from the SDK are logged and re-raised for the caller to report.
"""

import logging
import os
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv
from google.cloud import storage
from google.oauth2 import service_account

load_dotenv()

logger = logging.getLogger(__name__)

PUBLIC_GCS_ENDPOINT = "https://storage.googleapis.com"


class GCSStorageManager:
    """Manages Google Cloud Storage operations for catalog objects"""

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        credentials_path: Optional[str] = None,
        project_id: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        """
        Initialize GCS Storage Manager

        Args:
            bucket_name: GCS bucket name (defaults to env var GCS_BUCKET)
            credentials_path: Path to service account JSON; application
                default credentials are used when unset
            project_id: GCP project ID
            public_base_url: Base URL used for unsigned public links
        """
        self.bucket_name = bucket_name or os.getenv("GCS_BUCKET")
        self.credentials_path = credentials_path or os.getenv("GCS_CREDENTIALS_JSON")
        self.project_id = project_id or os.getenv("GCS_PROJECT_ID")
        self.public_base_url = (public_base_url or os.getenv("PUBLIC_BASE_URL") or "").rstrip("/")

        if not self.bucket_name:
            raise ValueError("GCS_BUCKET not configured")

        self.credentials = None
        if self.credentials_path:
            if not os.path.exists(self.credentials_path):
                raise ValueError(f"GCS credentials not found at: {self.credentials_path}")
            self.credentials = service_account.Credentials.from_service_account_file(
                self.credentials_path
            )

        self.client = storage.Client(
            credentials=self.credentials,
            project=self.project_id
        )
        self.bucket = self.client.bucket(self.bucket_name)

        logger.info(
            "GCS Storage Manager initialized: bucket=%s, project=%s, credentials=%s",
            self.bucket_name,
            self.project_id,
            "service-account" if self.credentials else "default",
        )

    def get_gs_url(self, object_key: str) -> str:
        """Get gs:// URL for an object"""
        return f"gs://{self.bucket_name}/{object_key}"

    def get_public_url(self, object_key: str) -> str:
        """Best-effort unsigned URL for an object"""
        if self.public_base_url:
            return f"{self.public_base_url}/{object_key}"
        return f"{PUBLIC_GCS_ENDPOINT}/{self.bucket_name}/{object_key}"

    def list_keys(self, prefix: str) -> list[str]:
        """List every object key under a prefix (all pages)"""
        try:
            keys = [blob.name for blob in self.client.list_blobs(self.bucket_name, prefix=prefix)]
        except Exception as exc:
            logger.error("Failed to list objects under %s: %s", prefix, exc, exc_info=True)
            raise
        logger.debug("Listed %d objects with prefix: %s", len(keys), prefix)
        return keys

    def exists(self, object_key: str) -> bool:
        return self.bucket.blob(object_key).exists()

    def upload_bytes(
        self,
        object_key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> str:
        """Upload bytes to an object and return its gs:// URL"""
        blob = self.bucket.blob(object_key)
        if metadata:
            blob.metadata = metadata
        try:
            blob.upload_from_string(data, content_type=content_type)
        except Exception as exc:
            logger.error("Failed to upload %s: %s", object_key, exc, exc_info=True)
            raise

        gs_url = self.get_gs_url(object_key)
        logger.info("Uploaded object to GCS: %s (size: %d bytes)", gs_url, len(data))
        return gs_url

    def download_bytes(self, object_key: str) -> bytes:
        return self.bucket.blob(object_key).download_as_bytes()

    def copy(self, source_key: str, target_key: str) -> None:
        """Server-side copy of one object to a new key"""
        source = self.bucket.blob(source_key)
        self.bucket.copy_blob(source, self.bucket, target_key)
        logger.debug("Copied %s -> %s", source_key, target_key)

    def delete(self, object_key: str) -> None:
        """Delete a single object"""
        try:
            self.bucket.blob(object_key).delete()
        except Exception as exc:
            logger.error("Failed to delete %s: %s", object_key, exc, exc_info=True)
            raise
        logger.info("Deleted object from GCS: %s", object_key)

    def generate_signed_url(self, object_key: str, expiration: timedelta) -> str:
        """Generate a V4 signed GET URL for an object"""
        blob = self.bucket.blob(object_key)
        url = blob.generate_signed_url(
            version="v4",
            expiration=expiration,
            method="GET",
            credentials=self.credentials,
        )
        logger.debug(
            "Generated signed URL for %s (expires in %s)",
            object_key,
            expiration,
        )
        return url


__all__ = ["GCSStorageManager", "PUBLIC_GCS_ENDPOINT"]
