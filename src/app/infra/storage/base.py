# src/app/infra/storage/base.py
"""
Abstract base class for image storage providers.
This interface allows easy swapping between storage backends (local disk, R2, ...)
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4


class StorageProvider(ABC):
    """
    Abstract interface for uploaded image storage.

    Implementations:
    - LocalStorageProvider: files under UPLOAD_DIR, served at /uploads
    - R2StorageProvider: Cloudflare R2 (S3-compatible)
    """

    # URL prefix that put_object prepends to object keys
    public_base: str = ""

    @abstractmethod
    def put_object(
        self,
        object_key: str,
        data: bytes,
        content_type: str,
    ) -> str:
        """
        Store an object.

        Args:
            object_key: The key/path where the object will be stored
            data: Raw bytes
            content_type: MIME type of the content (e.g., "image/png")

        Returns:
            Public URL of the stored object
        """
        pass

    @abstractmethod
    def delete_object(self, object_key: str) -> bool:
        """
        Delete an object from storage.

        Returns:
            True if deletion was successful
        """
        pass

    @abstractmethod
    def object_exists(self, object_key: str) -> bool:
        pass

    def key_for_url(self, url: Optional[str], prefix: str = "recipes") -> Optional[str]:
        """
        Object key behind a URL returned by put_object, or None when the URL
        does not point at an upload under `prefix` (external links, placeholders).
        """
        base = f"{self.public_base}/"
        if not url or not url.startswith(base):
            return None
        key = url[len(base):]
        return key if key.startswith(f"{prefix}/") else None

    def generate_object_key(
        self,
        user_id: str,
        filename: str,
        prefix: str = "recipes",
    ) -> str:
        """
        Generate a standardized object key for an uploaded image.

        Format: {prefix}/{user_id}/{YYYY}/{MM}/{uuid}_{filename}
        """
        now = datetime.now(timezone.utc)
        safe_filename = re.sub(r"[^a-zA-Z0-9._-]", "_", filename)
        unique_id = uuid4().hex[:8]
        return f"{prefix}/{user_id}/{now:%Y}/{now:%m}/{unique_id}_{safe_filename}"
