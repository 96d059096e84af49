# src/app/infra/storage/r2_provider.py
"""
Recipe images on Cloudflare R2, through the S3 API.
"""
from __future__ import annotations

import logging
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from src.app.domain.errors import StorageError
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)

_MISSING_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", "Unknown"))


class R2StorageProvider(StorageProvider):
    """
    Objects are served from public_url (public bucket or custom domain),
    so put_object returns a URL that clients can load directly.
    """

    def __init__(
        self,
        account_id: Optional[str],
        access_key_id: Optional[str],
        secret_access_key: Optional[str],
        bucket_name: Optional[str],
        public_url: Optional[str],
        client=None,
    ):
        settings = {
            "R2_ACCOUNT_ID": account_id,
            "R2_ACCESS_KEY_ID": access_key_id,
            "R2_SECRET_ACCESS_KEY": secret_access_key,
            "R2_BUCKET_NAME": bucket_name,
            "R2_PUBLIC_URL": public_url,
        }
        missing = [name for name, value in settings.items() if not value]
        if missing:
            raise StorageError(f"Missing R2 configuration: {', '.join(missing)}")

        self.bucket_name = bucket_name
        self.public_url = str(public_url).rstrip("/")
        self.public_base = self.public_url
        self.endpoint_url = f"https://{account_id}.r2.cloudflarestorage.com"
        self._client = client or boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name="auto",
            config=Config(signature_version="s3v4", retries={"max_attempts": 3, "mode": "adaptive"}),
        )
        logger.info("R2 image storage ready: bucket=%s", self.bucket_name)

    def put_object(self, object_key: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(Bucket=self.bucket_name, Key=object_key, Body=data, ContentType=content_type)
        except ClientError as e:
            logger.error("R2 upload failed: key=%s, code=%s", object_key, _error_code(e))
            raise StorageError(f"Failed to upload image: {e}") from e

        logger.info("Image uploaded to R2: key=%s, size=%d bytes", object_key, len(data))
        return f"{self.public_url}/{object_key}"

    def delete_object(self, object_key: str) -> bool:
        try:
            self._client.delete_object(Bucket=self.bucket_name, Key=object_key)
        except ClientError as e:
            logger.error("R2 delete failed: key=%s, code=%s", object_key, _error_code(e))
            return False
        logger.info("Image deleted from R2: key=%s", object_key)
        return True

    def object_exists(self, object_key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket_name, Key=object_key)
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return False
            raise StorageError(f"Failed to check image {object_key}: {e}") from e
        return True
