from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from typing import Any

from src.app.domain.errors import UploadRejectedError, ValidationError
from src.app.infra.storage.base import StorageProvider

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
}

# Max image size (5MB)
MAX_IMAGE_SIZE_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class ImageUpload:
    """An image part read from a multipart form, not yet stored."""

    filename: str
    content_type: str | None
    data: bytes


def _sanitize_filename(filename: str) -> str:
    filename = os.path.basename(filename or "image")
    filename = re.sub(r"[^a-zA-Z0-9._-]", "_", filename)
    if len(filename) > 100:
        name, ext = os.path.splitext(filename)
        filename = name[:95] + ext
    return filename or "image"


def store_image(
    storage: StorageProvider,
    user_id: str,
    filename: str,
    content_type: str | None,
    data: bytes,
) -> str:
    """
    Validate and store an uploaded image.

    Returns:
        Public URL of the stored image

    Raises:
        UploadRejectedError: If the type is not allowed or the file is empty / too large
    """
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise UploadRejectedError(
            f"Content type '{content_type}' not allowed. Allowed types: {', '.join(sorted(ALLOWED_IMAGE_TYPES))}"
        )
    if not data:
        raise UploadRejectedError("Uploaded image is empty")
    if len(data) > MAX_IMAGE_SIZE_BYTES:
        raise UploadRejectedError(f"File too large. Maximum size: {MAX_IMAGE_SIZE_BYTES // (1024 * 1024)}MB")

    object_key = storage.generate_object_key(user_id, _sanitize_filename(filename))
    return storage.put_object(object_key, data, content_type)


def decode_json_list(value: Any, field_name: str) -> Any:
    """
    Multipart forms carry array fields as JSON strings. Non-string values
    pass through untouched.
    """
    if not isinstance(value, str):
        return value
    try:
        decoded = json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"{field_name} must be a JSON-encoded array") from exc
    if not isinstance(decoded, list):
        raise ValidationError(f"{field_name} must be a JSON-encoded array")
    return decoded
