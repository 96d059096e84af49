from __future__ import annotations

import logging
from pathlib import Path

from src.app.domain.errors import StorageError
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    """Writes objects below root_dir; the app serves that directory at url_prefix."""

    def __init__(self, root_dir: str | Path, url_prefix: str = "/uploads"):
        self.root_dir = Path(root_dir).resolve()
        self.url_prefix = url_prefix.rstrip("/")
        self.public_base = self.url_prefix
        self.root_dir.mkdir(parents=True, exist_ok=True)
        logger.info("LocalStorageProvider initialized: root=%s, prefix=%s", self.root_dir, self.url_prefix)

    def _path_for(self, object_key: str) -> Path:
        path = (self.root_dir / object_key).resolve()
        if not path.is_relative_to(self.root_dir):
            raise StorageError(f"Object key escapes upload directory: {object_key}")
        return path

    def put_object(self, object_key: str, data: bytes, content_type: str) -> str:
        path = self._path_for(object_key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error("Failed to write upload %s: %s", path, e)
            raise StorageError(f"Failed to store file: {e}") from e

        logger.info("Stored upload: key=%s, size=%d bytes, type=%s", object_key, len(data), content_type)
        return f"{self.url_prefix}/{object_key}"

    def delete_object(self, object_key: str) -> bool:
        path = self._path_for(object_key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error("Failed to delete upload %s: %s", path, e)
            return False
        logger.info("Deleted upload: key=%s", object_key)
        return True

    def object_exists(self, object_key: str) -> bool:
        return self._path_for(object_key).is_file()
