# src/app/infra/storage/local_provider.py
"""
Local directory storage provider. Used in development and tests.
"""
from __future__ import annotations

import logging
from pathlib import Path

from src.app.domain.errors import StorageDownloadError, StorageUploadError
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, object_key: str) -> Path:
        path = (self.root / object_key).resolve()
        # nao deixa a chave escapar do diretorio raiz
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Object key escapes storage root: {object_key}")
        return path

    def upload_bytes(self, object_key: str, data: bytes, content_type: str) -> str:
        try:
            path = self._path_for(object_key)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except (OSError, ValueError) as e:
            raise StorageUploadError(object_key, str(e)) from e
        logger.debug("Stored locally: key=%s, size=%d bytes", object_key, len(data))
        return object_key

    def download_bytes(self, object_key: str) -> bytes:
        try:
            return self._path_for(object_key).read_bytes()
        except FileNotFoundError as e:
            raise StorageDownloadError(object_key, "Object not found") from e
        except (OSError, ValueError) as e:
            raise StorageDownloadError(object_key, str(e)) from e

    def delete_object(self, object_key: str) -> bool:
        try:
            self._path_for(object_key).unlink()
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as e:
            logger.error("Failed to delete local object: key=%s error=%s", object_key, e)
            return False
        return True

    def exists(self, object_key: str) -> bool:
        return self._path_for(object_key).exists()
