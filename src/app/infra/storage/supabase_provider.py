# src/app/infra/storage/supabase_provider.py
"""
Supabase Storage provider for temporary media.
"""
from __future__ import annotations

import logging

from supabase import Client

from src.app.domain.errors import StorageDownloadError, StorageUploadError
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "video-processing"


class SupabaseStorageProvider(StorageProvider):
    def __init__(self, client: Client, bucket_name: str = DEFAULT_BUCKET):
        self._client = client
        self.bucket_name = bucket_name

    def _bucket(self):
        return self._client.storage.from_(self.bucket_name)

    def upload_bytes(self, object_key: str, data: bytes, content_type: str) -> str:
        try:
            self._bucket().upload(
                object_key,
                data,
                {"content-type": content_type, "upsert": "true"},
            )
        except Exception as e:
            logger.error("Failed to upload to Supabase Storage: key=%s error=%s", object_key, e)
            raise StorageUploadError(object_key, str(e)) from e

        logger.info("Uploaded to Supabase Storage: key=%s, size=%d bytes", object_key, len(data))
        return object_key

    def download_bytes(self, object_key: str) -> bytes:
        try:
            return self._bucket().download(object_key)
        except Exception as e:
            logger.error("Failed to download from Supabase Storage: key=%s error=%s", object_key, e)
            raise StorageDownloadError(object_key, str(e)) from e

    def delete_object(self, object_key: str) -> bool:
        try:
            self._bucket().remove([object_key])
        except Exception as e:
            logger.error("Failed to delete from Supabase Storage: key=%s error=%s", object_key, e)
            return False
        logger.info("Deleted object from Supabase Storage: key=%s", object_key)
        return True
