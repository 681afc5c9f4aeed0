# src/app/infra/storage/base.py
"""
Abstract base class for storage providers.
This interface allows easy swapping between different storage backends
(Supabase Storage, R2, local directory) for temporary media.
"""
from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod


class StorageProvider(ABC):
    """
    Abstract interface for object storage operations.

    Implementations:
    - SupabaseStorageProvider: Supabase Storage bucket
    - R2StorageProvider: Cloudflare R2 (S3-compatible)
    - LocalStorageProvider: Local directory (dev and tests)
    """

    @abstractmethod
    def upload_bytes(
        self,
        object_key: str,
        data: bytes,
        content_type: str,
    ) -> str:
        """
        Store an object, overwriting any existing object at the same key.

        Args:
            object_key: The key/path where the object will be stored
            data: Raw object content
            content_type: MIME type of the content (e.g., "audio/mpeg")

        Returns:
            The key the object was stored under

        Raises:
            StorageUploadError: If the backend rejects the upload
        """
        pass

    @abstractmethod
    def download_bytes(self, object_key: str) -> bytes:
        """
        Read an object fully into memory.

        Args:
            object_key: The key/path of the object in storage

        Returns:
            The object content

        Raises:
            StorageDownloadError: If the object is missing or unreadable
        """
        pass

    @abstractmethod
    def delete_object(self, object_key: str) -> bool:
        """
        Delete an object from storage.

        Args:
            object_key: The key/path of the object to delete

        Returns:
            True if deletion was successful
        """
        pass

    def generate_object_key(
        self,
        kind: str,
        filename: str,
        prefix: str = "temp",
    ) -> str:
        """
        Generate a standardized object key for temporary media.

        Format: {prefix}/{kind}/{epoch_ms}/{filename}

        Args:
            kind: Media family, e.g. "videos" or "audio"
            filename: Target filename
            prefix: Path prefix (default: "temp")

        Returns:
            The generated object key
        """
        timestamp = int(time.time() * 1000)
        safe_filename = re.sub(r"[^a-zA-Z0-9._-]", "_", filename)
        return f"{prefix}/{kind}/{timestamp}/{safe_filename}"
