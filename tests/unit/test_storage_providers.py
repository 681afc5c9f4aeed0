from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from src.app.domain.errors import StorageDownloadError, StorageError, StorageUploadError
from src.app.infra.storage.local_provider import LocalStorageProvider
from src.app.infra.storage.r2_provider import R2StorageProvider
from src.app.infra.storage.supabase_provider import SupabaseStorageProvider


class TestLocalStorageProvider:
    def test_round_trip_and_delete(self, tmp_path) -> None:
        storage = LocalStorageProvider(tmp_path)

        key = storage.upload_bytes("temp/audio/1/audio.mp3", b"mp3", "audio/mpeg")

        assert storage.download_bytes(key) == b"mp3"
        assert storage.delete_object(key) is True
        assert storage.delete_object(key) is False

    def test_missing_object(self, tmp_path) -> None:
        with pytest.raises(StorageDownloadError) as exc_info:
            LocalStorageProvider(tmp_path).download_bytes("temp/videos/1/video.mp4")
        assert exc_info.value.reason == "Object not found"

    def test_key_cannot_escape_root(self, tmp_path) -> None:
        storage = LocalStorageProvider(tmp_path / "media")

        with pytest.raises(StorageUploadError):
            storage.upload_bytes("../outside.bin", b"x", "application/octet-stream")


class TestR2StorageProvider:
    def _provider(self, client: MagicMock) -> R2StorageProvider:
        return R2StorageProvider(None, None, None, "bucket", client=client)

    def test_missing_configuration(self) -> None:
        with pytest.raises(StorageError):
            R2StorageProvider(None, None, None, None)

    def test_upload_sets_content_type(self) -> None:
        client = MagicMock()

        key = self._provider(client).upload_bytes("temp/videos/1/video.mp4", b"v", "video/mp4")

        assert key == "temp/videos/1/video.mp4"
        client.put_object.assert_called_once_with(
            Bucket="bucket", Key="temp/videos/1/video.mp4", Body=b"v", ContentType="video/mp4"
        )

    def test_missing_key_on_download(self) -> None:
        client = MagicMock()
        client.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey", "Message": "gone"}}, "GetObject")

        with pytest.raises(StorageDownloadError) as exc_info:
            self._provider(client).download_bytes("temp/x")
        assert exc_info.value.reason == "Object not found"

    def test_delete_failure_returns_false(self) -> None:
        client = MagicMock()
        client.delete_object.side_effect = ClientError({"Error": {"Code": "500", "Message": "x"}}, "DeleteObject")

        assert self._provider(client).delete_object("temp/x") is False


class TestSupabaseStorageProvider:
    def test_upload_uses_bucket_and_upsert(self) -> None:
        client = MagicMock()
        bucket = client.storage.from_.return_value

        SupabaseStorageProvider(client).upload_bytes("temp/audio/1/audio.mp3", b"a", "audio/mpeg")

        client.storage.from_.assert_called_with("video-processing")
        bucket.upload.assert_called_once_with(
            "temp/audio/1/audio.mp3", b"a", {"content-type": "audio/mpeg", "upsert": "true"}
        )

    def test_download_error_is_wrapped(self) -> None:
        client = MagicMock()
        client.storage.from_.return_value.download.side_effect = RuntimeError("404")

        with pytest.raises(StorageDownloadError):
            SupabaseStorageProvider(client).download_bytes("temp/x")

    def test_delete(self) -> None:
        client = MagicMock()
        bucket = client.storage.from_.return_value

        assert SupabaseStorageProvider(client).delete_object("temp/x") is True
        bucket.remove.assert_called_once_with(["temp/x"])
