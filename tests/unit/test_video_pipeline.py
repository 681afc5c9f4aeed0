from __future__ import annotations

import asyncio

import httpx
import pytest

from src.app.domain.errors import MediaProcessingError, MediaTooLargeError
from src.app.infra.storage.local_provider import LocalStorageProvider
from src.app.services.video_pipeline import VideoPipeline

VIDEO_URL = "https://cdn.example.com/video.mp4"
ONE_MB = 1024 * 1024


class DeletingStorageStub:
    def __init__(self, failing: tuple[str, ...] = (), missing: tuple[str, ...] = ()) -> None:
        self.deleted: list[str] = []
        self.failing = failing
        self.missing = missing

    def delete_object(self, object_key: str) -> bool:
        self.deleted.append(object_key)
        if object_key in self.failing:
            raise RuntimeError("bucket offline")
        return object_key not in self.missing


def _pipeline(storage, handler=None, **kwargs) -> VideoPipeline:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler)) if handler else None
    return VideoPipeline(storage, http_client=client, **kwargs)


class TestValidateDuration:
    def test_limit_is_inclusive(self, tmp_path) -> None:
        pipeline = VideoPipeline(LocalStorageProvider(tmp_path))

        assert pipeline.validate_duration(300).valid is True
        assert pipeline.validate_duration(12.5).valid is True

    def test_over_limit(self, tmp_path) -> None:
        pipeline = VideoPipeline(LocalStorageProvider(tmp_path))

        check = pipeline.validate_duration(400)

        assert check.valid is False
        assert check.error == "Video duration 400s exceeds maximum allowed 300s"

    def test_custom_limit(self, tmp_path) -> None:
        pipeline = VideoPipeline(LocalStorageProvider(tmp_path), max_duration_seconds=60)
        assert pipeline.validate_duration(60.5).valid is False


class TestDownload:
    def test_stores_video_under_temp_prefix(self, tmp_path) -> None:
        storage = LocalStorageProvider(tmp_path)
        pipeline = _pipeline(storage, lambda request: httpx.Response(200, content=b"fake-video"))

        result = asyncio.run(pipeline.download(VIDEO_URL))

        assert result.error is None
        assert result.size_bytes == len(b"fake-video")
        assert result.path.startswith("temp/videos/")
        assert result.path.endswith("/video.mp4")
        assert storage.download_bytes(result.path) == b"fake-video"

    def test_rejects_declared_size_over_limit(self, tmp_path) -> None:
        storage = LocalStorageProvider(tmp_path)
        body = b"x" * (ONE_MB + 10)
        pipeline = _pipeline(storage, lambda request: httpx.Response(200, content=body), max_size_mb=1)

        result = asyncio.run(pipeline.download(VIDEO_URL))

        assert result.path is None
        assert isinstance(result.error, MediaTooLargeError)
        assert "(max: 1MB)" in str(result.error)
        assert not (tmp_path / "temp").exists()

    def test_rejects_while_streaming_without_content_length(self, tmp_path) -> None:
        storage = LocalStorageProvider(tmp_path)

        async def chunks():
            for _ in range(3):
                yield b"x" * (ONE_MB // 2)

        pipeline = _pipeline(storage, lambda request: httpx.Response(200, content=chunks()), max_size_mb=1)

        result = asyncio.run(pipeline.download(VIDEO_URL))

        assert isinstance(result.error, MediaTooLargeError)
        assert not (tmp_path / "temp").exists()

    def test_http_error_is_returned(self, tmp_path) -> None:
        pipeline = _pipeline(LocalStorageProvider(tmp_path), lambda request: httpx.Response(403))

        result = asyncio.run(pipeline.download(VIDEO_URL))

        assert result.path is None
        assert isinstance(result.error, httpx.HTTPStatusError)

    def test_too_large_message(self) -> None:
        error = MediaTooLargeError(150 * ONE_MB, 100 * ONE_MB)
        assert str(error) == "Video file too large: 150.00MB (max: 100MB)"


class TestProbe:
    def test_missing_ffprobe_is_reported(self, tmp_path) -> None:
        pipeline = VideoPipeline(LocalStorageProvider(tmp_path), ffprobe_bin="ffprobe-not-installed-here")

        result = asyncio.run(pipeline.get_duration(b"data"))

        assert result.seconds == 0.0
        assert isinstance(result.error, MediaProcessingError)
        assert result.error.tool == "ffprobe"

    def test_missing_ffmpeg_is_reported(self, tmp_path) -> None:
        pipeline = VideoPipeline(LocalStorageProvider(tmp_path), ffmpeg_bin="ffmpeg-not-installed-here")

        result = asyncio.run(pipeline.extract_audio(b"data", pipeline.audio_destination()))

        assert result.path is None
        assert isinstance(result.error, MediaProcessingError)


class TestCleanup:
    def test_one_delete_per_path(self) -> None:
        storage = DeletingStorageStub()
        pipeline = VideoPipeline(storage)

        asyncio.run(pipeline.cleanup(["temp/videos/1/video.mp4", "temp/audio/1/audio.mp3"]))

        assert storage.deleted == ["temp/videos/1/video.mp4", "temp/audio/1/audio.mp3"]

    def test_failures_never_raise(self) -> None:
        storage = DeletingStorageStub(failing=("a",), missing=("b",))
        pipeline = VideoPipeline(storage)

        asyncio.run(pipeline.cleanup(["a", "b", "c"]))

        assert storage.deleted == ["a", "b", "c"]

    def test_local_files_are_removed(self, tmp_path) -> None:
        storage = LocalStorageProvider(tmp_path)
        key = storage.upload_bytes("temp/videos/1/video.mp4", b"v", "video/mp4")
        pipeline = VideoPipeline(storage)

        asyncio.run(pipeline.cleanup([key]))

        assert storage.exists(key) is False


@pytest.mark.parametrize("kind,filename", [("videos", "video.mp4"), ("audio", "my audio?.mp3")])
def test_object_keys(tmp_path, kind: str, filename: str) -> None:
    key = LocalStorageProvider(tmp_path).generate_object_key(kind, filename)
    prefix, key_kind, stamp, name = key.split("/")

    assert prefix == "temp"
    assert key_kind == kind
    assert stamp.isdigit()
    assert "/" not in name and "?" not in name and " " not in name
