# src/app/services/video_pipeline.py
"""
Video download, probing and audio extraction for the enrichment stage.

Media never stays on local disk beyond a single call: every ffmpeg/ffprobe
run works on a scoped temporary directory, and the persisted copies live in
object storage under temp/ until cleanup() removes them.
"""
from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Iterable, Optional

import httpx
from starlette.concurrency import run_in_threadpool

from src.app.domain.errors import InvalidMediaError, MediaProcessingError, MediaTooLargeError
from src.app.domain.models import AudioResult, DownloadResult, DurationCheck, DurationResult
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_MB = 100
DEFAULT_DOWNLOAD_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_DURATION_SECONDS = 300
FFPROBE_TIMEOUT_SECONDS = 30
FFMPEG_TIMEOUT_SECONDS = 300

VIDEO_CONTENT_TYPE = "video/mp4"
AUDIO_CONTENT_TYPE = "audio/mpeg"


def _format_seconds(seconds: float) -> str:
    return f"{seconds:g}"


class VideoPipeline:
    def __init__(
        self,
        storage: StorageProvider,
        http_client: Optional[httpx.AsyncClient] = None,
        max_size_mb: int = DEFAULT_MAX_SIZE_MB,
        download_timeout_seconds: float = DEFAULT_DOWNLOAD_TIMEOUT_SECONDS,
        max_duration_seconds: int = DEFAULT_MAX_DURATION_SECONDS,
        ffprobe_bin: str = "ffprobe",
        ffmpeg_bin: str = "ffmpeg",
    ):
        self.storage = storage
        self._http_client = http_client
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self.download_timeout_seconds = download_timeout_seconds
        self.max_duration_seconds = max_duration_seconds
        self.ffprobe_bin = ffprobe_bin
        self.ffmpeg_bin = ffmpeg_bin

    async def download(self, video_url: str) -> DownloadResult:
        """
        Stream the video into memory, aborting as soon as the size limit is
        crossed, then store it under temp/videos/.

        Returns:
            DownloadResult with the storage key, or with error set
        """
        try:
            data = await self._fetch_limited(video_url)
            object_key = self.storage.generate_object_key("videos", "video.mp4")
            path = await run_in_threadpool(self.storage.upload_bytes, object_key, data, VIDEO_CONTENT_TYPE)
        except Exception as error:
            logger.warning("Video download failed: url=%s error=%s", video_url, error)
            return DownloadResult(path=None, size_bytes=0, error=error)

        logger.info("Video stored: key=%s, size=%d bytes", path, len(data))
        return DownloadResult(path=path, size_bytes=len(data))

    async def _fetch_limited(self, video_url: str) -> bytes:
        if self._http_client is not None:
            return await self._stream(self._http_client, video_url)
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await self._stream(client, video_url)

    async def _stream(self, client: httpx.AsyncClient, video_url: str) -> bytes:
        async with client.stream("GET", video_url, timeout=self.download_timeout_seconds) as response:
            response.raise_for_status()

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > self.max_size_bytes:
                raise MediaTooLargeError(int(declared), self.max_size_bytes)

            buffer = bytearray()
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if len(buffer) > self.max_size_bytes:
                    raise MediaTooLargeError(len(buffer), self.max_size_bytes)
        return bytes(buffer)

    async def load(self, object_key: str) -> bytes:
        return await run_in_threadpool(self.storage.download_bytes, object_key)

    async def get_duration(self, data: bytes) -> DurationResult:
        try:
            seconds = await run_in_threadpool(self._probe_duration, data)
        except Exception as error:
            logger.warning("Duration check failed: %s", error)
            return DurationResult(seconds=0.0, error=error)
        return DurationResult(seconds=seconds)

    def _probe_duration(self, data: bytes) -> float:
        with tempfile.TemporaryDirectory(prefix="probe-") as workdir:
            video_path = Path(workdir) / "video.mp4"
            video_path.write_bytes(data)
            try:
                result = subprocess.run(
                    [
                        self.ffprobe_bin,
                        "-v",
                        "error",
                        "-show_entries",
                        "format=duration",
                        "-of",
                        "default=noprint_wrappers=1:nokey=1",
                        str(video_path),
                    ],
                    capture_output=True,
                    text=True,
                    check=True,
                    timeout=FFPROBE_TIMEOUT_SECONDS,
                )
            except subprocess.CalledProcessError as error:
                raise MediaProcessingError("ffprobe", (error.stderr or "").strip() or str(error)) from error
            except (FileNotFoundError, subprocess.TimeoutExpired) as error:
                raise MediaProcessingError("ffprobe", str(error)) from error

        try:
            return float(result.stdout.strip())
        except ValueError as error:
            raise InvalidMediaError(f"Could not read video duration: {result.stdout.strip()!r}") from error

    def validate_duration(self, seconds: float) -> DurationCheck:
        # o limite e inclusivo
        if seconds > self.max_duration_seconds:
            return DurationCheck(
                valid=False,
                error=(
                    f"Video duration {_format_seconds(seconds)}s exceeds maximum allowed "
                    f"{self.max_duration_seconds}s"
                ),
            )
        return DurationCheck(valid=True)

    async def extract_audio(self, data: bytes, destination: str) -> AudioResult:
        """Transcode to 128k MP3 and store the result at destination."""
        try:
            audio = await run_in_threadpool(self._transcode_audio, data)
            path = await run_in_threadpool(self.storage.upload_bytes, destination, audio, AUDIO_CONTENT_TYPE)
        except Exception as error:
            logger.warning("Audio extraction failed: %s", error)
            return AudioResult(path=None, error=error)
        return AudioResult(path=path)

    def _transcode_audio(self, data: bytes) -> bytes:
        with tempfile.TemporaryDirectory(prefix="audio-") as workdir:
            video_path = Path(workdir) / "video.mp4"
            audio_path = Path(workdir) / "audio.mp3"
            video_path.write_bytes(data)
            try:
                subprocess.run(
                    [
                        self.ffmpeg_bin,
                        "-y",
                        "-i",
                        str(video_path),
                        "-vn",
                        "-acodec",
                        "libmp3lame",
                        "-b:a",
                        "128k",
                        str(audio_path),
                    ],
                    capture_output=True,
                    check=True,
                    timeout=FFMPEG_TIMEOUT_SECONDS,
                )
            except subprocess.CalledProcessError as error:
                stderr = error.stderr.decode("utf-8", "replace") if error.stderr else ""
                raise MediaProcessingError("ffmpeg", stderr.strip()[-500:] or str(error)) from error
            except (FileNotFoundError, subprocess.TimeoutExpired) as error:
                raise MediaProcessingError("ffmpeg", str(error)) from error
            return audio_path.read_bytes()

    def audio_destination(self) -> str:
        return self.storage.generate_object_key("audio", "audio.mp3")

    async def cleanup(self, paths: Iterable[str]) -> None:
        """One delete per path. Failures are logged, never raised."""
        for path in paths:
            try:
                deleted = await run_in_threadpool(self.storage.delete_object, path)
            except Exception as error:
                logger.warning("Cleanup failed: key=%s error=%s", path, error)
                continue
            if not deleted:
                logger.warning("Cleanup did not delete: key=%s", path)
