# src/app/services/transcription_pipeline.py
"""
Local speech-to-text backend built on faster-whisper.
The model is an optional extra and is loaded lazily on first use.
"""
from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from starlette.concurrency import run_in_threadpool

from src.app.domain.errors import InvalidMediaError
from src.services.errors import TranscriptionServiceError
from src.services.transcribe import SpeechToTextBackend

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from faster_whisper import WhisperModel
else:
    WhisperModel = "WhisperModel"  # type: ignore


def _detect_device(preference: str) -> tuple[str, str]:
    """
    Detect the best device and compute_type for the environment.

    Returns:
        Tuple of (device, compute_type)
    """
    if preference == "cuda":
        return "cuda", "float16"
    if preference == "cpu":
        return "cpu", "int8"

    try:
        import ctranslate2
        if "float16" in ctranslate2.get_supported_compute_types("cuda"):
            logger.info("CUDA detected via ctranslate2, using GPU with float16")
            return "cuda", "float16"
    except Exception as exc:
        logger.debug("Error detecting CUDA via ctranslate2: %s", exc)

    logger.info("GPU not available, using CPU with int8 (quantized)")
    return "cpu", "int8"


class WhisperSpeechToTextBackend(SpeechToTextBackend):
    """
    Runs faster-whisper in the API process.

    This backend trades latency for not depending on a remote
    speech-to-text service.
    """

    name = "whisper"

    def __init__(
        self,
        model_name: str = "medium",
        device: str = "auto",
        beam_size: int = 5,
        language: Optional[str] = None,
    ):
        self.model_name = model_name
        self.device = device
        self.beam_size = beam_size
        self.language = language
        self._model: Optional["WhisperModel"] = None

    def _get_model(self) -> "WhisperModel":
        if self._model is not None:
            return self._model

        try:
            from faster_whisper import WhisperModel as _WhisperModel
        except ImportError as exc:
            raise TranscriptionServiceError(
                "Optional 'faster-whisper' library not installed. Install the 'whisper' extra."
            ) from exc

        device, compute_type = _detect_device(self.device)
        logger.info(
            "Initializing faster-whisper: model=%s, device=%s, compute_type=%s",
            self.model_name,
            device,
            compute_type,
        )
        self._model = _WhisperModel(
            self.model_name,
            device=device,
            compute_type=compute_type,
            num_workers=2,
        )
        return self._model

    async def transcribe(self, audio: bytes, filename: str = "audio.mp3") -> Optional[str]:
        return await run_in_threadpool(self._transcribe_bytes, audio, filename)

    def _transcribe_bytes(self, audio: bytes, filename: str) -> Optional[str]:
        with tempfile.TemporaryDirectory(prefix="whisper-") as workdir:
            media_path = Path(workdir) / filename
            media_path.write_bytes(audio)
            return self.transcribe_file(media_path)

    def transcribe_file(self, media_path: Path) -> Optional[str]:
        """
        Transcribe an audio/video file.

        Args:
            media_path: Path to the media file

        Returns:
            The joined segment text, or None if nothing was recognized

        Raises:
            TranscriptionServiceError: If transcription fails
            InvalidMediaError: If the file does not exist
        """
        if not media_path.exists():
            raise InvalidMediaError(f"Media file not found: {media_path}")

        model = self._get_model()
        try:
            segments_iter, info = model.transcribe(
                str(media_path),
                language=self.language,
                # VAD (Voice Activity Detection) - skip silences
                vad_filter=True,
                vad_parameters=dict(
                    min_silence_duration_ms=500,
                    speech_pad_ms=200,
                ),
                beam_size=self.beam_size,
                condition_on_previous_text=False,
                word_timestamps=False,
            )
            text_parts = [seg.text.strip() for seg in segments_iter if seg.text.strip()]
        except Exception as e:
            logger.error("Transcription failed: %s", e)
            raise TranscriptionServiceError(f"Transcription failed: {e}") from e

        full_text = " ".join(text_parts).strip()
        logger.info(
            "Transcription complete: duration=%.1fs, segments=%d, chars=%d, language=%s",
            getattr(info, "duration", 0) or 0,
            len(text_parts),
            len(full_text),
            getattr(info, "language", self.language),
        )
        return full_text or None
