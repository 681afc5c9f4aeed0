from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from starlette.concurrency import run_in_threadpool

from src.app.domain.models import TranscriptionOutcome
from src.app.infra.cache.base import TranscriptCache
from src.app.infra.cache.memory import InMemoryTranscriptCache
from src.app.infra.storage.base import StorageProvider

from .errors import TranscriptionServiceError

logger = logging.getLogger(__name__)

DEFAULT_STT_URL = "https://api.groq.com/openai/v1/audio/transcriptions"
DEFAULT_STT_MODEL = "whisper-large-v3-turbo"
DEFAULT_STT_TIMEOUT_SECONDS = 120.0


class SpeechToTextBackend(ABC):
    name: str

    @abstractmethod
    async def transcribe(self, audio: bytes, filename: str = "audio.mp3") -> Optional[str]:
        """
        Converte audio em texto.

        Args:
            audio: Conteudo do arquivo de audio (mp3)
            filename: Nome enviado ao backend

        Returns:
            O texto transcrito, ou None se o backend nao devolveu texto

        Raises:
            TranscriptionServiceError: Quando o backend falha
        """


class HttpSpeechToTextBackend(SpeechToTextBackend):
    """Endpoint compativel com OpenAI /audio/transcriptions (Groq por padrao)."""

    name = "http"

    def __init__(
        self,
        api_key: Optional[str],
        url: str = DEFAULT_STT_URL,
        model: str = DEFAULT_STT_MODEL,
        timeout_seconds: float = DEFAULT_STT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def transcribe(self, audio: bytes, filename: str = "audio.mp3") -> Optional[str]:
        files = {"file": (filename, audio, "audio/mpeg")}
        data = {"model": self.model, "response_format": "json"}
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        try:
            if self._client is not None:
                response = await self._client.post(
                    self.url, files=files, data=data, headers=headers, timeout=self.timeout_seconds
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        self.url, files=files, data=data, headers=headers, timeout=self.timeout_seconds
                    )
        except httpx.HTTPError as error:
            raise TranscriptionServiceError(f"Transcription request failed: {error}") from error

        if not response.is_success:
            raise TranscriptionServiceError(
                f"Transcription API error: {response.status_code} - {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as error:
            raise TranscriptionServiceError("Transcription API returned invalid JSON") from error

        text = payload.get("text") if isinstance(payload, dict) else None
        return text.strip() if isinstance(text, str) and text.strip() else None


class TranscriptionService:
    """
    Baixa o audio do storage, envia ao backend e guarda o resultado no cache.
    Erros sao devolvidos no TranscriptionOutcome, nunca levantados.
    """

    def __init__(
        self,
        storage: StorageProvider,
        backend: SpeechToTextBackend,
        cache: Optional[TranscriptCache] = None,
    ) -> None:
        self.storage = storage
        self.backend = backend
        self.cache = cache if cache is not None else InMemoryTranscriptCache()

    async def transcribe(self, audio_path: str, cache_key: Optional[str] = None) -> TranscriptionOutcome:
        if cache_key:
            cached = self.cache.get(cache_key)
            if cached:
                logger.info("transcribe.cache_hit key=%s", cache_key)
                return TranscriptionOutcome(transcript=cached)

        try:
            audio = await run_in_threadpool(self.storage.download_bytes, audio_path)
            if not audio:
                return TranscriptionOutcome(transcript=None, error=TranscriptionServiceError("Audio file is empty"))

            transcript = await self.backend.transcribe(audio, "audio.mp3")
        except Exception as error:
            logger.warning("transcribe.failed path=%s backend=%s error=%s", audio_path, self.backend.name, error)
            return TranscriptionOutcome(transcript=None, error=error)

        if cache_key and transcript:
            self.cache.set(cache_key, transcript)
        logger.info(
            "transcribe.done path=%s backend=%s chars=%d",
            audio_path,
            self.backend.name,
            len(transcript or ""),
        )
        return TranscriptionOutcome(transcript=transcript)
