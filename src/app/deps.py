# src/app/deps.py (singletons do processo expostos como dependencias)

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from src.app.config import settings
from src.app.infra.db.base import ContentRepository, RecipeRepository
from src.app.infra.db.supabase_repo import SupabaseContentRepository, SupabaseRecipeRepository
from src.app.infra.storage.base import StorageProvider
from src.app.services.extraction_workflow import ExtractionWorkflow
from src.app.services.video_pipeline import VideoPipeline
from src.services.fetcher import PlatformScraper
from src.services.gemini_client import GeminiClient
from src.services.instagram import InstagramScraper
from src.services.rate_limiter import RateLimiter
from src.services.recipe_extractor import RecipeExtractor
from src.services.tiktok import TikTokScraper
from src.services.transcribe import HttpSpeechToTextBackend, SpeechToTextBackend, TranscriptionService

log = logging.getLogger("deps")

_client: Client | None = None
_rate_limiter: RateLimiter | None = None
_storage: StorageProvider | None = None
_workflow: ExtractionWorkflow | None = None
_scrapers: dict[str, PlatformScraper] | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window_ms=settings.RATE_LIMIT_WINDOW_MS,
        )
    return _rate_limiter


def get_content_repository(supa: Client = Depends(get_supabase)) -> ContentRepository:
    return SupabaseContentRepository(supa)


def get_recipe_repository(supa: Client = Depends(get_supabase)) -> RecipeRepository:
    return SupabaseRecipeRepository(supa)


def get_scrapers() -> dict[str, PlatformScraper]:
    global _scrapers
    if _scrapers is None:
        timeout = settings.SCRAPE_TIMEOUT_SECONDS
        _scrapers = {
            "instagram": InstagramScraper(timeout_seconds=timeout),
            "tiktok": TikTokScraper(timeout_seconds=timeout),
        }
    return _scrapers


def get_storage() -> StorageProvider:
    global _storage
    if _storage is not None:
        return _storage

    backend = settings.STORAGE_BACKEND
    if backend == "r2":
        from src.app.infra.storage.r2_provider import R2StorageProvider
        _storage = R2StorageProvider(
            account_id=settings.R2_ACCOUNT_ID,
            access_key_id=settings.R2_ACCESS_KEY_ID,
            secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            bucket_name=settings.R2_BUCKET_NAME,
        )
    elif backend == "local":
        from src.app.infra.storage.local_provider import LocalStorageProvider
        _storage = LocalStorageProvider(settings.LOCAL_STORAGE_DIR)
    else:
        from src.app.infra.storage.supabase_provider import SupabaseStorageProvider
        _storage = SupabaseStorageProvider(get_supabase(), settings.SUPABASE_STORAGE_BUCKET)
    log.info("Storage backend: %s", backend)
    return _storage


def _build_stt_backend() -> SpeechToTextBackend:
    if settings.TRANSCRIPTION_BACKEND == "whisper":
        from src.app.services.transcription_pipeline import WhisperSpeechToTextBackend
        return WhisperSpeechToTextBackend(
            model_name=settings.WHISPER_MODEL,
            device=settings.WHISPER_DEVICE,
            beam_size=settings.WHISPER_BEAM_SIZE,
        )
    return HttpSpeechToTextBackend(
        api_key=settings.STT_API_KEY,
        url=settings.STT_API_URL,
        model=settings.STT_MODEL,
    )


def get_extraction_workflow() -> ExtractionWorkflow:
    global _workflow
    if _workflow is None:
        storage = get_storage()
        _workflow = ExtractionWorkflow(
            recipes=SupabaseRecipeRepository(get_supabase()),
            extractor=RecipeExtractor(GeminiClient(settings.GEMINI_API_KEY, settings.GEMINI_MODEL)),
            video_pipeline=VideoPipeline(
                storage,
                max_size_mb=settings.MAX_VIDEO_SIZE_MB,
                download_timeout_seconds=settings.VIDEO_DOWNLOAD_TIMEOUT_SECONDS,
                max_duration_seconds=settings.MAX_VIDEO_DURATION_SECONDS,
            ),
            transcriber=TranscriptionService(storage, _build_stt_backend()),
        )
    return _workflow


auth_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None


def _resolve_user(supa: Client, token: str) -> CurrentUser:
    res = supa.auth.get_user(token)
    user = res.user if res else None
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    # metadados podem conter 'name'
    name = None
    meta = getattr(user, "user_metadata", None) or {}
    if isinstance(meta, dict):
        name = meta.get("name")

    return CurrentUser(id=str(user.id), email=user.email, name=name)


async def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    supa: Client = Depends(get_supabase),
) -> CurrentUser:
    """
    Recebe Authorization: Bearer <access_token> do Supabase,
    valida no GoTrue e retorna dados minimos do usuario.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        return _resolve_user(supa, cred.credentials)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid/expired token")


async def get_optional_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    supa: Client = Depends(get_supabase),
) -> Optional[CurrentUser]:
    """Como get_current_user, mas devolve None para requisicoes anonimas ou tokens invalidos."""
    if cred is None or cred.scheme.lower() != "bearer":
        return None
    try:
        return _resolve_user(supa, cred.credentials)
    except Exception as exc:
        log.info("Ignoring invalid bearer token on optional auth: %s", exc)
        return None
