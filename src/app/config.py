from __future__ import annotations

from typing import Literal, Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: AnyUrl
    SUPABASE_SERVICE_ROLE_KEY: str
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
    )

    # Rate limiting (per client IP, process local)
    RATE_LIMIT_MAX_REQUESTS: int = 10
    RATE_LIMIT_WINDOW_MS: int = 60_000

    # Scraping / media
    SCRAPE_TIMEOUT_SECONDS: float = 30.0
    VIDEO_DOWNLOAD_TIMEOUT_SECONDS: float = 60.0
    MAX_VIDEO_SIZE_MB: int = 100
    MAX_VIDEO_DURATION_SECONDS: int = 300
    EXTRACT_RECIPES_ON_SCRAPE: bool = True

    # LLM
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # Speech to text
    TRANSCRIPTION_BACKEND: Literal["http", "whisper"] = "http"
    STT_API_URL: str = "https://api.groq.com/openai/v1/audio/transcriptions"
    STT_API_KEY: Optional[str] = None
    STT_MODEL: str = "whisper-large-v3-turbo"
    WHISPER_MODEL: str = "medium"
    WHISPER_DEVICE: str = "auto"  # auto, cuda, cpu
    WHISPER_BEAM_SIZE: int = 5

    # Temporary media storage
    STORAGE_BACKEND: Literal["supabase", "r2", "local"] = "supabase"
    SUPABASE_STORAGE_BUCKET: str = "video-processing"
    R2_ACCOUNT_ID: Optional[str] = None
    R2_ACCESS_KEY_ID: Optional[str] = None
    R2_SECRET_ACCESS_KEY: Optional[str] = None
    R2_BUCKET_NAME: Optional[str] = None
    LOCAL_STORAGE_DIR: str = "data/tmp-media"


settings = Settings()
