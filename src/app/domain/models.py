# src/app/domain/models.py
"""
Domain models for the scrape-to-recipe pipeline.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ScrapeStatus(str, Enum):
    """Outcome recorded on a scraping log entry."""
    SUCCESS = "success"
    FAILED = "failed"
    RATE_LIMITED = "rate_limited"


class TranscriptionStatus(str, Enum):
    """How far the video enrichment stage got."""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class RateLimitInfo:
    """Result of a rate limit check."""
    allowed: bool
    remaining: int
    reset_at: datetime


@dataclass
class RequestMetadata:
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    rate_limit_remaining: Optional[int] = None
    rate_limit_reset: Optional[str] = None


@dataclass
class ScrapingLog:
    """
    Immutable diagnostic record of one failed scrape or extraction attempt.
    Written once, never updated.
    """
    url: str
    platform: str
    status: ScrapeStatus
    scrape_duration_ms: Optional[int] = None
    error_message: Optional[str] = None
    error_stack: Optional[str] = None
    request_metadata: RequestMetadata = field(default_factory=RequestMetadata)
    unavailable_fields: list[str] = field(default_factory=list)
    scraped_content_id: Optional[int] = None


@dataclass
class RecipeData:
    """Validated recipe fields coming out of the extractor."""
    title: str
    ingredients: list[str]
    instructions: list[str]


@dataclass
class NewRecipe:
    """Everything needed to insert a recipe row."""
    title: str
    ingredients: list[str]
    instructions: list[str]
    scraped_content_id: int
    confidence: float
    ai_provider: str
    transcription: Optional[str] = None
    original_data: Optional[dict[str, Any]] = None


@dataclass
class Recipe:
    id: str
    title: str
    ingredients: list[str]
    instructions: list[str]
    scraped_content_id: int
    confidence: Optional[float] = None
    ai_provider: Optional[str] = None
    transcription: Optional[str] = None
    original_data: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class SavedRecipe:
    """A recipe in a user's collection, with the user's customizations applied."""
    user_recipe_id: str
    recipe: Recipe
    custom_title: Optional[str] = None
    custom_ingredients: Optional[list[str]] = None
    custom_instructions: Optional[list[str]] = None
    saved_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_customizations(self) -> bool:
        return bool(self.custom_title or self.custom_ingredients or self.custom_instructions)


@dataclass
class ExtractionResult:
    """Result of one extractor call. data is None whenever success is False."""
    success: bool
    data: Optional[RecipeData] = None
    confidence: Optional[float] = None
    error: Optional[str] = None
    transcription: Optional[str] = None
    ai_provider: Optional[str] = None
    raw: Optional[dict[str, Any]] = None


@dataclass
class WorkflowResult:
    """Terminal result of one extraction workflow run."""
    success: bool
    recipe_id: Optional[str]
    processing_time_ms: int
    error: Optional[str] = None
    transcription_status: Optional[TranscriptionStatus] = None


@dataclass
class DownloadResult:
    path: Optional[str]
    size_bytes: int = 0
    error: Optional[Exception] = None


@dataclass
class DurationResult:
    seconds: float
    error: Optional[Exception] = None


@dataclass
class DurationCheck:
    valid: bool
    error: Optional[str] = None


@dataclass
class AudioResult:
    path: Optional[str]
    error: Optional[Exception] = None


@dataclass
class TranscriptionOutcome:
    transcript: Optional[str]
    error: Optional[Exception] = None
