# src/app/services/extraction_workflow.py
"""
Turns one cached ScrapedContent into at most one persisted recipe.

Stages: dedup, optional video enrichment (download, duration, audio,
transcription), LLM extraction, persistence, optional auto-save to the
requesting user's collection.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

from starlette.concurrency import run_in_threadpool

from src.app.domain.errors import DuplicateRecipeError
from src.app.domain.models import NewRecipe, TranscriptionStatus, WorkflowResult
from src.app.infra.db.base import RecipeRepository
from src.app.services.video_pipeline import VideoPipeline
from src.services.recipe_extractor import RecipeExtractor
from src.services.schemas import RecipeExtractionInput
from src.services.transcribe import TranscriptionService
from src.services.types import ScrapedContent

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class ExtractionWorkflow:
    def __init__(
        self,
        recipes: RecipeRepository,
        extractor: RecipeExtractor,
        video_pipeline: Optional[VideoPipeline] = None,
        transcriber: Optional[TranscriptionService] = None,
    ):
        self.recipes = recipes
        self.extractor = extractor
        self.video_pipeline = video_pipeline
        self.transcriber = transcriber

    async def run(
        self,
        content: ScrapedContent,
        scraped_content_id: int,
        user_id: Optional[str] = None,
    ) -> WorkflowResult:
        started = time.monotonic()
        try:
            return await self._run(content, scraped_content_id, user_id, started)
        except Exception as error:
            logger.exception("workflow.unexpected_error scraped_content_id=%s", scraped_content_id)
            return WorkflowResult(
                success=False,
                recipe_id=None,
                processing_time_ms=_elapsed_ms(started),
                error=str(error) or "Unknown error occurred",
                transcription_status=TranscriptionStatus.FAILED,
            )

    async def _run(
        self,
        content: ScrapedContent,
        scraped_content_id: int,
        user_id: Optional[str],
        started: float,
    ) -> WorkflowResult:
        existing = await run_in_threadpool(self.recipes.get_recipe_by_scraped_content_id, scraped_content_id)
        if existing is not None:
            logger.info("workflow.dedup_hit scraped_content_id=%s recipe=%s", scraped_content_id, existing.id)
            return WorkflowResult(
                success=True,
                recipe_id=existing.id,
                processing_time_ms=_elapsed_ms(started),
                transcription_status=None,
            )

        transcription, status = await self._enrich(content)

        result = await self.extractor.extract(
            RecipeExtractionInput(
                title=content.title,
                text_content=content.title,
                hashtags=content.hashtags,
                transcription=transcription,
                platform=content.platform,
            )
        )
        if not result.success or result.data is None:
            logger.info(
                "workflow.extraction_failed scraped_content_id=%s error=%s", scraped_content_id, result.error
            )
            return WorkflowResult(
                success=False,
                recipe_id=None,
                processing_time_ms=_elapsed_ms(started),
                error=result.error or "Recipe extraction failed",
                transcription_status=status,
            )

        recipe_id = await self._persist(result, scraped_content_id)

        if user_id:
            try:
                await run_in_threadpool(self.recipes.save_to_user, user_id, recipe_id)
            except Exception as error:
                logger.warning("workflow.auto_save_failed user=%s recipe=%s error=%s", user_id, recipe_id, error)

        return WorkflowResult(
            success=True,
            recipe_id=recipe_id,
            processing_time_ms=_elapsed_ms(started),
            transcription_status=status,
        )

    async def _persist(self, result, scraped_content_id: int) -> str:
        new_recipe = NewRecipe(
            title=result.data.title,
            ingredients=result.data.ingredients,
            instructions=result.data.instructions,
            scraped_content_id=scraped_content_id,
            confidence=result.confidence or 0.0,
            ai_provider=result.ai_provider or "",
            transcription=result.transcription,
            original_data=result.raw,
        )
        try:
            created = await run_in_threadpool(self.recipes.create_recipe, new_recipe)
        except DuplicateRecipeError:
            # outra requisicao criou a receita primeiro
            winner = await run_in_threadpool(self.recipes.get_recipe_by_scraped_content_id, scraped_content_id)
            if winner is None:
                raise
            logger.info("workflow.duplicate_resolved scraped_content_id=%s recipe=%s", scraped_content_id, winner.id)
            return winner.id
        return created.id

    async def _enrich(self, content: ScrapedContent) -> tuple[Optional[str], TranscriptionStatus]:
        if not content.video_url or self.video_pipeline is None or self.transcriber is None:
            return None, TranscriptionStatus.SKIPPED

        pipeline = self.video_pipeline
        cleanup_paths: list[str] = []
        try:
            download = await pipeline.download(content.video_url)
            if download.error is not None or not download.path:
                return None, TranscriptionStatus.FAILED
            cleanup_paths.append(download.path)

            video = await pipeline.load(download.path)
            duration = await pipeline.get_duration(video)
            if duration.error is not None:
                return None, TranscriptionStatus.FAILED

            check = pipeline.validate_duration(duration.seconds)
            if not check.valid:
                logger.warning("workflow.duration_skipped url=%s reason=%s", content.url, check.error)
                return None, TranscriptionStatus.SKIPPED

            audio = await pipeline.extract_audio(video, pipeline.audio_destination())
            if audio.error is not None or not audio.path:
                return None, TranscriptionStatus.FAILED
            cleanup_paths.append(audio.path)

            outcome = await self.transcriber.transcribe(audio.path, cache_key=f"video-{content.url}")
            if outcome.error is not None:
                return None, TranscriptionStatus.FAILED
            return outcome.transcript, TranscriptionStatus.SUCCESS
        except Exception as error:
            logger.warning("workflow.enrichment_failed url=%s error=%s", content.url, error)
            return None, TranscriptionStatus.FAILED
        finally:
            await pipeline.cleanup(cleanup_paths)
