# src/app/routers/scraper.py
from __future__ import annotations

import json
import logging
import time
import traceback
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from src.app.config import settings
from src.app.deps import (
    CurrentUser,
    get_content_repository,
    get_extraction_workflow,
    get_optional_user,
    get_rate_limiter,
    get_scrapers,
)
from src.app.domain.models import RateLimitInfo, RequestMetadata, ScrapeStatus, ScrapingLog
from src.app.infra.db.base import ContentRepository
from src.app.schemas.scraper import (
    AuthorOut,
    EngagementOut,
    MusicInfoOut,
    ScrapedContentOut,
    ScrapeRequest,
    ScrapeResponse,
)
from src.app.services.extraction_workflow import ExtractionWorkflow
from src.services.fetcher import PlatformScraper
from src.services.ids import classify
from src.services.rate_limiter import RateLimiter, format_reset
from src.services.types import ScrapedContent

log = logging.getLogger("scraper")
router = APIRouter(prefix="/api", tags=["scraper"])

INVALID_BODY = "Invalid request body. Expected { url: string, force?: boolean }"
RATE_LIMITED = "Rate limit exceeded. Please try again later."
INVALID_URL = "Invalid URL format. Expected Instagram post/reel or TikTok video URL."


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or "unknown"


def _content_out(content: ScrapedContent) -> ScrapedContentOut:
    music = content.music_info
    return ScrapedContentOut(
        platform=content.platform,
        postId=content.post_id,
        url=content.url,
        title=content.title,
        author=AuthorOut(
            username=content.author.username,
            displayName=content.author.display_name,
            profileUrl=content.author.profile_url,
            avatarUrl=content.author.avatar_url,
        ),
        videoUrl=content.video_url,
        coverImageUrl=content.cover_image_url,
        engagement=EngagementOut(
            likes=content.engagement.likes,
            comments=content.engagement.comments,
            shares=content.engagement.shares,
            views=content.engagement.views,
        ),
        hashtags=list(content.hashtags),
        mentions=list(content.mentions),
        timestamp=format_reset(content.timestamp) if content.timestamp else None,
        musicInfo=MusicInfoOut(title=music.title, artist=music.artist, url=music.url) if music else None,
    )


def _respond(
    status_code: int,
    limit: RateLimitInfo,
    *,
    data: Optional[ScrapedContent] = None,
    error: Optional[str] = None,
    recipe_id: Optional[str] = None,
    remaining: Optional[int] = None,
) -> JSONResponse:
    body = ScrapeResponse(
        success=error is None,
        data=_content_out(data) if data is not None else None,
        error=error,
        recipeId=recipe_id,
    ).model_dump()
    # recipeId so aparece quando existe
    if recipe_id is None:
        body.pop("recipeId", None)

    return JSONResponse(
        status_code=status_code,
        content=body,
        headers={
            "X-RateLimit-Remaining": str(limit.remaining if remaining is None else remaining),
            "X-RateLimit-Reset": format_reset(limit.reset_at),
        },
    )


def _metadata(request: Request, ip: str, limit: RateLimitInfo) -> RequestMetadata:
    return RequestMetadata(
        ip=ip,
        user_agent=request.headers.get("user-agent"),
        rate_limit_remaining=limit.remaining,
        rate_limit_reset=format_reset(limit.reset_at),
    )


async def _write_log(repo: ContentRepository, entry: ScrapingLog) -> None:
    try:
        await run_in_threadpool(repo.log_failure, entry)
    except Exception:
        log.exception("Failed to write scraping log url=%s", entry.url)


async def _parse_body(request: Request) -> Optional[ScrapeRequest]:
    try:
        raw: Any = await request.json()
        return ScrapeRequest.model_validate(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError, ValueError):
        return None


@router.post("/scraper", response_model=ScrapeResponse)
async def scrape(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    repo: ContentRepository = Depends(get_content_repository),
    scrapers: dict[str, PlatformScraper] = Depends(get_scrapers),
    workflow: ExtractionWorkflow = Depends(get_extraction_workflow),
    user: Optional[CurrentUser] = Depends(get_optional_user),
):
    started = time.monotonic()
    ip = _client_ip(request)

    payload = await _parse_body(request)
    if payload is None:
        return _respond(400, limiter.peek(ip), error=INVALID_BODY)

    url = payload.url
    limit = limiter.check(ip)
    platform = classify(url)

    if not limit.allowed:
        log.warning("Rate limit exceeded ip=%s", ip)
        if platform is not None:
            await _write_log(
                repo,
                ScrapingLog(
                    url=url,
                    platform=platform,
                    status=ScrapeStatus.RATE_LIMITED,
                    error_message=RATE_LIMITED,
                    request_metadata=_metadata(request, ip, limit),
                ),
            )
        return _respond(429, limit, error=RATE_LIMITED, remaining=0)

    if platform is None:
        return _respond(400, limit, error=INVALID_URL)

    stored = None
    if not payload.force:
        try:
            stored = await run_in_threadpool(repo.get, url)
        except Exception as exc:
            log.error("Cache lookup error url=%s error=%s", url, exc)

    if stored is not None:
        # cache hit responde direto, sem extracao
        log.info("Cache hit url=%s id=%s", url, stored.id)
        return _respond(200, limit, data=stored.content)

    try:
        result = await scrapers[platform].scrape(url)
        content = result.content
        unavailable = result.unavailable_fields
        content_id = await run_in_threadpool(repo.upsert, content)
    except Exception as exc:
        log.exception("Scrape failed url=%s", url)
        await _write_log(
            repo,
            ScrapingLog(
                url=url,
                platform=platform,
                status=ScrapeStatus.FAILED,
                scrape_duration_ms=int((time.monotonic() - started) * 1000),
                error_message=str(exc),
                error_stack=traceback.format_exc(),
                request_metadata=_metadata(request, ip, limit),
            ),
        )
        return _respond(500, limit, error=f"Failed to scrape URL: {exc}")

    if not settings.EXTRACT_RECIPES_ON_SCRAPE:
        return _respond(200, limit, data=content)

    outcome = await workflow.run(content, content_id, user_id=user.id if user else None)
    if not outcome.success:
        await _write_log(
            repo,
            ScrapingLog(
                url=url,
                platform=platform,
                status=ScrapeStatus.FAILED,
                scrape_duration_ms=int((time.monotonic() - started) * 1000),
                error_message=outcome.error,
                request_metadata=_metadata(request, ip, limit),
                unavailable_fields=unavailable,
                scraped_content_id=content_id,
            ),
        )
        return _respond(500, limit, data=content, error=outcome.error or "Recipe extraction failed")

    log.info(
        "Scrape complete url=%s recipe=%s transcription=%s elapsed_ms=%s",
        url,
        outcome.recipe_id,
        outcome.transcription_status.value if outcome.transcription_status else None,
        outcome.processing_time_ms,
    )
    return _respond(200, limit, data=content, recipe_id=outcome.recipe_id)
