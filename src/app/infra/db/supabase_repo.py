from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Optional

from postgrest.exceptions import APIError
from supabase import Client

from src.app.domain.errors import DuplicateRecipeError, RepositoryError
from src.app.domain.models import NewRecipe, Recipe, SavedRecipe, ScrapingLog
from src.app.infra.db.base import ContentRepository, RecipeRepository
from src.services.types import Author, Engagement, MusicInfo, ScrapedContent, StoredContent

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _safe_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _content_to_row(content: ScrapedContent) -> dict[str, Any]:
    return {
        "platform": content.platform,
        "post_id": content.post_id,
        "url": content.url,
        "title": content.title,
        "author_username": content.author.username,
        "author_display_name": content.author.display_name,
        "author_profile_url": content.author.profile_url,
        "author_avatar_url": content.author.avatar_url,
        "video_url": content.video_url,
        "cover_image_url": content.cover_image_url,
        "likes": content.engagement.likes,
        "comments": content.engagement.comments,
        "shares": content.engagement.shares,
        "views": content.engagement.views,
        "hashtags": list(content.hashtags),
        "mentions": list(content.mentions),
        "post_timestamp": content.timestamp.isoformat() if content.timestamp else None,
        "music_info": asdict(content.music_info) if content.music_info else None,
        "updated_at": _now_utc().isoformat(),
    }


def _row_to_content(row: dict[str, Any]) -> ScrapedContent:
    music = row.get("music_info")
    return ScrapedContent(
        platform=row["platform"],
        post_id=str(row.get("post_id") or ""),
        url=str(row["url"]),
        title=_safe_str(row.get("title")),
        author=Author(
            username=str(row.get("author_username") or ""),
            display_name=_safe_str(row.get("author_display_name")),
            profile_url=str(row.get("author_profile_url") or ""),
            avatar_url=_safe_str(row.get("author_avatar_url")),
        ),
        video_url=_safe_str(row.get("video_url")),
        cover_image_url=_safe_str(row.get("cover_image_url")),
        engagement=Engagement(
            likes=row.get("likes"),
            comments=row.get("comments"),
            shares=row.get("shares"),
            views=row.get("views"),
        ),
        hashtags=_string_list(row.get("hashtags")),
        mentions=_string_list(row.get("mentions")),
        timestamp=_parse_datetime(row.get("post_timestamp")),
        music_info=MusicInfo(
            title=music.get("title"),
            artist=music.get("artist"),
            url=music.get("url"),
        ) if isinstance(music, dict) else None,
    )


def _log_to_row(entry: ScrapingLog) -> dict[str, Any]:
    meta = entry.request_metadata
    row: dict[str, Any] = {
        "url": entry.url,
        "platform": entry.platform,
        "status": entry.status.value,
        "scrape_duration_ms": entry.scrape_duration_ms,
        "error_message": entry.error_message,
        "error_stack": entry.error_stack,
        "request_metadata": {
            "ip": meta.ip,
            "userAgent": meta.user_agent,
            "rateLimitRemaining": meta.rate_limit_remaining,
            "rateLimitReset": meta.rate_limit_reset,
        },
        "unavailable_fields": list(entry.unavailable_fields),
    }
    if entry.scraped_content_id is not None:
        row["scraped_content_id"] = entry.scraped_content_id
    return row


def _row_to_recipe(row: dict[str, Any]) -> Recipe:
    return Recipe(
        id=str(row["id"]),
        title=str(row.get("title") or ""),
        ingredients=_string_list(row.get("ingredients")),
        instructions=_string_list(row.get("instructions")),
        scraped_content_id=int(row["scraped_content_id"]),
        confidence=_safe_float(row.get("confidence")),
        ai_provider=_safe_str(row.get("ai_provider")),
        transcription=_safe_str(row.get("transcription")),
        original_data=row.get("original_data"),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _row_to_saved_recipe(row: dict[str, Any]) -> SavedRecipe:
    return SavedRecipe(
        user_recipe_id=str(row["id"]),
        recipe=_row_to_recipe(row["recipes"]),
        custom_title=_safe_str(row.get("custom_title")),
        custom_ingredients=row.get("custom_ingredients"),
        custom_instructions=row.get("custom_instructions"),
        saved_at=_parse_datetime(row.get("saved_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


class SupabaseContentRepository(ContentRepository):
    CONTENT_TABLE = "scraped_content"
    LOGS_TABLE = "scraping_logs"

    def __init__(self, client: Client):
        self._client = client

    def get(self, url: str) -> StoredContent | None:
        try:
            result = (
                self._client.table(self.CONTENT_TABLE)
                .select("*")
                .eq("url", url)
                .limit(1)
                .execute()
            )
        except (APIError, ConnectionError, TimeoutError) as error:
            logger.error("Error reading cached content: url=%s error=%s", url, error)
            raise RepositoryError("get_content", str(error)) from error

        if not result.data:
            return None
        row = result.data[0]
        return StoredContent(id=int(row["id"]), content=_row_to_content(row))

    def upsert(self, content: ScrapedContent) -> int:
        try:
            result = (
                self._client.table(self.CONTENT_TABLE)
                .upsert(_content_to_row(content), on_conflict="url")
                .execute()
            )
        except (APIError, ConnectionError, TimeoutError) as error:
            logger.error("Error upserting content: url=%s error=%s", content.url, error)
            raise RepositoryError("upsert_content", str(error)) from error

        if not result.data:
            raise RepositoryError("upsert_content", "no row returned")
        content_id = int(result.data[0]["id"])
        logger.info("Content upserted: id=%s platform=%s url=%s", content_id, content.platform, content.url)
        return content_id

    def log_failure(self, entry: ScrapingLog) -> None:
        try:
            self._client.table(self.LOGS_TABLE).insert(_log_to_row(entry)).execute()
        except (APIError, ConnectionError, TimeoutError) as error:
            logger.error("Error writing scraping log: url=%s error=%s", entry.url, error)
            raise RepositoryError("log_failure", str(error)) from error


class SupabaseRecipeRepository(RecipeRepository):
    RECIPES_TABLE = "recipes"
    USER_RECIPES_TABLE = "user_recipes"

    def __init__(self, client: Client):
        self._client = client

    def get_recipe_by_scraped_content_id(self, scraped_content_id: int) -> Recipe | None:
        try:
            result = (
                self._client.table(self.RECIPES_TABLE)
                .select("*")
                .eq("scraped_content_id", scraped_content_id)
                .limit(1)
                .execute()
            )
        except (APIError, ConnectionError, TimeoutError) as error:
            raise RepositoryError("get_recipe_by_scraped_content_id", str(error)) from error
        return _row_to_recipe(result.data[0]) if result.data else None

    def get_recipe(self, recipe_id: str) -> Recipe | None:
        try:
            result = (
                self._client.table(self.RECIPES_TABLE)
                .select("*")
                .eq("id", recipe_id)
                .limit(1)
                .execute()
            )
        except (APIError, ConnectionError, TimeoutError) as error:
            raise RepositoryError("get_recipe", str(error)) from error
        return _row_to_recipe(result.data[0]) if result.data else None

    def create_recipe(self, recipe: NewRecipe) -> Recipe:
        data = {
            "title": recipe.title,
            "ingredients": recipe.ingredients,
            "instructions": recipe.instructions,
            "scraped_content_id": recipe.scraped_content_id,
            # numeric(5,4)
            "confidence": round(recipe.confidence, 4),
            "ai_provider": recipe.ai_provider,
            "transcription": recipe.transcription,
            "original_data": recipe.original_data,
        }

        try:
            result = self._client.table(self.RECIPES_TABLE).insert(data).execute()
        except APIError as error:
            if getattr(error, "code", None) == UNIQUE_VIOLATION:
                raise DuplicateRecipeError(recipe.scraped_content_id) from error
            logger.error("Error creating recipe: scraped_content_id=%s error=%s", recipe.scraped_content_id, error)
            raise RepositoryError("create_recipe", str(error)) from error
        except (ConnectionError, TimeoutError) as error:
            raise RepositoryError("create_recipe", str(error)) from error

        if not result.data:
            raise RepositoryError("create_recipe", "no row returned")
        created = _row_to_recipe(result.data[0])
        logger.info("Recipe created: id=%s scraped_content_id=%s", created.id, created.scraped_content_id)
        return created

    def save_to_user(self, user_id: str, recipe_id: str) -> None:
        try:
            existing = (
                self._client.table(self.USER_RECIPES_TABLE)
                .select("id")
                .eq("user_id", user_id)
                .eq("recipe_id", recipe_id)
                .limit(1)
                .execute()
            )
            if existing.data:
                return
            self._client.table(self.USER_RECIPES_TABLE).insert(
                {"user_id": user_id, "recipe_id": recipe_id}
            ).execute()
        except (APIError, ConnectionError, TimeoutError) as error:
            raise RepositoryError("save_to_user", str(error)) from error
        logger.info("Recipe saved to collection: user=%s recipe=%s", user_id, recipe_id)

    def list_user_recipes(self, user_id: str) -> list[SavedRecipe]:
        try:
            result = (
                self._client.table(self.USER_RECIPES_TABLE)
                .select("*, recipes(*)")
                .eq("user_id", user_id)
                .order("saved_at", desc=True)
                .execute()
            )
        except (APIError, ConnectionError, TimeoutError) as error:
            raise RepositoryError("list_user_recipes", str(error)) from error
        return [_row_to_saved_recipe(row) for row in result.data or [] if row.get("recipes")]

    def list_recipes(self, limit: int = 100, offset: int = 0) -> list[Recipe]:
        try:
            result = (
                self._client.table(self.RECIPES_TABLE)
                .select("*")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except (APIError, ConnectionError, TimeoutError) as error:
            raise RepositoryError("list_recipes", str(error)) from error
        return [_row_to_recipe(row) for row in result.data or []]

    def update_user_recipe(
        self,
        user_id: str,
        recipe_id: str,
        custom_title: Optional[str] = None,
        custom_ingredients: Optional[list[str]] = None,
        custom_instructions: Optional[list[str]] = None,
    ) -> bool:
        # so grava os campos enviados
        changes: dict[str, Any] = {"updated_at": _now_utc().isoformat()}
        if custom_title is not None:
            changes["custom_title"] = custom_title
        if custom_ingredients is not None:
            changes["custom_ingredients"] = custom_ingredients
        if custom_instructions is not None:
            changes["custom_instructions"] = custom_instructions

        try:
            existing = (
                self._client.table(self.USER_RECIPES_TABLE)
                .select("id")
                .eq("user_id", user_id)
                .eq("recipe_id", recipe_id)
                .limit(1)
                .execute()
            )
            if not existing.data:
                return False
            self._client.table(self.USER_RECIPES_TABLE).update(changes).eq(
                "id", existing.data[0]["id"]
            ).execute()
        except (APIError, ConnectionError, TimeoutError) as error:
            raise RepositoryError("update_user_recipe", str(error)) from error
        logger.info("Saved recipe customized: user=%s recipe=%s", user_id, recipe_id)
        return True

    def remove_from_user(self, user_id: str, recipe_id: str) -> None:
        try:
            self._client.table(self.USER_RECIPES_TABLE).delete().eq("user_id", user_id).eq(
                "recipe_id", recipe_id
            ).execute()
        except (APIError, ConnectionError, TimeoutError) as error:
            raise RepositoryError("remove_from_user", str(error)) from error
        logger.info("Recipe removed from collection: user=%s recipe=%s", user_id, recipe_id)
