# src/app/infra/db/base.py
"""
Abstract base classes for the persistence layer.
This interface allows easy swapping between different storage backends.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from src.app.domain.models import NewRecipe, Recipe, SavedRecipe, ScrapingLog
from src.services.types import ScrapedContent, StoredContent


class ContentRepository(ABC):
    """
    Abstract interface for the scraped content cache and the failure log.

    Scraped content is keyed by URL and is never deleted; the failure log
    is append-only.

    Implementations:
    - SupabaseContentRepository: Postgres tables via Supabase
    """

    @abstractmethod
    def get(self, url: str) -> Optional[StoredContent]:
        """
        Look up cached content by its exact URL.

        Args:
            url: The post URL as submitted by the client

        Returns:
            The stored content with its row id, or None on a miss
        """
        pass

    @abstractmethod
    def upsert(self, content: ScrapedContent) -> int:
        """
        Insert or overwrite the row for content.url, refreshing updated_at.

        Args:
            content: Freshly scraped content

        Returns:
            The row id of the inserted or updated record
        """
        pass

    @abstractmethod
    def log_failure(self, entry: ScrapingLog) -> None:
        """
        Append a diagnostic record. Never updates an existing row.

        Args:
            entry: The log entry to write
        """
        pass


class RecipeRepository(ABC):
    """
    Abstract interface for recipes and user collections.
    At most one recipe exists per scraped content row.
    """

    @abstractmethod
    def get_recipe_by_scraped_content_id(self, scraped_content_id: int) -> Optional[Recipe]:
        """
        Args:
            scraped_content_id: Row id of the source content

        Returns:
            The recipe extracted from that content, or None
        """
        pass

    @abstractmethod
    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        pass

    @abstractmethod
    def create_recipe(self, recipe: NewRecipe) -> Recipe:
        """
        Insert a new recipe.

        Args:
            recipe: Validated extractor output plus provenance

        Returns:
            The created Recipe

        Raises:
            DuplicateRecipeError: A recipe already exists for recipe.scraped_content_id
        """
        pass

    @abstractmethod
    def save_to_user(self, user_id: str, recipe_id: str) -> None:
        """
        Add a recipe to a user's collection. Saving twice is a no-op.

        Args:
            user_id: Owner of the collection
            recipe_id: Recipe to save
        """
        pass

    @abstractmethod
    def list_user_recipes(self, user_id: str) -> list[SavedRecipe]:
        """
        Args:
            user_id: Owner of the collection

        Returns:
            Saved recipes, most recently saved first
        """
        pass

    @abstractmethod
    def list_recipes(self, limit: int = 100, offset: int = 0) -> list[Recipe]:
        pass

    @abstractmethod
    def update_user_recipe(
        self,
        user_id: str,
        recipe_id: str,
        custom_title: Optional[str] = None,
        custom_ingredients: Optional[list[str]] = None,
        custom_instructions: Optional[list[str]] = None,
    ) -> bool:
        """
        Store the user's customizations on a saved recipe.
        Fields left as None are not touched.

        Args:
            user_id: Owner of the collection
            recipe_id: Saved recipe to edit

        Returns:
            False when the recipe is not in the user's collection
        """
        pass

    @abstractmethod
    def remove_from_user(self, user_id: str, recipe_id: str) -> None:
        """
        Remove a recipe from a user's collection. The recipe itself is kept.
        Removing a recipe that is not saved is a no-op.
        """
        pass
