# src/app/routers/recipes.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from src.app.deps import CurrentUser, get_current_user, get_recipe_repository
from src.app.domain.errors import RepositoryError
from src.app.domain.models import Recipe, SavedRecipe
from src.app.infra.db.base import RecipeRepository
from src.app.schemas.recipes import (
    CollectionResponse,
    EditRecipeRequest,
    MessageResponse,
    RecipeDetailResponse,
    RecipeListResponse,
    RecipeResponse,
    SavedRecipeResponse,
    SaveRecipeRequest,
    SaveRecipeResponse,
)

log = logging.getLogger("recipes")
router = APIRouter(prefix="/api/recipes", tags=["recipes"])

NOT_IN_COLLECTION = "Recipe not found in user collection"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _recipe_out(recipe: Recipe) -> RecipeResponse:
    return RecipeResponse(
        id=recipe.id,
        title=recipe.title,
        ingredients=recipe.ingredients,
        instructions=recipe.instructions,
        scrapedContentId=recipe.scraped_content_id,
        confidence=recipe.confidence,
        aiProvider=recipe.ai_provider,
        transcription=recipe.transcription,
        originalData=recipe.original_data,
        createdAt=_iso(recipe.created_at),
        updatedAt=_iso(recipe.updated_at),
    )


def _saved_out(saved: SavedRecipe) -> SavedRecipeResponse:
    return SavedRecipeResponse(
        userRecipeId=saved.user_recipe_id,
        recipe=_recipe_out(saved.recipe),
        customTitle=saved.custom_title,
        customIngredients=saved.custom_ingredients,
        customInstructions=saved.custom_instructions,
        hasCustomizations=saved.has_customizations,
        savedAt=_iso(saved.saved_at),
    )


@router.get("", response_model=RecipeListResponse)
async def list_recipes(
    limit: int = Query(100, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    repo: RecipeRepository = Depends(get_recipe_repository),
):
    try:
        recipes = await run_in_threadpool(repo.list_recipes, limit, offset)
    except RepositoryError as exc:
        log.error("Failed to fetch recipes: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to fetch recipes")
    return RecipeListResponse(recipes=[_recipe_out(r) for r in recipes])


@router.get("/my-collection", response_model=CollectionResponse)
async def my_collection(
    user: CurrentUser = Depends(get_current_user),
    repo: RecipeRepository = Depends(get_recipe_repository),
):
    try:
        saved = await run_in_threadpool(repo.list_user_recipes, user.id)
    except RepositoryError as exc:
        log.error("Failed to fetch collection user=%s: %s", user.id, exc)
        raise HTTPException(status_code=500, detail="Failed to fetch collection")
    return CollectionResponse(recipes=[_saved_out(s) for s in saved])


@router.post("/save", response_model=SaveRecipeResponse, status_code=status.HTTP_201_CREATED)
async def save_recipe(
    body: SaveRecipeRequest,
    user: CurrentUser = Depends(get_current_user),
    repo: RecipeRepository = Depends(get_recipe_repository),
):
    recipe_id = str(body.recipeId)
    try:
        recipe = await run_in_threadpool(repo.get_recipe, recipe_id)
        if recipe is None:
            raise HTTPException(status_code=404, detail="Recipe not found")
        await run_in_threadpool(repo.save_to_user, user.id, recipe_id)
    except RepositoryError as exc:
        log.error("Failed to save recipe user=%s recipe=%s: %s", user.id, recipe_id, exc)
        raise HTTPException(status_code=500, detail="Failed to save recipe")
    return SaveRecipeResponse(success=True, recipeId=recipe_id)


@router.delete("/save/{recipe_id}", response_model=MessageResponse)
async def remove_recipe(
    recipe_id: str,
    user: CurrentUser = Depends(get_current_user),
    repo: RecipeRepository = Depends(get_recipe_repository),
):
    try:
        UUID(recipe_id)
    except ValueError:
        raise HTTPException(status_code=404, detail=NOT_IN_COLLECTION)

    try:
        await run_in_threadpool(repo.remove_from_user, user.id, recipe_id)
    except RepositoryError as exc:
        log.error("Failed to remove recipe user=%s recipe=%s: %s", user.id, recipe_id, exc)
        raise HTTPException(status_code=500, detail="Failed to remove recipe")
    return MessageResponse(message="Recipe removed from collection")


@router.get("/{recipe_id}", response_model=RecipeDetailResponse)
async def get_recipe(
    recipe_id: str,
    user: CurrentUser = Depends(get_current_user),
    repo: RecipeRepository = Depends(get_recipe_repository),
):
    try:
        UUID(recipe_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Recipe not found")

    try:
        recipe = await run_in_threadpool(repo.get_recipe, recipe_id)
    except RepositoryError as exc:
        log.error("Failed to fetch recipe id=%s: %s", recipe_id, exc)
        raise HTTPException(status_code=500, detail="Failed to fetch recipe")
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return RecipeDetailResponse(recipe=_recipe_out(recipe))


@router.put("/{recipe_id}/edit", response_model=MessageResponse)
async def edit_recipe(
    recipe_id: str,
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    repo: RecipeRepository = Depends(get_recipe_repository),
):
    try:
        UUID(recipe_id)
    except ValueError:
        raise HTTPException(status_code=404, detail=NOT_IN_COLLECTION)

    try:
        body = EditRecipeRequest.model_validate(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid request body")

    try:
        found = await run_in_threadpool(
            repo.update_user_recipe,
            user.id,
            recipe_id,
            body.customTitle,
            body.customIngredients,
            body.customInstructions,
        )
    except RepositoryError as exc:
        log.error("Failed to update recipe user=%s recipe=%s: %s", user.id, recipe_id, exc)
        raise HTTPException(status_code=500, detail="Failed to update recipe")
    if not found:
        raise HTTPException(status_code=404, detail=NOT_IN_COLLECTION)
    return MessageResponse(message="Recipe updated successfully")
