from __future__ import annotations

from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class RecipeResponse(BaseModel):
    id: str
    title: str
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    scrapedContentId: int
    confidence: Optional[float] = None
    aiProvider: Optional[str] = None
    transcription: Optional[str] = None
    originalData: Optional[dict[str, Any]] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class SavedRecipeResponse(BaseModel):
    userRecipeId: str
    recipe: RecipeResponse
    customTitle: Optional[str] = None
    customIngredients: Optional[list[str]] = None
    customInstructions: Optional[list[str]] = None
    hasCustomizations: bool = False
    savedAt: Optional[str] = None


class RecipeDetailResponse(BaseModel):
    recipe: RecipeResponse


class RecipeListResponse(BaseModel):
    recipes: list[RecipeResponse]


class CollectionResponse(BaseModel):
    recipes: list[SavedRecipeResponse]


class SaveRecipeRequest(BaseModel):
    recipeId: UUID


class SaveRecipeResponse(BaseModel):
    success: bool
    recipeId: str


NonEmptyStr = Annotated[str, Field(min_length=1)]


class EditRecipeRequest(BaseModel):
    customTitle: Optional[NonEmptyStr] = None
    customIngredients: Optional[list[NonEmptyStr]] = None
    customInstructions: Optional[list[NonEmptyStr]] = None


class MessageResponse(BaseModel):
    message: str
