# src/services/schemas.py
from typing import Optional

from pydantic import BaseModel, Field

from src.services.types import Platform


class RecipeSchema(BaseModel):
    """Formato da resposta estruturada pedida ao modelo."""

    title: str = ""
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    isRecipe: bool = False


class RecipeExtractionInput(BaseModel):
    title: Optional[str] = None
    text_content: Optional[str] = None
    hashtags: list[str] = Field(default_factory=list)
    transcription: Optional[str] = None
    platform: Platform
