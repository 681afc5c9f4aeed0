from __future__ import annotations

import logging
from typing import Protocol, Type, TypeVar

from pydantic import BaseModel

from src.app.domain.models import ExtractionResult, RecipeData
from src.services.schemas import RecipeExtractionInput, RecipeSchema

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

NO_CONTENT = "No content available for extraction"
NOT_A_RECIPE = "Content does not contain a recipe"
INCOMPLETE_RECIPE = "Incomplete recipe data extracted"

PROMPT_TEMPLATE = """You are a recipe extraction AI. Analyze the following social media content from {platform} and determine if it contains a recipe.

Content:
{content}

Instructions:
1. If this content contains a recipe, extract the title, ingredients (with quantities when available), and step-by-step cooking instructions.
2. If this is NOT a recipe (e.g., just food photos, restaurant reviews, general cooking tips), set isRecipe to false and return empty arrays.
3. Be strict: only extract if there are clear ingredients AND cooking instructions.
4. Format ingredients with quantities when available (e.g., "2 cups flour", "1 tbsp salt").
5. Make instructions clear and sequential.
6. Combine information from captions and transcription if both are available."""


class StructuredModel(Protocol):
    name: str

    async def generate_structured(self, prompt: str, schema: Type[T]) -> T:
        ...


def build_content_blob(data: RecipeExtractionInput) -> str:
    parts = [
        data.title,
        data.text_content if data.text_content != data.title else None,
        " ".join(data.hashtags),
        data.transcription,
    ]
    return "\n\n".join(part for part in parts if part and part.strip())


def calculate_confidence(title: str, ingredients: list[str], instructions: list[str]) -> float:
    """Pontuacao deterministica: 0.2 pelo titulo, ate 0.4 por ingredientes e ate 0.4 por passos."""
    score = 0.0
    if title:
        score += 0.2
    if len(ingredients) >= 3:
        score += 0.4
    elif len(ingredients) >= 1:
        score += 0.2
    if len(instructions) >= 3:
        score += 0.4
    elif len(instructions) >= 1:
        score += 0.2
    return min(round(score, 4), 1.0)


def _clean_items(items: list[str]) -> list[str]:
    return [item.strip() for item in items if item and item.strip()]


class RecipeExtractor:
    def __init__(self, model: StructuredModel) -> None:
        self.model = model

    async def extract(self, data: RecipeExtractionInput) -> ExtractionResult:
        content = build_content_blob(data)
        if not content.strip():
            return ExtractionResult(success=False, error=NO_CONTENT, transcription=data.transcription)

        prompt = PROMPT_TEMPLATE.format(platform=data.platform, content=content)
        try:
            answer = await self.model.generate_structured(prompt, RecipeSchema)
        except Exception as error:
            logger.warning("extractor.llm_failed provider=%s error=%s", self.model.name, error)
            return ExtractionResult(
                success=False,
                error=f"AI extraction failed: {error}",
                transcription=data.transcription,
            )

        if not answer.isRecipe:
            logger.info("extractor.not_a_recipe platform=%s", data.platform)
            return ExtractionResult(success=False, error=NOT_A_RECIPE, transcription=data.transcription)

        title = answer.title.strip()
        ingredients = _clean_items(answer.ingredients)
        instructions = _clean_items(answer.instructions)
        if not title or not ingredients or not instructions:
            return ExtractionResult(success=False, error=INCOMPLETE_RECIPE, transcription=data.transcription)

        confidence = calculate_confidence(title, ingredients, instructions)
        return ExtractionResult(
            success=True,
            data=RecipeData(title=title, ingredients=ingredients, instructions=instructions),
            confidence=confidence,
            transcription=data.transcription,
            ai_provider=self.model.name,
            raw={
                "title": answer.title,
                "ingredients": list(answer.ingredients),
                "instructions": list(answer.instructions),
            },
        )
