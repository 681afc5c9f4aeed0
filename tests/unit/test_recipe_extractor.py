from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from src.services.errors import RateLimitedError
from src.services.recipe_extractor import (
    RecipeExtractor,
    build_content_blob,
    calculate_confidence,
)
from src.services.schemas import RecipeExtractionInput, RecipeSchema


class StructuredModelStub:
    name = "stub"

    def __init__(self, answer: Optional[RecipeSchema] = None, error: Optional[Exception] = None) -> None:
        self.answer = answer
        self.error = error
        self.prompts: list[str] = []

    async def generate_structured(self, prompt, schema):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


def _input(**overrides) -> RecipeExtractionInput:
    values = dict(
        title="Bolo de cenoura",
        text_content="Bolo de cenoura",
        hashtags=["bolo", "receita"],
        transcription=None,
        platform="instagram",
    )
    values.update(overrides)
    return RecipeExtractionInput(**values)


def _run(extractor: RecipeExtractor, data: RecipeExtractionInput):
    return asyncio.run(extractor.extract(data))


class TestContentBlob:
    def test_skips_text_equal_to_title_and_empty_parts(self) -> None:
        blob = build_content_blob(_input(transcription="mexa bem"))
        assert blob == "Bolo de cenoura\n\nbolo receita\n\nmexa bem"

    def test_empty_input(self) -> None:
        blob = build_content_blob(_input(title=None, text_content=None, hashtags=[]))
        assert blob == ""


class TestConfidence:
    @pytest.mark.parametrize(
        "title,ingredients,instructions,expected",
        [
            ("t", ["a", "b", "c"], ["1", "2", "3"], 1.0),
            ("t", ["a"], ["1"], 0.6),
            ("", ["a", "b", "c"], ["1", "2", "3"], 0.8),
            ("t", [], [], 0.2),
            ("", [], [], 0.0),
        ],
    )
    def test_scores(self, title, ingredients, instructions, expected) -> None:
        assert calculate_confidence(title, ingredients, instructions) == pytest.approx(expected)

    def test_monotonic_and_capped(self) -> None:
        previous = 0.0
        for count in range(0, 8):
            score = calculate_confidence("t", ["x"] * count, ["y"] * count)
            assert score >= previous
            assert score <= 1.0
            previous = score


class TestExtract:
    def test_no_content_skips_model(self) -> None:
        model = StructuredModelStub()
        result = _run(RecipeExtractor(model), _input(title=None, text_content=None, hashtags=[]))

        assert result.success is False
        assert result.error == "No content available for extraction"
        assert model.prompts == []

    def test_not_a_recipe(self) -> None:
        model = StructuredModelStub(RecipeSchema(title="", ingredients=[], instructions=[], isRecipe=False))
        result = _run(RecipeExtractor(model), _input())

        assert result.success is False
        assert result.data is None
        assert result.error == "Content does not contain a recipe"

    def test_incomplete_recipe(self) -> None:
        model = StructuredModelStub(
            RecipeSchema(title="Bolo", ingredients=["farinha"], instructions=[], isRecipe=True)
        )
        result = _run(RecipeExtractor(model), _input())

        assert result.success is False
        assert result.error == "Incomplete recipe data extracted"

    def test_model_failure_is_typed(self) -> None:
        model = StructuredModelStub(error=RateLimitedError("quota"))
        result = _run(RecipeExtractor(model), _input())

        assert result.success is False
        assert result.error == "AI extraction failed: quota"

    def test_success(self) -> None:
        model = StructuredModelStub(
            RecipeSchema(
                title="Bolo de cenoura",
                ingredients=["3 cenouras", "2 xicaras de farinha", "3 ovos"],
                instructions=["Bata", "Asse por 40 minutos"],
                isRecipe=True,
            )
        )
        result = _run(RecipeExtractor(model), _input(transcription="bata tudo"))

        assert result.success is True
        assert result.data is not None
        assert result.data.title == "Bolo de cenoura"
        assert result.confidence == pytest.approx(0.8)
        assert result.ai_provider == "stub"
        assert result.transcription == "bata tudo"
        assert result.raw["ingredients"] == ["3 cenouras", "2 xicaras de farinha", "3 ovos"]
        assert "from instagram" in model.prompts[0]
        assert "bata tudo" in model.prompts[0]
