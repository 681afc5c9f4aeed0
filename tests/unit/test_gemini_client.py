from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from google.genai.errors import ClientError

from src.services.errors import RateLimitedError
from src.services.gemini_client import GeminiClient, GeminiConfigurationError, GeminiResponseError
from src.services.schemas import RecipeSchema


def _fake_client(response=None, error=None) -> SimpleNamespace:
    generate = AsyncMock(return_value=response, side_effect=error)
    return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate)))


class TestGeminiClient:
    def test_missing_key_fails_on_first_call(self) -> None:
        client = GeminiClient(api_key=None)

        with pytest.raises(GeminiConfigurationError):
            asyncio.run(client.generate_structured("prompt", RecipeSchema))

    def test_returns_parsed_model(self) -> None:
        parsed = RecipeSchema(title="Bolo", ingredients=["a"], instructions=["b"], isRecipe=True)
        fake = _fake_client(SimpleNamespace(parsed=parsed, text=None))

        result = asyncio.run(GeminiClient("key", client=fake).generate_structured("prompt", RecipeSchema))

        assert result is parsed
        kwargs = fake.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["config"].response_mime_type == "application/json"

    def test_falls_back_to_text(self) -> None:
        fake = _fake_client(SimpleNamespace(parsed=None, text='{"title": "Bolo", "isRecipe": true}'))

        result = asyncio.run(GeminiClient("key", client=fake).generate_structured("prompt", RecipeSchema))

        assert result.title == "Bolo"
        assert result.isRecipe is True
        assert result.ingredients == []

    def test_invalid_json(self) -> None:
        fake = _fake_client(SimpleNamespace(parsed=None, text="not json"))

        with pytest.raises(GeminiResponseError):
            asyncio.run(GeminiClient("key", client=fake).generate_structured("prompt", RecipeSchema))

    def test_quota_error_is_rate_limited(self) -> None:
        error = ClientError(429, {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}})
        fake = _fake_client(error=error)

        with pytest.raises(RateLimitedError):
            asyncio.run(GeminiClient("key", client=fake).generate_structured("prompt", RecipeSchema))
