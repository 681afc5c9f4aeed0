from __future__ import annotations

import logging
from typing import Optional, Type, TypeVar

from google import genai
from google.genai import types
from google.genai.errors import ClientError
from pydantic import BaseModel

from src.services.errors import RateLimitedError, ServiceError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"

T = TypeVar("T", bound=BaseModel)


class GeminiConfigurationError(ServiceError):
    pass


class GeminiResponseError(ServiceError):
    pass


class GeminiClient:
    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = DEFAULT_MODEL,
        client: Optional[genai.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self._client = client

    def _get_client(self) -> genai.Client:
        # criado sob demanda para a API subir mesmo sem chave configurada
        if self._client is None:
            if not self.api_key:
                raise GeminiConfigurationError("Missing Gemini API key.")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate_structured(self, prompt: str, schema: Type[T]) -> T:
        """
        Chama o modelo em modo JSON e valida a resposta contra `schema`.

        Raises:
            RateLimitedError: Quando a API responde 429 / RESOURCE_EXHAUSTED
            GeminiResponseError: Quando a resposta nao tem conteudo valido
        """
        try:
            response = await self._get_client().aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=schema,
                    temperature=0.2,
                ),
            )
        except ClientError as err:
            status_code = getattr(err, "code", None)
            message = str(err)
            if status_code == 429 or "RESOURCE_EXHAUSTED" in message:
                raise RateLimitedError(
                    "Gemini API rate limit reached. Try again in a few moments."
                ) from err
            raise

        parsed = getattr(response, "parsed", None)
        if isinstance(parsed, schema):
            return parsed

        text = getattr(response, "text", None)
        if not text:
            raise GeminiResponseError("Model response did not include text content.")
        try:
            return schema.model_validate_json(text)
        except ValueError as error:
            raise GeminiResponseError(f"Model returned invalid JSON: {error}") from error
