"""Google Gemini LLM provider using the google-genai SDK."""

from __future__ import annotations

import json

import httpx
from google import genai
from google.genai import errors, types
from pydantic import BaseModel, ValidationError

from rag_orchestrator.exceptions import GenerationError, TransientProviderError
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.resilience.retry import RetryPolicy, with_retry

logger = get_logger("gemini")

_TRANSIENT_CODES = {408, 429, 500, 502, 503, 504}


def _classify(e: Exception, what: str) -> Exception:
    if isinstance(e, errors.APIError) and e.code in _TRANSIENT_CODES:
        return TransientProviderError(f"{what}: {e.code} {e.message}")
    if isinstance(e, httpx.TransportError):
        return TransientProviderError(f"{what}: {e}")
    return GenerationError(f"{what}: {e}")


class GeminiProvider:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model
        self._retry = retry_policy or RetryPolicy()

    async def _generate_content(self, prompt: str, config: types.GenerateContentConfig, what: str):
        async def call():
            try:
                return await self._client.aio.models.generate_content(
                    model=self._model,
                    contents=prompt,
                    config=config,
                )
            except (errors.APIError, httpx.HTTPError) as e:
                raise _classify(e, what) from e

        return await with_retry(what, call, self._retry)

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4096,
    ) -> str:
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
        )
        if system:
            config.system_instruction = system

        response = await self._generate_content(prompt, config, "gemini_generate")
        return response.text or ""

    async def generate_structured(
        self,
        prompt: str,
        response_schema: type[BaseModel],
        system: str | None = None,
    ) -> BaseModel:
        config = types.GenerateContentConfig(
            temperature=0.0,
            response_mime_type="application/json",
            response_schema=response_schema,
        )
        if system:
            config.system_instruction = system

        response = await self._generate_content(prompt, config, "gemini_structured")
        try:
            data = json.loads(response.text or "")
            return response_schema.model_validate(data)
        except (ValueError, ValidationError) as e:
            logger.warning("gemini_structured_invalid", schema=response_schema.__name__)
            raise GenerationError(f"Gemini structured output invalid: {e}") from e
