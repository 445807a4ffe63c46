"""Google Gemini LLM provider."""

import logging

from google import genai
from google.genai import types

from saber.core.config import settings
from saber.core.errors import GenerationError
from saber.services.llm.base import BaseLLMProvider, HistoryEntry

logger = logging.getLogger(__name__)

_ROLES = {"USER": "user", "CHATBOT": "model"}


class GeminiProvider(BaseLLMProvider):
    def __init__(self):
        self.client = genai.Client(api_key=settings.gemini_api_key)
        self.model = settings.gemini_model

    async def generate(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        stop_sequences: list[str] | None = None,
    ) -> str:
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            stop_sequences=stop_sequences or None,
        )
        return await self._generate_content(prompt, config)

    async def chat(
        self,
        message: str,
        history: list[HistoryEntry] | None,
        system_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        contents = [
            types.Content(role=_ROLES.get(h.role, "user"), parts=[types.Part(text=h.message)])
            for h in history or []
        ]
        contents.append(types.Content(role="user", parts=[types.Part(text=message)]))
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )
        return await self._generate_content(contents, config)

    async def _generate_content(self, contents, config: types.GenerateContentConfig) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            logger.error(f"Gemini request failed: {e}")
            raise GenerationError() from e

        if not response.text:
            logger.error(f"Gemini returned an empty response: {response!r}")
            raise GenerationError()
        return response.text
