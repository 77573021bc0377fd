"""A translator that uses Google's Gemini models."""

import logging

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from vocabweave.config import ProviderSettings
from vocabweave.errors import ProviderError

from .base import BaseTranslator

logger = logging.getLogger(__name__)


class GeminiTranslator(BaseTranslator):
    """
    A translator for the Gemini family of models.

    Uses 'gemini-flash-lite-latest' by default and asks for a JSON response.
    """

    def __init__(self, settings: ProviderSettings | None = None) -> None:
        super().__init__(settings)
        if not self.settings.api_key:
            msg = "API key for Gemini is missing in the provider settings."
            raise ValueError(msg)
        self.model_name = self.settings.model or "gemini-flash-lite-latest"
        try:
            self.client = genai.Client(api_key=self.settings.api_key)
        except (genai_errors.APIError, ValueError) as e:
            msg = f"Failed to initialize Gemini client: {e}"
            raise ProviderError(msg) from e

    def _get_generation_config(self, system_prompt: str, max_tokens: int | None) -> types.GenerateContentConfig:
        """Return the generation configuration for the API call."""
        return types.GenerateContentConfig(
            system_instruction=system_prompt,
            response_mime_type="application/json",
            temperature=self.settings.temperature,
            max_output_tokens=max_tokens or self.settings.max_tokens,
        )

    async def complete(self, system_prompt: str, user_prompt: str, *, max_tokens: int | None = None) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=user_prompt,
                config=self._get_generation_config(system_prompt, max_tokens),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            msg = f"A Google API error occurred: {e}"
            raise ProviderError(msg) from e

        text = response.text
        if not text:
            msg = "Gemini response text is empty."
            raise ProviderError(msg)
        return text
