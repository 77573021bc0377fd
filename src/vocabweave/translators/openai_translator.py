"""A translator for OpenAI-compatible chat completion endpoints."""

import logging

import openai

from vocabweave.config import ProviderSettings
from vocabweave.errors import ProviderError

from .base import BaseTranslator

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.deepseek.com"
DEFAULT_MODEL = "deepseek-chat"


class OpenAITranslator(BaseTranslator):
    """
    Talks to any endpoint speaking the OpenAI chat completions protocol.

    Defaults to DeepSeek; point `base_url` elsewhere for OpenAI itself or a
    local server.
    """

    def __init__(self, settings: ProviderSettings | None = None) -> None:
        super().__init__(settings)
        if not self.settings.api_key:
            msg = "API key for the OpenAI-compatible provider is missing in the provider settings."
            raise ValueError(msg)
        self.model_name = self.settings.model or DEFAULT_MODEL
        self.client = openai.AsyncOpenAI(
            base_url=self.settings.base_url or DEFAULT_BASE_URL,
            api_key=self.settings.api_key,
        )
        logger.debug("Initialized OpenAI-compatible translator with model '%s'.", self.model_name)

    async def complete(self, system_prompt: str, user_prompt: str, *, max_tokens: int | None = None) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.settings.temperature,
                max_tokens=max_tokens or self.settings.max_tokens,
            )
        except openai.APIError as e:
            msg = f"OpenAI-compatible request failed: {e}"
            raise ProviderError(msg) from e

        if not response.choices:
            logger.warning("Provider returned no choices.")
            return "[]"
        content = response.choices[0].message.content or "[]"
        logger.debug("[OpenAI] Oup: %s", content)
        return content
