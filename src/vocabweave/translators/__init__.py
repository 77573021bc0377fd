"""
Translation provider implementations.

Each translator adheres to the `BaseTranslator` interface and is selected by
the provider name in the user's configuration.
"""

import logging

from vocabweave.config import ProviderSettings

from .base import BaseTranslator
from .gemini_translator import GeminiTranslator
from .mock_translator import MockTranslator
from .openai_translator import OpenAITranslator

logger = logging.getLogger(__name__)

# Central mapping from provider name to translator class.
TRANSLATOR_MAPPING: dict[str, type[BaseTranslator]] = {
    "openai": OpenAITranslator,
    "deepseek": OpenAITranslator,
    "gemini": GeminiTranslator,
    "mock": MockTranslator,
}


def create_translator(provider_name: str | None, settings: ProviderSettings | None) -> BaseTranslator | None:
    """
    Instantiate the translator registered under `provider_name`.

    Returns:
        An initialized translator, or None if the provider is unknown,
        unconfigured, or fails to initialize (e.g. a missing API key).

    """
    if not provider_name:
        return None
    translator_class = TRANSLATOR_MAPPING.get(provider_name.lower())
    if translator_class is None:
        logger.warning("Unknown translator provider: '%s'", provider_name)
        return None
    if settings is None:
        logger.warning("Provider '%s' is not configured in your settings file.", provider_name)
        return None
    try:
        return translator_class(settings=settings)
    except (ImportError, ValueError, ConnectionError) as e:
        logger.warning("Could not initialize translator '%s': %s", provider_name, e)
        return None


__all__ = [
    "TRANSLATOR_MAPPING",
    "BaseTranslator",
    "GeminiTranslator",
    "MockTranslator",
    "OpenAITranslator",
    "create_translator",
]
