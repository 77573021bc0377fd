"""Defines the base class for all translation providers."""

from abc import ABC, abstractmethod

from vocabweave.config import ProviderSettings


class BaseTranslator(ABC):
    """Abstract base class for translation provider clients."""

    def __init__(self, settings: ProviderSettings | None = None) -> None:
        """
        Initialize the translator with provider-specific settings.

        Args:
            settings: A Pydantic model containing provider-specific configurations.

        """
        self.settings = settings or ProviderSettings()

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str, *, max_tokens: int | None = None) -> str:
        """
        Send one instruction to the provider and return its raw text answer.

        Args:
            system_prompt: The standing instruction for the model.
            user_prompt: The request, including the text to analyse.
            max_tokens: Overrides the configured response budget.

        Returns:
            The model's answer, unparsed.

        Raises:
            ProviderError: If the provider is unreachable or answers with a failure.

        """
        raise NotImplementedError
