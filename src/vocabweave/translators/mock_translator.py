"""A mock translator for testing purposes."""

import logging
from collections.abc import Callable, Sequence

from vocabweave.config import ProviderSettings
from vocabweave.errors import ProviderError

from .base import BaseTranslator

logger = logging.getLogger(__name__)

MockResponse = str | Sequence[str] | Callable[[str, str], str]


class MockTranslatorError(ProviderError):
    """Custom exception for mock translator errors."""


class MockTranslator(BaseTranslator):
    """
    A translator answering with canned responses.

    `responses` may be a single string returned every time, a sequence
    consumed call by call (the last one repeats), or a callable receiving
    (system_prompt, user_prompt). Every call is recorded in `calls`.
    """

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        *,
        responses: MockResponse = "[]",
        return_error: bool = False,
    ) -> None:
        super().__init__(settings)
        self.responses = responses
        self.return_error = return_error
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str, *, max_tokens: int | None = None) -> str:
        """
        Return the next canned response.

        Raises:
            MockTranslatorError: If `return_error` was set.

        """
        _ = max_tokens
        self.calls.append((system_prompt, user_prompt))

        if self.return_error:
            msg = "Mock translator was configured to fail."
            raise MockTranslatorError(msg)

        if callable(self.responses):
            return self.responses(system_prompt, user_prompt)
        if isinstance(self.responses, str):
            return self.responses
        if not self.responses:
            return "[]"
        index = min(len(self.calls), len(self.responses)) - 1
        logger.debug("MockTranslator answering call %d.", len(self.calls))
        return self.responses[index]
