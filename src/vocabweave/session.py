"""The per-document session bundling configuration, cache and processing components."""

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Literal
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .cache import TranslationCache
from .config import VocabConfig
from .layout import FlowLayout, Layout, Viewport
from .orchestrator import TranslationOrchestrator
from .replacer import Replacer
from .scheduler import VisibilityScheduler
from .stats import UsageStats
from .storage import KeyValueStore
from .translators import BaseTranslator, create_translator

__all__ = ["DEFAULT_TRANSLATOR", "Session", "StartResult"]

logger = logging.getLogger(__name__)

# Sentinel: build the translator named in the configuration.
DEFAULT_TRANSLATOR = object()


@dataclass(frozen=True)
class StartResult:
    """Outcome of starting a session."""

    status: Literal["started", "disabled", "excluded"]
    queued: int = 0


class Session:
    """
    Everything one document needs, created together and torn down together.

    Usage:
        async with Session(document, config, store=store) as session:
            await session.start()
            session.scroll_to(1200)
            await session.wait_idle()
    """

    def __init__(
        self,
        document: BeautifulSoup,
        config: VocabConfig,
        *,
        store: KeyValueStore | None = None,
        translator: BaseTranslator | None | object = DEFAULT_TRANSLATOR,
        layout: Layout | None = None,
        viewport: Viewport | None = None,
        url: str | None = None,
    ) -> None:
        """
        Build the session's components.

        Args:
            document: The parsed document to rewrite in place.
            config: The reader's configuration.
            store: Persistence for the word cache and statistics.
            translator: Provider client. Defaults to the one named in `config`;
                pass None to run on cached translations only.
            layout: Geometry used for visibility. Defaults to `FlowLayout`.
            viewport: The visible window. None processes the whole document.
            url: Address of the document, checked against the site rules.

        """
        self.document = document
        self.config = config
        self.url = url
        self.cache = TranslationCache(store, max_size=config.cache_max_size)
        self.stats = UsageStats(store)
        if translator is DEFAULT_TRANSLATOR:
            translator = create_translator(config.provider, config.provider_settings)
        self.translator: BaseTranslator | None = translator  # type: ignore[assignment]
        self.layout = layout or FlowLayout(document)
        self.orchestrator = TranslationOrchestrator(config, self.cache, self.translator, self.stats)
        self.replacer = Replacer(config.translation_style)
        self.scheduler = VisibilityScheduler(
            document,
            config,
            self.orchestrator,
            self.replacer,
            layout=self.layout,
            viewport=viewport,
        )
        self.started = False

    @property
    def hostname(self) -> str | None:
        """Host part of the document URL, if any."""
        return urlparse(self.url).hostname if self.url else None

    @property
    def viewport(self) -> Viewport | None:
        """The current visible window."""
        return self.scheduler.viewport

    async def start(self) -> StartResult:
        """Load persisted state, queue the memorize list and start observing containers."""
        if not self.config.enabled:
            logger.info("VocabWeave is disabled in the configuration.")
            return StartResult("disabled")
        if not self.config.is_site_allowed(self.hostname):
            logger.info("Site '%s' is excluded by the site rules.", self.hostname)
            return StartResult("excluded")

        await self.cache.load()
        await self.stats.load()
        if self.translator is None:
            logger.warning("No translation provider configured; only cached translations will be applied.")

        memorize = self.config.memorize_words
        if memorize:
            self.scheduler.spawn(self.scheduler.process_specific_words(memorize))

        self.started = True
        queued = self.scheduler.observe_containers()
        logger.debug("Session started with %d containers queued.", queued)
        return StartResult("started", queued)

    def scroll_to(self, scroll_y: float) -> int:
        """Move the viewport; returns how many containers came into view."""
        current = self.scheduler.viewport or Viewport(margin=self.config.scheduler.viewport_margin)
        return self.scheduler.update_viewport(current.scrolled_to(scroll_y))

    def notify_mutation(self) -> int:
        """Re-scan after the document changed; returns how many containers were queued."""
        self.layout.invalidate()
        if not self.started:
            return 0
        return self.scheduler.observe_containers()

    async def wait_idle(self) -> None:
        """Wait until every queued container and every deferred pass has finished."""
        await self.scheduler.wait_idle()
        await self.orchestrator.wait_background()

    async def process_specific_words(self, words: list[str]) -> int:
        """Substitute the given words wherever they appear."""
        return await self.scheduler.process_specific_words(words)

    def restore_same_word(self, word: str) -> int:
        """Undo every substitution of one word."""
        return self.replacer.restore_same_word(self.document, word)

    def restore_all(self) -> int:
        """Return the document and the session to the clean baseline."""
        restored = self.replacer.restore_all(self.document)
        self.scheduler.reset()
        self.layout.invalidate()
        logger.info("Restored %d substitutions.", restored)
        return restored

    async def close(self) -> None:
        """Wait for bookkeeping and flush the cache."""
        await self.orchestrator.wait_background()
        await self.cache.close()

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
