"""Manages one-shot runs of VocabWeave over whole documents."""

import logging

from bs4 import BeautifulSoup

from .config import VocabConfig
from .dom import translated_nodes
from .layout import Viewport
from .models import RunSummary
from .replacer import Replacer
from .reporters import SummaryReporter
from .session import DEFAULT_TRANSLATOR, Session
from .storage import KeyValueStore
from .types import Provenance

logger = logging.getLogger(__name__)

HTML_PARSER = "html.parser"


def parse_document(html: str) -> BeautifulSoup:
    """Parse markup into the tree every component works on."""
    return BeautifulSoup(html, HTML_PARSER)


def _summarize(session: Session, status: str) -> RunSummary:
    nodes = translated_nodes(session.document)
    from_cache = sum(1 for node in nodes if node.get("data-provenance") == Provenance.CACHE.value)
    return RunSummary(
        status=status,
        substitutions=len(nodes),
        cache_hits=from_cache,
        provider_substitutions=len(nodes) - from_cache,
        segments_processed=len(session.scheduler.processed_fingerprints),
        cache_entries=session.cache.size(),
        provider=session.config.provider if session.translator is not None else None,
        stats=session.stats.snapshot.model_copy(),
    )


async def run_document(
    html: str,
    config: VocabConfig,
    *,
    store: KeyValueStore | None = None,
    translator: object = DEFAULT_TRANSLATOR,
    scroll_y: float = 0.0,
    viewport_height: float = 800.0,
    full_page: bool = False,
    url: str | None = None,
    report: bool = True,
) -> tuple[str, RunSummary]:
    """
    Process a document the way a reader at `scroll_y` would see it processed.

    The session starts, waits for every queued container and deferred provider
    pass, and flushes the cache before the rewritten markup is returned.

    Args:
        html: The document markup.
        config: The reader's configuration.
        store: Persistence for the cache and statistics.
        translator: Provider client; defaults to the one named in `config`.
        scroll_y: Scroll offset of the simulated viewport.
        viewport_height: Height of the simulated viewport.
        full_page: Treat the whole document as visible.
        url: Document address, checked against the site rules.
        report: Log a summary when done.

    Returns:
        The rewritten markup and a summary of the run.

    """
    document = parse_document(html)
    viewport = None if full_page else Viewport(scroll_y=scroll_y, height=viewport_height, margin=config.scheduler.viewport_margin)

    async with Session(document, config, store=store, translator=translator, viewport=viewport, url=url) as session:
        result = await session.start()
        if result.status == "started":
            await session.wait_idle()
        summary = _summarize(session, result.status)

    if report:
        SummaryReporter().generate(summary)
    return str(document), summary


def restore_document(html: str) -> tuple[str, int]:
    """
    Undo every substitution in previously processed markup.

    Returns:
        The restored markup and the number of substitutions undone.

    """
    document = parse_document(html)
    restored = Replacer().restore_all(document)
    logger.debug("Restored %d substitutions.", restored)
    return str(document), restored
