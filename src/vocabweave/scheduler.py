"""Visibility-driven, batched processing of text containers."""

import asyncio
import logging
from collections.abc import Coroutine, Iterable, Sequence
from dataclasses import dataclass, replace
from functools import partial
from typing import Any

from bs4 import BeautifulSoup, Tag

from .config import VocabConfig
from .dom import OBSERVING_ATTR, PROCESSED_ATTR, element_path, get_text_content, iter_text_nodes, owner_document
from .language import collapse_whitespace, is_code_text, mask_words, tokens_for_lookup
from .layout import FlowLayout, Layout, Viewport
from .orchestrator import TranslationOrchestrator
from .region_state import (
    SKIP_ALREADY_PROCESSED,
    SKIP_DETACHED,
    SKIP_KNOWN_FINGERPRINT,
    SKIP_LEARNED_ONLY,
    RegionState,
    SkipReason,
    can_transition,
)
from .replacer import Replacer
from .segments import SegmentIdentifier, find_text_containers
from .types import Replacement, Segment
from .utils.hashing import fingerprint

__all__ = ["VisibilityScheduler"]

logger = logging.getLogger(__name__)

# Context rules for memorize-list lookups.
MIN_CONTEXT_LENGTH = 30
MIN_SPECIFIC_TEXT_LENGTH = 10


@dataclass
class _Region:
    element: Tag
    state: RegionState = RegionState.UNSEEN
    visible: bool = False


class VisibilityScheduler:
    """
    Queues containers as they come into view and resolves them in batches.

    Containers move through `RegionState`: tracked containers wait in
    OBSERVING until a viewport update shows them, then PENDING until a
    debounced drain claims them. A drain claims up to `batch_size` pending
    containers and resolves them `concurrency` at a time with a pause between
    request batches. Only one drain runs at a time; containers queued meanwhile
    are picked up by a follow-up drain.

    Elements are tracked by identity: BeautifulSoup compares tags by markup,
    so two equal paragraphs would otherwise collide.
    """

    def __init__(
        self,
        document: BeautifulSoup,
        config: VocabConfig,
        orchestrator: TranslationOrchestrator,
        replacer: Replacer,
        *,
        layout: Layout | None = None,
        viewport: Viewport | None = None,
        processed_fingerprints: set[str] | None = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            document: The document whose containers are processed.
            config: Session configuration; learned words are re-read on every use.
            orchestrator: Resolves container text into replacements.
            replacer: Applies replacements to containers.
            layout: Measures containers. Defaults to a `FlowLayout` of the document.
            viewport: The visible window. None treats the whole document as visible.
            processed_fingerprints: Shared set of retired fingerprints.

        """
        self.document = document
        self.config = config
        self.settings = config.scheduler
        self.orchestrator = orchestrator
        self.replacer = replacer
        self.layout = layout or FlowLayout(document)
        self.viewport = viewport
        self.processed_fingerprints = processed_fingerprints if processed_fingerprints is not None else set()
        self.identifier = SegmentIdentifier(self.settings, self.processed_fingerprints)

        self.applied_count = 0
        self._regions: dict[int, _Region] = {}
        self._pending: dict[int, Tag] = {}
        self._draining = False
        self._drain_handle: asyncio.TimerHandle | None = None
        self._drain_task: asyncio.Task[int] | None = None
        self._deferred: set[asyncio.Task[Any]] = set()
        self._background: set[asyncio.Task[Any]] = set()
        self._generation = 0

    @property
    def root(self) -> Tag:
        """The element scanned for containers."""
        return self.document.body or self.document

    @property
    def is_draining(self) -> bool:
        """Whether a drain cycle is running."""
        return self._draining

    @property
    def pending_count(self) -> int:
        """Number of containers waiting for a drain."""
        return len(self._pending)

    def state_of(self, element: Tag) -> RegionState:
        """Current lifecycle state of a container."""
        region = self._regions.get(id(element))
        if region is None or region.element is not element:
            return RegionState.UNSEEN
        return region.state

    def _transition(self, element: Tag, target: RegionState) -> bool:
        current = self.state_of(element)
        if current is target:
            return True
        if not can_transition(current, target):
            logger.debug("Ignoring transition %s -> %s for %s.", current.value, target.value, element_path(element))
            return False
        region = self._regions.get(id(element))
        if region is None or region.element is not element:
            self._regions[id(element)] = _Region(element, target)
        else:
            region.state = target
        return True

    def _entered_view(self, element: Tag) -> bool:
        """Record the element's visibility; True only when it was out of view before."""
        visible = self._is_visible(element)
        region = self._regions.get(id(element))
        if region is None or region.element is not element:
            return visible
        entered = visible and not region.visible
        region.visible = visible
        return entered

    def _is_attached(self, element: Tag) -> bool:
        return owner_document(element) is self.document

    def _is_visible(self, element: Tag) -> bool:
        if self.viewport is None:
            return True
        box = self.layout.measure(element)
        return box is not None and self.viewport.intersects(box)

    def _enqueue(self, element: Tag) -> bool:
        if not self._transition(element, RegionState.PENDING):
            return False
        self._pending[id(element)] = element
        element[OBSERVING_ATTR] = "true"
        return True

    def observe_containers(self) -> int:
        """
        Track every unprocessed container of the document and queue the visible ones.

        Returns:
            The number of containers queued.

        """
        queued = 0
        for container in find_text_containers(self.root, min_direct_text=self.settings.min_direct_text):
            if container.has_attr(PROCESSED_ATTR):
                continue
            state = self.state_of(container)
            if state is RegionState.UNSEEN:
                self._transition(container, RegionState.OBSERVING)
                state = RegionState.OBSERVING
            entered = self._entered_view(container)
            if state is RegionState.OBSERVING and entered and not container.has_attr(OBSERVING_ATTR):
                queued += self._enqueue(container)
        if queued:
            logger.debug("Queued %d visible containers.", queued)
            self._schedule_drain()
        return queued

    def update_viewport(self, viewport: Viewport) -> int:
        """
        Move the viewport and queue observed containers that just came into view.

        A container already in view is not queued again until it leaves the view and returns.

        Returns:
            The number of containers queued.

        """
        self.viewport = viewport
        queued = 0
        for key, region in list(self._regions.items()):
            if region.state is RegionState.PROCESSED:
                continue
            element = region.element
            if region.state is RegionState.OBSERVING and not self._is_attached(element):
                del self._regions[key]
                continue
            entered = self._entered_view(element)
            if region.state is RegionState.OBSERVING and entered and not element.has_attr(PROCESSED_ATTR):
                queued += self._enqueue(element)
        if queued:
            self._schedule_drain()
        return queued

    def _schedule_drain(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; pending containers wait for an explicit drain.")
            return
        if self._drain_handle is not None:
            self._drain_handle.cancel()
        self._drain_handle = loop.call_later(self.settings.debounce, self._start_drain)

    def _start_drain(self) -> None:
        self._drain_handle = None
        if self._draining:
            return
        task = asyncio.ensure_future(self.drain())
        self._drain_task = task

        def _done(finished: asyncio.Task[int]) -> None:
            if self._drain_task is finished:
                self._drain_task = None
            if not finished.cancelled() and finished.exception() is not None:
                logger.error("Drain cycle failed: %s", finished.exception())

        task.add_done_callback(_done)

    def _claim(self) -> list[Tag]:
        claimed = []
        for key in list(self._pending)[: self.settings.batch_size]:
            claimed.append(self._pending.pop(key))
        return claimed

    async def drain(self) -> int:
        """
        Run one drain cycle over the pending containers.

        Returns:
            The number of immediate substitutions applied.

        """
        if self._draining or not self._pending:
            return 0
        self._draining = True
        applied = 0
        try:
            learned = self.config.learned_set
            segments = []
            for container in self._claim():
                if container.has_attr(OBSERVING_ATTR):
                    del container[OBSERVING_ATTR]
                segment, reason = self._prepare(container, learned)
                if segment is None:
                    logger.debug("Skipped %s: %s", element_path(container), reason)
                    continue
                segments.append(segment)

            step = self.settings.concurrency
            for start in range(0, len(segments), step):
                batch = segments[start : start + step]
                counts = await asyncio.gather(*(self.process_segment(segment, learned) for segment in batch))
                applied += sum(counts)
                if start + step < len(segments):
                    await asyncio.sleep(self.settings.inter_batch_delay)
        finally:
            self._draining = False
            if self._pending:
                self._schedule_drain()
        return applied

    def _prepare(self, container: Tag, learned: set[str]) -> tuple[Segment | None, SkipReason | None]:
        """Validate a claimed container and turn it into a segment with learned words masked out."""
        if not self._is_attached(container):
            self._regions.pop(id(container), None)
            return None, SKIP_DETACHED
        self._transition(container, RegionState.PROCESSING)
        if container.has_attr(PROCESSED_ATTR):
            self._transition(container, RegionState.PROCESSED)
            return None, SKIP_ALREADY_PROCESSED

        segment, reason = self.identifier.build(container)
        if segment is None:
            settled = RegionState.PROCESSED if reason is SKIP_KNOWN_FINGERPRINT else RegionState.OBSERVING
            self._transition(container, settled)
            return None, reason

        masked = collapse_whitespace(mask_words(segment.text, learned)) if learned else segment.text
        if len(masked) < self.settings.min_masked_length:
            self._transition(container, RegionState.OBSERVING)
            return None, SKIP_LEARNED_ONLY
        segment.masked_text = masked
        return segment, None

    async def process_segment(self, segment: Segment, learned: set[str] | None = None) -> int:
        """
        Resolve one segment, apply its cache hits now and its provider results when they arrive.

        The fingerprint is retired as soon as the immediate pass is done.

        Returns:
            The number of immediate substitutions applied.

        """
        learned = self.config.learned_set if learned is None else learned
        result = self.orchestrator.resolve(segment.masked_text or segment.text)

        immediate = [r for r in result.immediate if r.key not in learned]
        count = self.replacer.apply(segment.element, immediate) if immediate else 0
        self.applied_count += count
        self.processed_fingerprints.add(segment.fingerprint)
        self._regions[id(segment.element)] = _Region(segment.element, RegionState.PROCESSED)

        if result.deferred is not None:
            self._deferred.add(result.deferred)
            result.deferred.add_done_callback(partial(self._apply_deferred, segment, self._generation))
        return count

    def _apply_deferred(self, segment: Segment, generation: int, task: "asyncio.Task[list[Replacement]]") -> None:
        self._deferred.discard(task)
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error("Deferred resolution failed for %s: %s", segment.path, task.exception())
            return
        replacements = task.result()
        if not replacements:
            return
        if generation != self._generation:
            logger.debug("Discarding deferred results for %s after a restore.", segment.path)
            return
        if not self._is_attached(segment.element):
            logger.debug("Discarding deferred results for detached %s.", segment.path)
            return

        learned = self.config.learned_set
        already = self.replacer.applied_originals(segment.element)
        fresh = [r for r in replacements if r.key not in learned and r.key not in already]
        if fresh:
            self.applied_count += self.replacer.apply(segment.element, fresh)

    async def process_specific_words(self, words: Sequence[str]) -> int:
        """
        Substitute explicitly requested words wherever they still appear as plain text.

        Processed containers are included. Each owning container is handled
        once, identified by its fingerprint.

        Returns:
            The number of substitutions applied.

        """
        targets = {w.lower() for w in words if w and w.strip()}
        if not targets or not self.config.enabled:
            return 0

        already = self.replacer.applied_originals(self.root)
        segments: dict[str, Segment] = {}
        for node in list(iter_text_nodes(self.root, skip_processed=False)):
            stripped = node.strip()
            if not stripped or is_code_text(stripped):
                continue
            tokens = {t.lower() for t in tokens_for_lookup(str(node))}
            if not any(t in targets and t not in already for t in tokens):
                continue
            container = node.parent
            if container is None:
                continue
            segment = self._context_segment(container)
            if segment is not None:
                segments.setdefault(segment.fingerprint, segment)

        if not segments:
            return 0

        translations = await self.orchestrator.translate_specific_words(list(words))
        if not translations:
            return 0

        applied = 0
        for segment in segments.values():
            applied += self.replacer.apply(segment.element, self._position_in(segment.text, translations))
        self.applied_count += applied
        logger.debug("Applied %d substitutions for %d requested words.", applied, len(targets))
        return applied

    @staticmethod
    def _context_segment(container: Tag) -> Segment | None:
        text = get_text_content(container)
        if len(text) < MIN_CONTEXT_LENGTH and isinstance(container.parent, Tag) and not isinstance(container.parent, BeautifulSoup):
            text = get_text_content(container.parent)
        if len(text) < MIN_SPECIFIC_TEXT_LENGTH:
            return None
        path = element_path(container)
        return Segment(element=container, text=text, fingerprint=fingerprint(text, path), path=path)

    @staticmethod
    def _position_in(text: str, translations: Iterable[Replacement]) -> list[Replacement]:
        lowered = text.lower()
        return [replace(t, position=lowered.find(t.key)) for t in translations if t.key in lowered]

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task[Any]":
        """Run background work that `wait_idle` should wait for."""
        task = asyncio.ensure_future(coro)
        self._background.add(task)

        def _done(finished: asyncio.Task[Any]) -> None:
            self._background.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                logger.error("Background task failed: %s", finished.exception())

        task.add_done_callback(_done)
        return task

    async def wait_idle(self) -> None:
        """Drain everything pending and wait for every deferred pass and background task."""
        while True:
            if self._drain_handle is not None:
                self._drain_handle.cancel()
                self._drain_handle = None
            if self._pending and self._drain_task is None and not self._draining:
                self._start_drain()
            waiting = list(self._deferred | self._background)
            if self._drain_task is not None:
                waiting.append(self._drain_task)
            if not waiting:
                return
            await asyncio.gather(*waiting, return_exceptions=True)
            # Let done-callbacks settle before looking again.
            await asyncio.sleep(0)

    def reset(self) -> None:
        """
        Forget all region state, pending containers and retired fingerprints.

        Deferred results still in flight are discarded when they arrive.
        """
        self._generation += 1
        if self._drain_handle is not None:
            self._drain_handle.cancel()
            self._drain_handle = None
        for element in self._pending.values():
            if element.has_attr(OBSERVING_ATTR):
                del element[OBSERVING_ATTR]
        self._pending.clear()
        self._regions.clear()
        self.processed_fingerprints.clear()
