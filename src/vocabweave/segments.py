"""Discovery and fingerprinting of translatable text regions."""

import logging
from collections.abc import Iterable

from bs4 import Tag

from .config import SchedulerSettings
from .dom import BLOCK_TAGS, element_path, get_text_content, has_direct_text, should_skip_node
from .language import is_code_text
from .layout import Layout, Viewport
from .region_state import SKIP_CODE_LIKE, SKIP_KNOWN_FINGERPRINT, SKIP_TOO_SHORT, SkipReason
from .types import Segment
from .utils.hashing import fingerprint

__all__ = ["SegmentIdentifier", "find_text_containers"]

logger = logging.getLogger(__name__)


def find_text_containers(root: Tag, *, min_direct_text: int = 10) -> list[Tag]:
    """
    Collect block-level containers that directly own text, in document order.

    Skipped subtrees are pruned. A collected container is not searched for
    nested containers; the walk only descends through elements that were
    not collected themselves.
    """
    containers: list[Tag] = []

    def visit(element: Tag) -> None:
        for child in element.children:
            if not isinstance(child, Tag) or should_skip_node(child):
                continue
            if child.name.lower() in BLOCK_TAGS and has_direct_text(child, min_direct_text):
                containers.append(child)
            else:
                visit(child)

    if not should_skip_node(root):
        visit(root)
    return containers


class SegmentIdentifier:
    """Turns containers into fingerprinted segments, dropping ones already handled."""

    def __init__(self, settings: SchedulerSettings, processed_fingerprints: set[str]) -> None:
        """
        Initialize the identifier.

        Args:
            settings: Length thresholds and batch cap.
            processed_fingerprints: Session-wide set of retired fingerprints, shared by reference.

        """
        self.settings = settings
        self.processed_fingerprints = processed_fingerprints

    def build(self, container: Tag) -> tuple[Segment | None, SkipReason | None]:
        """Extract and fingerprint one container, or say why it is not a segment."""
        text = get_text_content(container)
        if not text or len(text) < self.settings.min_segment_length:
            return None, SKIP_TOO_SHORT
        if is_code_text(text):
            return None, SKIP_CODE_LIKE
        path = element_path(container)
        digest = fingerprint(text, path)
        if digest in self.processed_fingerprints:
            return None, SKIP_KNOWN_FINGERPRINT
        segment = Segment(
            element=container,
            text=text[: self.settings.max_segment_length],
            fingerprint=digest,
            path=path,
        )
        return segment, None

    def find_segments(
        self,
        root: Tag,
        viewport: Viewport | None = None,
        layout: Layout | None = None,
    ) -> list[Segment]:
        """
        Return up to `batch_size` unprocessed segments under `root`.

        With a viewport (and the layout to measure against), only containers
        intersecting the expanded viewport window are considered.

        This is the one-shot entry point for callers without a scheduler.
        `VisibilityScheduler` walks the containers itself and calls `build`
        per container, since it tracks each container's state between passes.
        """
        containers: Iterable[Tag] = find_text_containers(root, min_direct_text=self.settings.min_direct_text)
        segments: list[Segment] = []
        for container in containers:
            if len(segments) >= self.settings.batch_size:
                break
            if viewport is not None and layout is not None:
                box = layout.measure(container)
                if box is None or not viewport.intersects(box):
                    continue
            segment, reason = self.build(container)
            if segment is None:
                logger.debug("Skipping container %s: %s", element_path(container), reason)
                continue
            segments.append(segment)
        return segments
