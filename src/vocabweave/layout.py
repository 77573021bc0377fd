"""Vertical geometry of a document, used to decide which containers are visible."""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

from bs4 import BeautifulSoup, NavigableString, Tag

from .dom import is_text_node


@dataclass(frozen=True)
class Box:
    """Vertical extent of an element in document coordinates."""

    top: float
    bottom: float


@dataclass(frozen=True)
class Viewport:
    """
    The visible slice of the document, expanded by a margin on both sides.

    Containers intersecting the expanded window count as visible so they are
    processed slightly before the reader scrolls to them.
    """

    scroll_y: float = 0.0
    height: float = 800.0
    margin: float = 500.0

    @property
    def window(self) -> tuple[float, float]:
        """The expanded window as (top, bottom)."""
        return self.scroll_y - self.margin, self.scroll_y + self.height + self.margin

    def intersects(self, box: Box) -> bool:
        """Check whether a box overlaps the expanded window."""
        top, bottom = self.window
        return not (box.bottom < top or box.top > bottom)

    def scrolled_to(self, scroll_y: float) -> "Viewport":
        """Return the same viewport at another scroll position."""
        return Viewport(scroll_y=scroll_y, height=self.height, margin=self.margin)


class Layout(ABC):
    """Measures elements of a document."""

    @abstractmethod
    def measure(self, element: Tag) -> Box | None:
        """Return the element's box, or None if it has no layout."""
        raise NotImplementedError

    def invalidate(self) -> None:  # noqa: B027
        """Forget cached geometry after the document changed."""


class FlowLayout(Layout):
    """
    Estimates geometry by flowing text top to bottom in document order.

    Every non-empty text node takes ceil(len / chars_per_line) lines of
    `line_height` pixels. An element spans from the first to the last line of
    the text it contains. Good enough to tell near content from far content.
    """

    def __init__(self, document: BeautifulSoup, *, chars_per_line: int = 80, line_height: float = 24.0) -> None:
        self.document = document
        self.chars_per_line = max(1, chars_per_line)
        self.line_height = line_height
        self._boxes: dict[int, tuple[Tag, Box]] | None = None

    def invalidate(self) -> None:
        self._boxes = None

    def measure(self, element: Tag) -> Box | None:
        if self._boxes is None:
            boxes: dict[int, tuple[Tag, Box]] = {}
            self._flow(self.document, 0.0, boxes)
            self._boxes = boxes
        entry = self._boxes.get(id(element))
        if entry is None or entry[0] is not element:
            return None
        return entry[1]

    def _flow(self, node: Tag, y: float, boxes: dict[int, tuple[Tag, Box]]) -> float:
        top = y
        for child in node.children:
            if isinstance(child, NavigableString):
                if not is_text_node(child):
                    continue
                text = child.strip()
                if text:
                    y += math.ceil(len(text) / self.chars_per_line) * self.line_height
            elif isinstance(child, Tag):
                y = self._flow(child, y, boxes)
        boxes[id(node)] = (node, Box(top, y))
        return y
