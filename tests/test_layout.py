"""Tests for the estimated document geometry."""

import unittest

from helpers import first, make_document

from vocabweave.layout import Box, FlowLayout, Viewport


class TestViewport(unittest.TestCase):
    """Test suite for Viewport."""

    def test_window_includes_margin(self) -> None:
        """1. Window: The visible slice is expanded by the margin on both sides."""
        viewport = Viewport(scroll_y=1000, height=800, margin=500)

        assert viewport.window == (500, 2300)
        assert viewport.intersects(Box(400, 600))
        assert viewport.intersects(Box(2200, 2400))
        assert not viewport.intersects(Box(0, 499))
        assert not viewport.intersects(Box(2301, 2500))

    def test_scrolled_to_keeps_dimensions(self) -> None:
        """2. Scroll: Moving the viewport keeps its height and margin."""
        moved = Viewport(height=600, margin=100).scrolled_to(3000)

        assert moved == Viewport(scroll_y=3000, height=600, margin=100)


class TestFlowLayout(unittest.TestCase):
    """Test suite for FlowLayout."""

    def test_elements_flow_in_document_order(self) -> None:
        """1. Flow: Each text takes whole lines and later elements sit lower."""
        document = make_document(f"<p id='a'>{'x' * 100}</p><p id='b'>short</p>")
        layout = FlowLayout(document, chars_per_line=80, line_height=20)

        box_a = layout.measure(first(document, "p", id="a"))
        box_b = layout.measure(first(document, "p", id="b"))

        assert box_a == Box(0, 40)
        assert box_b == Box(40, 60)

    def test_equal_elements_are_told_apart(self) -> None:
        """2. Identity: Structurally equal elements get their own boxes."""
        document = make_document("<p>same text</p><p>same text</p>")
        layout = FlowLayout(document, line_height=10)
        paragraphs = document.find_all("p")

        assert layout.measure(paragraphs[0]) == Box(0, 10)
        assert layout.measure(paragraphs[1]) == Box(10, 20)

    def test_invalidate_picks_up_new_elements(self) -> None:
        """3. Invalidate: Elements added after measuring are unknown until invalidated."""
        document = make_document("<p>first</p>")
        layout = FlowLayout(document, line_height=10)
        layout.measure(first(document, "p"))

        added = document.new_tag("p")
        added.string = "second"
        first(document, "body").append(added)

        assert layout.measure(added) is None
        layout.invalidate()
        assert layout.measure(added) == Box(10, 20)
