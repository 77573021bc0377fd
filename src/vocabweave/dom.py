"""Helpers for walking and marking BeautifulSoup document trees."""

from collections.abc import Iterator
from typing import Final

import regex
from bs4 import BeautifulSoup, NavigableString, PageElement, Tag
from bs4.element import PreformattedString

from .language import collapse_whitespace, is_code_text

TRANSLATED_CLASS: Final[str] = "vocabweave-translated"
TOOLTIP_CLASS: Final[str] = "vocabweave-tooltip"
PROCESSED_ATTR: Final[str] = "data-vocabweave-processed"
OBSERVING_ATTR: Final[str] = "data-vocabweave-observing"

SKIP_TAGS: Final[frozenset[str]] = frozenset(
    {"script", "style", "noscript", "iframe", "code", "pre", "kbd", "textarea", "input", "select", "button"},
)
SKIP_CLASSES: Final[frozenset[str]] = frozenset({TRANSLATED_CLASS, TOOLTIP_CLASS, "hljs", "code", "syntax"})
BLOCK_TAGS: Final[frozenset[str]] = frozenset(
    {"p", "div", "article", "section", "li", "td", "th", "h1", "h2", "h3", "h4", "h5", "h6", "span", "blockquote"},
)

_HIDDEN_STYLE = regex.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", regex.IGNORECASE)


def is_text_node(node: PageElement | None) -> bool:
    """Check for a plain text node; comments, doctypes and CDATA do not count."""
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def class_names(element: Tag) -> list[str]:
    """Return the element's class tokens."""
    return element.get_attribute_list("class") if element.has_attr("class") else []


def has_class(element: Tag, name: str) -> bool:
    """Check whether the element carries a class token."""
    return name in class_names(element)


def is_hidden(element: Tag) -> bool:
    """Check the static markers that hide an element from the reader."""
    if element.has_attr("hidden"):
        return True
    if str(element.get("aria-hidden", "")).lower() == "true":
        return True
    return bool(_HIDDEN_STYLE.search(str(element.get("style", ""))))


def is_editable(element: Tag) -> bool:
    """Check whether the element is user-editable content."""
    if not element.has_attr("contenteditable"):
        return False
    return str(element.get("contenteditable", "")).strip().lower() != "false"


def should_skip_node(node: PageElement | None, *, skip_processed: bool = True, skip_classes: frozenset[str] = SKIP_CLASSES) -> bool:
    """
    Decide whether a node and its subtree are outside the readable content.

    Text nodes are judged by their parent element.
    """
    if node is None:
        return True
    if isinstance(node, NavigableString):
        return not is_text_node(node) or should_skip_node(node.parent, skip_processed=skip_processed, skip_classes=skip_classes)
    if not isinstance(node, Tag):
        return True
    if isinstance(node, BeautifulSoup):
        return False
    if node.name.lower() in SKIP_TAGS:
        return True
    if skip_classes.intersection(class_names(node)):
        return True
    if is_hidden(node) or is_editable(node):
        return True
    return skip_processed and node.has_attr(PROCESSED_ATTR)


def iter_text_nodes(element: Tag, *, skip_processed: bool = True) -> Iterator[NavigableString]:
    """Yield the text nodes of an element, pruning subtrees that should be skipped."""
    for child in list(element.children):
        if is_text_node(child):
            yield child
        elif isinstance(child, Tag) and not should_skip_node(child, skip_processed=skip_processed):
            yield from iter_text_nodes(child, skip_processed=skip_processed)


def get_text_content(element: Tag) -> str:
    """
    Extract the visible text of a container.

    Text of skipped descendants and code-looking text nodes is left out; the
    rest is joined with spaces and whitespace is collapsed.
    """
    texts = []
    for node in iter_text_nodes(element):
        stripped = node.strip()
        if stripped and not is_code_text(stripped):
            texts.append(str(node))
    return collapse_whitespace(" ".join(texts))


def has_direct_text(element: Tag, min_length: int) -> bool:
    """Check whether a direct text child is longer than `min_length` once stripped."""
    return any(is_text_node(child) and len(child.strip()) > min_length for child in element.children)


def element_path(element: Tag) -> str:
    """Structural path signature: `tag#id` parts from the body (exclusive) down to the element."""
    parts: list[str] = []
    current: Tag | None = element
    while current is not None and not isinstance(current, BeautifulSoup) and current.name != "body":
        selector = current.name.lower()
        element_id = current.get("id")
        if element_id:
            selector += f"#{element_id}"
        parts.append(selector)
        current = current.parent
    return ">".join(reversed(parts))


def owner_document(node: PageElement) -> BeautifulSoup | None:
    """Return the document a node belongs to, or None if it is detached."""
    if isinstance(node, BeautifulSoup):
        return node
    for parent in node.parents:
        if isinstance(parent, BeautifulSoup):
            return parent
    return None


def is_inside(node: PageElement, root: Tag) -> bool:
    """Check whether `node` is a descendant of `root`."""
    return any(parent is root for parent in node.parents)


def has_translated_ancestor(node: PageElement, stop: Tag) -> bool:
    """Check for a substitution node between `node` and `stop`."""
    for parent in node.parents:
        if parent is stop:
            return False
        if isinstance(parent, Tag) and has_class(parent, TRANSLATED_CLASS):
            return True
    return False


def translated_nodes(root: Tag) -> list[Tag]:
    """Return every substitution node under `root`."""
    return root.find_all(class_=TRANSLATED_CLASS)


def merge_adjacent_text(parent: Tag) -> None:
    """Join neighbouring plain text nodes, the way the DOM's normalize() does."""
    children = list(parent.children)
    index = 0
    while index < len(children):
        child = children[index]
        if not is_text_node(child):
            index += 1
            continue
        run = [child]
        while index + len(run) < len(children) and is_text_node(children[index + len(run)]):
            run.append(children[index + len(run)])
        if len(run) > 1:
            merged = NavigableString("".join(str(node) for node in run))
            run[0].replace_with(merged)
            for node in run[1:]:
                node.extract()
        index += len(run)
