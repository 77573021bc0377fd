"""In-place, reversible substitution of terms inside document containers."""

import logging
from collections.abc import Iterable
from typing import Literal

from bs4 import BeautifulSoup, NavigableString, PageElement, Tag

from .dom import (
    OBSERVING_ATTR,
    PROCESSED_ATTR,
    TRANSLATED_CLASS,
    has_class,
    has_translated_ancestor,
    is_inside,
    iter_text_nodes,
    merge_adjacent_text,
    owner_document,
    translated_nodes,
)
from .language import word_pattern
from .types import Replacement

__all__ = ["Replacer", "TranslationStyle"]

logger = logging.getLogger(__name__)

TranslationStyle = Literal["translation-original", "original-translation", "translation-only"]


class Replacer:
    """
    Rewrites containers by wrapping matched terms in substitution nodes.

    Node references are never held across edits: every replacement re-reads
    the container's current text nodes, so earlier substitutions in the same
    pass cannot leave it pointing at stale text.
    """

    def __init__(self, translation_style: TranslationStyle = "translation-original") -> None:
        self.translation_style = translation_style

    def apply(self, container: Tag, replacements: Iterable[Replacement], *, skip_applied: bool = True) -> int:
        """
        Apply replacements back to front and return how many were substituted.

        Args:
            container: The region to rewrite.
            replacements: Candidates in any order; `position` only fixes the order.
            skip_applied: Skip terms the container already shows as substitutions.

        Returns:
            The number of substitution nodes inserted. When positive, the
            container is marked as processed.

        """
        document = owner_document(container)
        if document is None:
            logger.debug("Container is detached from its document; nothing applied.")
            return 0

        ordered = sorted(replacements, key=lambda r: r.position or 0, reverse=True)
        applied = self.applied_originals(container) if skip_applied else set()
        count = 0
        for replacement in ordered:
            if not replacement.original or replacement.key in applied:
                continue
            try:
                if self._apply_one(container, document, replacement):
                    count += 1
                    applied.add(replacement.key)
            except (ValueError, AttributeError, TypeError, IndexError) as e:
                logger.warning("Could not substitute '%s': %s", replacement.original, e)

        if count > 0:
            container[PROCESSED_ATTR] = "true"
        return count

    def _apply_one(self, container: Tag, document: BeautifulSoup, replacement: Replacement) -> bool:
        pattern = word_pattern(replacement.original)
        target = replacement.original.lower()

        for text_node in list(iter_text_nodes(container, skip_processed=False)):
            if text_node.parent is None or not is_inside(text_node, container):
                continue
            text = str(text_node)
            if target not in text.lower():
                continue
            match = pattern.search(text)
            if match is None:
                continue
            start, end = match.span()
            matched = text[start:end]
            if matched.lower() != target:
                continue
            if has_translated_ancestor(text_node, container):
                continue

            pieces: list[PageElement] = []
            if start > 0:
                pieces.append(NavigableString(text[:start]))
            pieces.append(self.create_substitution(document, matched, replacement))
            if end < len(text):
                pieces.append(NavigableString(text[end:]))
            text_node.replace_with(*pieces)
            return True
        return False

    def create_substitution(self, document: BeautifulSoup, original: str, replacement: Replacement) -> Tag:
        """Build the substitution node for `original`, carrying everything needed to restore it."""
        wrapper = document.new_tag(
            "span",
            attrs={
                "class": [TRANSLATED_CLASS],
                "data-original": original,
                "data-translation": replacement.translation,
                "data-phonetic": replacement.phonetic or "",
                "data-difficulty": replacement.difficulty or "B1",
                "data-provenance": replacement.provenance.value,
            },
        )

        def part(css_class: str, text: str) -> Tag:
            span = document.new_tag("span", attrs={"class": [css_class]})
            span.string = text
            return span

        if self.translation_style == "translation-only":
            wrapper.append(part("vocabweave-word", replacement.translation))
        elif self.translation_style == "original-translation":
            wrapper.append(part("vocabweave-original", original))
            wrapper.append(part("vocabweave-word", f"({replacement.translation})"))
        else:
            wrapper.append(part("vocabweave-word", replacement.translation))
            wrapper.append(part("vocabweave-original", f"({original})"))
        return wrapper

    @staticmethod
    def applied_originals(container: Tag) -> set[str]:
        """Lower-cased originals of the substitutions already inside a container."""
        return {str(node.get("data-original", "")).lower() for node in translated_nodes(container) if node.get("data-original")}

    @staticmethod
    def restore(node: Tag) -> bool:
        """
        Put the original text back in place of a substitution node.

        Returns:
            True if the node was a substitution attached to a tree and was restored.

        """
        if not has_class(node, TRANSLATED_CLASS) or node.parent is None:
            return False
        parent = node.parent
        node.replace_with(NavigableString(str(node.get("data-original", ""))))
        merge_adjacent_text(parent)
        return True

    def restore_same_word(self, root: Tag, word: str) -> int:
        """Restore every substitution of `word` (case-insensitive) under `root`."""
        target = word.lower()
        restored = 0
        for node in translated_nodes(root):
            if str(node.get("data-original", "")).lower() == target and self.restore(node):
                restored += 1
        return restored

    def restore_all(self, root: Tag) -> int:
        """
        Restore every substitution under `root` and clear the region markers.

        Returns:
            The number of substitution nodes restored.

        """
        restored = sum(1 for node in translated_nodes(root) if self.restore(node))
        for attr in (PROCESSED_ATTR, OBSERVING_ATTR):
            if isinstance(root, Tag) and root.has_attr(attr):
                del root[attr]
            for element in root.find_all(attrs={attr: True}):
                del element[attr]
        logger.debug("Restored %d substitutions.", restored)
        return restored
