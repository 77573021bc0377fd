"""Tests for reversible, in-place substitution."""

import unittest

from helpers import first, make_document

from vocabweave.dom import OBSERVING_ATTR, PROCESSED_ATTR, TRANSLATED_CLASS, translated_nodes
from vocabweave.replacer import Replacer
from vocabweave.types import Provenance, Replacement


def _rep(original: str, translation: str, position: int = 0, provenance: Provenance = Provenance.CACHE) -> Replacement:
    return Replacement(original=original, translation=translation, position=position, provenance=provenance)


class TestApply(unittest.TestCase):
    """Test suite for Replacer.apply."""

    def test_whole_word_boundaries(self) -> None:
        """1. Boundaries: 'cat' is replaced once and never inside 'category' or 'scatter'."""
        document = make_document("<p>category cat scatter</p>")
        p = first(document, "p")

        count = Replacer().apply(p, [_rep("cat", "猫")])

        assert count == 1
        assert p.get_text() == "category 猫(cat) scatter"
        (node,) = translated_nodes(p)
        assert node["data-original"] == "cat"

    def test_multiple_offsets_in_one_node(self) -> None:
        """2. Offsets: Several terms in one text node are all replaced, whatever the input order."""
        text = "The green plants absorb sunlight and release oxygen into the atmosphere."
        document = make_document(f"<p>{text}</p>")
        p = first(document, "p")
        replacements = [
            _rep("plants", "植物", text.find("plants")),
            _rep("atmosphere", "大气", text.find("atmosphere")),
            _rep("sunlight", "阳光", text.find("sunlight")),
        ]

        count = Replacer(translation_style="translation-only").apply(p, replacements)

        assert count == 3  # noqa: PLR2004
        assert p.get_text() == "The green 植物 absorb 阳光 and release oxygen into the 大气."
        assert p[PROCESSED_ATTR] == "true"

    def test_matched_case_is_preserved(self) -> None:
        """3. Case: The original attribute keeps the spelling found in the text."""
        document = make_document("<p>Energy matters.</p>")
        p = first(document, "p")

        Replacer().apply(p, [_rep("energy", "能量")])

        assert translated_nodes(p)[0]["data-original"] == "Energy"

    def test_apply_is_idempotent(self) -> None:
        """4. Idempotence: Applying the same replacements twice changes nothing the second time."""
        document = make_document("<p>Energy and energy again.</p>")
        p = first(document, "p")
        replacer = Replacer()

        assert replacer.apply(p, [_rep("energy", "能量")]) == 1
        assert replacer.apply(p, [_rep("energy", "能量")]) == 0
        assert len(translated_nodes(p)) == 1

    def test_existing_substitutions_are_not_rewritten(self) -> None:
        """5. Nesting: Text inside a substitution node is never matched again."""
        document = make_document("<p>The plants grow.</p>")
        p = first(document, "p")
        replacer = Replacer(translation_style="original-translation")
        replacer.apply(p, [_rep("plants", "植物")])

        count = replacer.apply(p, [_rep("plants", "植物")], skip_applied=False)

        assert count == 0
        assert len(translated_nodes(p)) == 1

    def test_styles(self) -> None:
        """6. Styles: Each display style renders its own text."""
        expected = {
            "translation-original": "能量(energy)",
            "original-translation": "energy(能量)",
            "translation-only": "能量",
        }
        for style, rendered in expected.items():
            with self.subTest(style=style):
                document = make_document("<p>energy</p>")
                p = first(document, "p")
                Replacer(translation_style=style).apply(p, [_rep("energy", "能量")])  # type: ignore[arg-type]
                assert p.get_text() == rendered

    def test_provenance_and_metadata_attributes(self) -> None:
        """7. Metadata: The substitution node carries translation, difficulty and provenance."""
        document = make_document("<p>energy</p>")
        p = first(document, "p")
        replacement = Replacement(original="energy", translation="能量", phonetic="/ˈenərdʒi/", difficulty="B2", provenance=Provenance.PROVIDER)

        Replacer().apply(p, [replacement])

        node = translated_nodes(p)[0]
        assert node["data-translation"] == "能量"
        assert node["data-phonetic"] == "/ˈenərdʒi/"
        assert node["data-difficulty"] == "B2"
        assert node["data-provenance"] == "provider"
        assert TRANSLATED_CLASS in node["class"]

    def test_missing_term_and_detached_container(self) -> None:
        """8. Stale: Terms that are gone and detached containers are skipped without error."""
        document = make_document("<p>nothing relevant here</p><div>energy</div>")
        p = first(document, "p")
        div = first(document, "div")
        div.extract()

        assert Replacer().apply(p, [_rep("energy", "能量")]) == 0
        assert not p.has_attr(PROCESSED_ATTR)
        assert Replacer().apply(div, [_rep("energy", "能量")]) == 0


class TestRestore(unittest.TestCase):
    """Test suite for restoring substitutions."""

    def test_round_trip_restores_text_and_merges_nodes(self) -> None:
        """1. Round trip: Restoring brings back the exact text as a single node."""
        original = "The green plants absorb sunlight."
        document = make_document(f"<p>{original}</p>")
        p = first(document, "p")
        replacer = Replacer()
        replacer.apply(p, [_rep("plants", "植物", 10), _rep("sunlight", "阳光", 24)])

        restored = replacer.restore_all(document)

        assert restored == 2  # noqa: PLR2004
        assert p.get_text() == original
        assert len(list(p.children)) == 1
        assert not p.has_attr(PROCESSED_ATTR)

    def test_restore_same_word(self) -> None:
        """2. Same word: Only substitutions of the given word are undone, case-insensitively."""
        document = make_document("<p>Energy flows.</p><p>The plants store energy.</p>")
        replacer = Replacer(translation_style="translation-only")
        for p in document.find_all("p"):
            replacer.apply(p, [_rep("energy", "能量"), _rep("plants", "植物")])

        restored = replacer.restore_same_word(document, "ENERGY")

        assert restored == 2  # noqa: PLR2004
        assert document.get_text() == "Energy flows.The 植物 store energy."

    def test_restore_all_clears_markers(self) -> None:
        """3. Markers: Processed and observing markers are removed everywhere."""
        document = make_document(f"<p {OBSERVING_ATTR}='true'>idle</p><div {PROCESSED_ATTR}='true'>done</div>")

        assert Replacer().restore_all(document) == 0
        assert document.find(attrs={OBSERVING_ATTR: True}) is None
        assert document.find(attrs={PROCESSED_ATTR: True}) is None

    def test_restore_ignores_plain_and_detached_nodes(self) -> None:
        """4. Guard: Only attached substitution nodes are restored."""
        document = make_document("<p><span>plain</span></p>")
        span = first(document, "span")

        assert not Replacer.restore(span)

        document = make_document("<p>energy</p>")
        p = first(document, "p")
        Replacer().apply(p, [_rep("energy", "能量")])
        node = translated_nodes(p)[0]
        node.extract()

        assert not Replacer.restore(node)
