"""Builders shared by the VocabWeave test modules."""

from typing import Any

from bs4 import BeautifulSoup, Tag

from vocabweave.cache import TranslationCache
from vocabweave.config import VocabConfig
from vocabweave.types import CacheValue


def make_config(**overrides: Any) -> VocabConfig:  # noqa: ANN401
    """Build a configuration for an English page read by a Chinese speaker, with no scheduling delays."""
    data: dict[str, Any] = {
        "provider": "mock",
        "native_language": "zh-CN",
        "target_language": "en",
        "difficulty_level": "B1",
        "intensity": "medium",
        "process_mode": "both",
        "scheduler": {"debounce": 0, "inter_batch_delay": 0},
    }
    data.update(overrides)
    return VocabConfig.from_dict(data)


def make_document(body: str) -> BeautifulSoup:
    """Parse a body fragment into a full document."""
    return BeautifulSoup(f"<html><body>{body}</body></html>", "html.parser")


def first(document: BeautifulSoup, name: str, **attrs: Any) -> Tag:  # noqa: ANN401
    """Return the first matching element, failing loudly if absent."""
    element = document.find(name, attrs=attrs)
    assert isinstance(element, Tag)
    return element


def seed_cache(cache: TranslationCache, entries: dict[str, tuple[str, str]], source: str = "en", target: str = "zh-CN") -> None:
    """Put `word -> (translation, difficulty)` entries into a cache."""
    for word, (translation, difficulty) in entries.items():
        cache.put(word, source, target, CacheValue(translation=translation, difficulty=difficulty))
