"""Defines shared data structures and types for VocabWeave."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final

from bs4 import Tag
from pydantic import BaseModel, ConfigDict, Field, field_validator

CEFR_LEVELS: Final[tuple[str, ...]] = ("A1", "A2", "B1", "B2", "C1", "C2")
DEFAULT_DIFFICULTY: Final[str] = "B1"


def difficulty_rank(level: str | None) -> int:
    """Return the ordinal rank of a CEFR level, treating unknown levels as the default."""
    normalized = (level or DEFAULT_DIFFICULTY).strip().upper()
    if normalized not in CEFR_LEVELS:
        normalized = DEFAULT_DIFFICULTY
    return CEFR_LEVELS.index(normalized)


def is_difficulty_compatible(word_difficulty: str | None, user_difficulty: str | None) -> bool:
    """Check that a word is at least as hard as the user's configured floor."""
    return difficulty_rank(word_difficulty) >= difficulty_rank(user_difficulty)


class Provenance(str, Enum):
    """Where a replacement's translation came from."""

    CACHE = "cache"
    PROVIDER = "provider"


@dataclass(frozen=True)
class CacheValue:
    """The complete value stored for a single cache key."""

    translation: str
    phonetic: str = ""
    difficulty: str = DEFAULT_DIFFICULTY


@dataclass
class Replacement:
    """
    A candidate substitution inside one segment.

    Attributes:
        original: The term as it appears in the segment text.
        translation: The translated term shown to the reader.
        phonetic: Pronunciation hint, possibly empty.
        difficulty: CEFR level of the term.
        position: Offset of `original` in the segment text at resolution time.
            Only used to order application; the replacer re-locates the term.
        provenance: Whether the translation came from the cache or the provider.

    """

    original: str
    translation: str
    phonetic: str = ""
    difficulty: str = DEFAULT_DIFFICULTY
    position: int = 0
    provenance: Provenance = Provenance.CACHE

    @property
    def key(self) -> str:
        """Case-insensitive identity of the replaced term."""
        return self.original.lower()


@dataclass
class Segment:
    """One candidate text region of the document."""

    element: Tag
    text: str
    fingerprint: str
    path: str
    masked_text: str | None = None


@dataclass
class ResolveResult:
    """Cache hits available now plus an optional provider-augmented pass."""

    immediate: list[Replacement]
    deferred: "asyncio.Task[list[Replacement]] | None" = None


class ParsedTranslation(BaseModel):
    """A single, validated entry of a provider response."""

    model_config = ConfigDict(extra="ignore")

    original: str = Field(min_length=1)
    translation: str = Field(min_length=1)
    phonetic: str = ""
    difficulty: str = DEFAULT_DIFFICULTY
    position: int | None = None

    @field_validator("original", "translation", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:  # noqa: ANN401
        return value.strip() if isinstance(value, str) else value

    @field_validator("phonetic", mode="before")
    @classmethod
    def _default_phonetic(cls, value: Any) -> Any:  # noqa: ANN401
        return "" if value is None else value

    @field_validator("difficulty", mode="before")
    @classmethod
    def _normalize_difficulty(cls, value: Any) -> str:  # noqa: ANN401
        if not isinstance(value, str):
            return DEFAULT_DIFFICULTY
        normalized = value.strip().upper()
        return normalized if normalized in CEFR_LEVELS else DEFAULT_DIFFICULTY

    @field_validator("position", mode="before")
    @classmethod
    def _coerce_position(cls, value: Any) -> int | None:  # noqa: ANN401
        if isinstance(value, bool) or not isinstance(value, int | float | str):
            return None
        try:
            position = int(value)
        except ValueError:
            return None
        return position if position >= 0 else None
