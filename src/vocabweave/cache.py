"""Bounded, least-recently-used translation cache with debounced persistence."""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Iterator
from typing import Any, Final

from pydantic import BaseModel, ValidationError, field_validator

from .errors import StorageError
from .storage import KeyValueStore
from .types import DEFAULT_DIFFICULTY, CacheValue

__all__ = ["CACHE_STORE_KEY", "CacheRecord", "TranslationCache", "make_cache_key", "split_cache_key"]

logger = logging.getLogger(__name__)

CACHE_STORE_KEY: Final[str] = "vocabweave_word_cache"
DEFAULT_PERSIST_DELAY: Final[float] = 0.5


def make_cache_key(word: str, source_lang: str, target_lang: str) -> str:
    """Build the normalized cache key of a word and its language pair."""
    return f"{word.strip().lower()}:{source_lang}:{target_lang}"


def split_cache_key(key: str) -> tuple[str, str, str] | None:
    """Split a cache key back into (word, source_lang, target_lang)."""
    parts = key.rsplit(":", 2)
    if len(parts) != 3:  # noqa: PLR2004
        return None
    return parts[0], parts[1], parts[2]


class CacheRecord(BaseModel):
    """The persisted shape of one cache entry."""

    key: str
    translation: str
    phonetic: str = ""
    difficulty: str = DEFAULT_DIFFICULTY

    @field_validator("phonetic", "difficulty", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any, info: Any) -> Any:  # noqa: ANN401
        if value is None:
            return "" if info.field_name == "phonetic" else DEFAULT_DIFFICULTY
        return value


class TranslationCache:
    """
    Manages the word cache shared by every region of a session.

    Keys are `word:source:target` with the word lower-cased. Both `get` and
    `put` make an entry the most recently used; when the cache is full the
    least recently used entry is evicted before inserting. Every mutation
    schedules a debounced flush of the whole cache to the key-value store.
    The in-memory cache stays authoritative when a flush fails.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        max_size: int = 2000,
        persist_delay: float = DEFAULT_PERSIST_DELAY,
    ) -> None:
        """
        Initialize the TranslationCache.

        Args:
            store: Where snapshots are persisted. None keeps the cache in memory only.
            max_size: The maximum number of entries.
            persist_delay: Seconds of quiet after a mutation before a flush runs.

        """
        if max_size < 1:
            msg = f"Cache max_size must be at least 1, got {max_size}."
            raise ValueError(msg)
        self.store = store
        self._max_size = max_size
        self.persist_delay = persist_delay
        self._entries: OrderedDict[str, CacheValue] = OrderedDict()
        self._dirty = False
        self._persist_handle: asyncio.TimerHandle | None = None
        self._flush_tasks: set[asyncio.Task[bool]] = set()

    @property
    def max_size(self) -> int:
        """The configured capacity."""
        return self._max_size

    @max_size.setter
    def max_size(self, value: int) -> None:
        if value < 1:
            msg = f"Cache max_size must be at least 1, got {value}."
            raise ValueError(msg)
        self._max_size = value
        if self._evict_overflow(0):
            self._schedule_persist()

    async def load(self) -> int:
        """
        Load the persisted snapshot, replacing the in-memory entries.

        Malformed records are dropped. If the snapshot holds more entries than
        the capacity, the oldest ones are discarded.

        Returns:
            The number of entries loaded.

        """
        if self.store is None:
            return 0
        try:
            raw = await self.store.get(CACHE_STORE_KEY)
        except StorageError as e:
            logger.warning("Could not load word cache, starting empty: %s", e)
            return 0
        if not isinstance(raw, list):
            logger.debug("No persisted word cache found. Starting with an empty cache.")
            return 0

        self._entries.clear()
        for item in raw:
            try:
                record = CacheRecord.model_validate(item)
            except ValidationError:
                logger.debug("Dropping malformed cache record: %r", item)
                continue
            self._entries.pop(record.key, None)
            self._entries[record.key] = CacheValue(
                translation=record.translation,
                phonetic=record.phonetic,
                difficulty=record.difficulty,
            )
        self._evict_overflow(0)
        logger.debug("Loaded %d word cache entries.", len(self._entries))
        return len(self._entries)

    def get(self, word: str, source_lang: str, target_lang: str) -> CacheValue | None:
        """Look up a word and mark the entry as most recently used."""
        key = make_cache_key(word, source_lang, target_lang)
        value = self._entries.get(key)
        if value is not None:
            self._entries.move_to_end(key)
        return value

    def peek(self, word: str, source_lang: str, target_lang: str) -> CacheValue | None:
        """Look up a word without touching its recency."""
        return self._entries.get(make_cache_key(word, source_lang, target_lang))

    def put(self, word: str, source_lang: str, target_lang: str, value: CacheValue) -> None:
        """
        Insert or refresh an entry, making it the most recently used.

        An existing key is removed before re-insertion; a full cache evicts its
        least recently used entry first.
        """
        key = make_cache_key(word, source_lang, target_lang)
        self._entries.pop(key, None)
        self._evict_overflow(1)
        self._entries[key] = value
        self._schedule_persist()

    def size(self) -> int:
        """Return the number of entries."""
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()
        self._schedule_persist()

    def keys(self) -> list[str]:
        """Return the keys from least to most recently used."""
        return list(self._entries)

    def entries_for_pair(self, source_lang: str, target_lang: str) -> Iterator[tuple[str, CacheValue]]:
        """Yield (word, value) for every entry of a language pair without touching recency."""
        for key, value in list(self._entries.items()):
            parts = split_cache_key(key)
            if parts and parts[1] == source_lang and parts[2] == target_lang:
                yield parts[0], value

    def records(self) -> list[dict[str, str]]:
        """Serialize the cache, oldest first, as persisted records."""
        return [
            {
                "key": key,
                "translation": value.translation,
                "phonetic": value.phonetic,
                "difficulty": value.difficulty,
            }
            for key, value in self._entries.items()
        ]

    def _evict_overflow(self, incoming: int) -> int:
        """Evict least recently used entries until `incoming` more fit."""
        evicted = 0
        while self._entries and len(self._entries) + incoming > self._max_size:
            key, _ = self._entries.popitem(last=False)
            evicted += 1
            logger.debug("Evicted least recently used cache entry '%s'.", key)
        return evicted

    def _schedule_persist(self) -> None:
        self._dirty = True
        if self.store is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Picked up by the next explicit flush or close.
            return
        if self._persist_handle is not None:
            self._persist_handle.cancel()
        self._persist_handle = loop.call_later(self.persist_delay, self._start_flush)

    def _start_flush(self) -> None:
        self._persist_handle = None
        task = asyncio.ensure_future(self.flush())
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    async def flush(self) -> bool:
        """
        Write the full cache snapshot to the store.

        Returns:
            True if the snapshot was written, False if there is no store or the write failed.

        """
        if self.store is None:
            return False
        self._dirty = False
        records = self.records()
        try:
            await self.store.set(CACHE_STORE_KEY, records)
        except StorageError as e:
            self._dirty = True
            logger.error("Failed to save word cache, keeping in-memory entries: %s", e)  # noqa: TRY400
            return False
        logger.debug("Word cache saved with %d entries.", len(records))
        return True

    async def close(self) -> None:
        """Cancel the pending debounce, wait for in-flight flushes and flush unsaved changes."""
        if self._persist_handle is not None:
            self._persist_handle.cancel()
            self._persist_handle = None
        if self._flush_tasks:
            await asyncio.gather(*self._flush_tasks)
        if self._dirty:
            await self.flush()
