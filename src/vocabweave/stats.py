"""Usage statistics: words learned and cache effectiveness."""

import logging
from datetime import date
from typing import Final

from pydantic import BaseModel, ValidationError

from .errors import StorageError
from .storage import KeyValueStore

__all__ = ["STATS_STORE_KEY", "StatsSnapshot", "UsageStats"]

logger = logging.getLogger(__name__)

STATS_STORE_KEY: Final[str] = "vocabweave_stats"


class StatsSnapshot(BaseModel):
    """Persisted counters."""

    total_words: int = 0
    today_words: int = 0
    last_reset_date: str | None = None
    cache_hits: int = 0
    cache_misses: int = 0


class UsageStats:
    """Accumulates counters and writes them through to the key-value store."""

    def __init__(self, store: KeyValueStore | None = None) -> None:
        self.store = store
        self.snapshot = StatsSnapshot()

    async def load(self) -> StatsSnapshot:
        """Load persisted counters; unreadable data starts from zero."""
        if self.store is None:
            return self.snapshot
        try:
            raw = await self.store.get(STATS_STORE_KEY)
            if raw is not None:
                self.snapshot = StatsSnapshot.model_validate(raw)
        except (StorageError, ValidationError) as e:
            logger.warning("Could not load usage statistics: %s", e)
        return self.snapshot

    async def record(self, *, new_words: int = 0, cache_hits: int = 0, cache_misses: int = 0, today: date | None = None) -> StatsSnapshot:
        """
        Add to the counters, resetting today's count on a new day, and persist them.

        Persistence failures are logged; the in-memory counters still advance.
        """
        today_str = (today or date.today()).isoformat()
        snap = self.snapshot
        if snap.last_reset_date != today_str:
            snap.today_words = 0
            snap.last_reset_date = today_str
        snap.total_words += new_words
        snap.today_words += new_words
        snap.cache_hits += cache_hits
        snap.cache_misses += cache_misses

        if self.store is not None:
            try:
                await self.store.set(STATS_STORE_KEY, snap.model_dump())
            except StorageError as e:
                logger.warning("Failed to save usage statistics: %s", e)
        return snap
