"""Defines the data models describing a document run."""

from dataclasses import dataclass, field

from .stats import StatsSnapshot


@dataclass
class RunSummary:
    """A data class collecting the outcome of a single document run."""

    status: str
    substitutions: int = 0
    cache_hits: int = 0
    provider_substitutions: int = 0
    segments_processed: int = 0
    cache_entries: int = 0
    provider: str | None = None
    stats: StatsSnapshot = field(default_factory=StatsSnapshot)
