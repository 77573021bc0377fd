"""Pytest configuration and shared fixtures."""

import pytest

from vocabweave.paths import find_project_root
from vocabweave.storage import MemoryStore


@pytest.fixture(autouse=True)
def clear_lru_caches() -> None:
    """Clear LRU caches before each test."""
    find_project_root.cache_clear()


@pytest.fixture
def memory_store() -> MemoryStore:
    """An empty in-memory key-value store."""
    return MemoryStore()
