"""Awaitable key-value stores backing the word cache and usage statistics."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .errors import StorageError

__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore"]

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract base class for persistent key-value storage."""

    @abstractmethod
    async def get(self, key: str) -> Any:  # noqa: ANN401
        """
        Return the value stored under `key`, or None when absent.

        Raises:
            StorageError: If the store cannot be read.

        """
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:  # noqa: ANN401
        """
        Store `value` under `key`, replacing any previous value.

        Raises:
            StorageError: If the store cannot be written.

        """
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """A process-local store, mainly for tests and one-shot runs."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = dict(initial or {})

    async def get(self, key: str) -> Any:  # noqa: ANN401
        return self.data.get(key)

    async def set(self, key: str, value: Any) -> None:  # noqa: ANN401
        self.data[key] = value


class JsonFileStore(KeyValueStore):
    """
    A store kept as a single JSON object on disk.

    Every `set` rewrites the whole file. File IO runs in a worker thread so the
    event loop keeps serving visibility signals while a flush is in flight.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("rb") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            msg = f"Could not read store file at {self.path}: {e}"
            raise StorageError(msg) from e
        if not isinstance(data, dict):
            msg = f"Store file at {self.path} does not contain a JSON object."
            raise StorageError(msg)
        return data

    def _write_key(self, key: str, value: Any) -> None:  # noqa: ANN401
        try:
            data = self._read_all()
        except StorageError:
            logger.warning("Store file at %s is unreadable and will be replaced.", self.path)
            data = {}
        data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            msg = f"Failed to write store file at {self.path}: {e}"
            raise StorageError(msg) from e

    async def get(self, key: str) -> Any:  # noqa: ANN401
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
        return data.get(key)

    async def set(self, key: str, value: Any) -> None:  # noqa: ANN401
        async with self._lock:
            await asyncio.to_thread(self._write_key, key, value)
        logger.debug("Stored key '%s' in %s.", key, self.path)
