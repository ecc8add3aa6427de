"""
Storage backends.

Backends store plain dicts in named collections. Both implementations
support compare_and_set, which the outcome scheduler relies on to claim
a pending record exactly once.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol
import asyncio
import json
import logging
import os

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Protocol for storage backends."""

    async def save(self, collection: str, key: str, data: dict) -> None:
        """Save data to storage."""
        ...

    async def load(self, collection: str, key: str) -> Optional[dict]:
        """Load data from storage."""
        ...

    async def query(
        self,
        collection: str,
        filters: dict,
        limit: Optional[int] = 100,
    ) -> list[dict]:
        """Query data from storage. limit=None returns every match."""
        ...

    async def compare_and_set(
        self,
        collection: str,
        key: str,
        expected: dict,
        data: dict,
    ) -> bool:
        """Replace a record only if its current fields match `expected`."""
        ...


def _matches(item: dict, filters: dict) -> bool:
    return all(item.get(field) == value for field, value in filters.items())


class InMemoryBackend:
    """
    In-memory storage backend for development/testing.

    Nothing awaits between the check and the write in compare_and_set, so it
    is atomic under the event loop.
    """

    def __init__(self):
        self.data: dict[str, dict[str, dict]] = {}

    async def save(self, collection: str, key: str, data: dict) -> None:
        self.data.setdefault(collection, {})[key] = dict(data)

    async def load(self, collection: str, key: str) -> Optional[dict]:
        item = self.data.get(collection, {}).get(key)
        return dict(item) if item is not None else None

    async def query(
        self,
        collection: str,
        filters: dict,
        limit: Optional[int] = 100,
    ) -> list[dict]:
        results = []
        for item in self.data.get(collection, {}).values():
            if _matches(item, filters):
                results.append(dict(item))
                if limit is not None and len(results) >= limit:
                    break
        return results

    async def compare_and_set(
        self,
        collection: str,
        key: str,
        expected: dict,
        data: dict,
    ) -> bool:
        current = self.data.get(collection, {}).get(key)
        if current is None or not _matches(current, expected):
            return False
        self.data[collection][key] = dict(data)
        return True


class JsonFileBackend:
    """
    File-backed storage: one JSON document per collection under data_dir.

    Collections are loaded lazily and rewritten whole on every change,
    through a temp file so a crash never leaves a truncated document.
    The document is serialized on the loop and written from a worker
    thread; writes stay ordered under the lock. Sized for one agent's
    history, not for large archives.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = asyncio.Lock()

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _collection(self, collection: str) -> dict[str, dict]:
        if collection not in self._collections:
            path = self._path(collection)
            if path.exists():
                try:
                    self._collections[collection] = json.loads(path.read_text())
                except json.JSONDecodeError as e:
                    logger.error(f"Corrupt collection file {path}: {e}")
                    self._collections[collection] = {}
            else:
                self._collections[collection] = {}
        return self._collections[collection]

    async def _flush(self, collection: str) -> None:
        text = json.dumps(self._collections[collection], indent=2)
        await asyncio.to_thread(self._write, self._path(collection), text)

    @staticmethod
    def _write(path: Path, text: str) -> None:
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(text)
        os.replace(tmp, path)

    async def save(self, collection: str, key: str, data: dict) -> None:
        async with self._lock:
            self._collection(collection)[key] = dict(data)
            await self._flush(collection)

    async def load(self, collection: str, key: str) -> Optional[dict]:
        item = self._collection(collection).get(key)
        return dict(item) if item is not None else None

    async def query(
        self,
        collection: str,
        filters: dict,
        limit: Optional[int] = 100,
    ) -> list[dict]:
        results = []
        for item in self._collection(collection).values():
            if _matches(item, filters):
                results.append(dict(item))
                if limit is not None and len(results) >= limit:
                    break
        return results

    async def compare_and_set(
        self,
        collection: str,
        key: str,
        expected: dict,
        data: dict,
    ) -> bool:
        async with self._lock:
            records = self._collection(collection)
            current = records.get(key)
            if current is None or not _matches(current, expected):
                return False
            records[key] = dict(data)
            await self._flush(collection)
            return True
