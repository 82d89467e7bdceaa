"""Client-local list of recent search queries.

The list lives in an injected key-value store as a JSON array of strings,
most recent first. Nothing here is shared between processes or devices.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

from backend.config import settings

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal string key-value storage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store, mostly for tests and one-off use."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """Store backed by a single JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable key-value file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)


class RecentSearches:
    """Most-recent-first, de-duplicated, capped list of queries."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = settings.recent_searches_key,
        limit: int = settings.recent_searches_limit,
    ) -> None:
        self.store = store
        self.key = key
        self.limit = limit

    def get(self) -> list[str]:
        """Return stored queries, or an empty list if the value is unusable."""
        raw = self.store.get(self.key)
        if not raw:
            return []
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding malformed recent searches under %r", self.key)
            return []
        if not isinstance(value, list) or not all(isinstance(q, str) for q in value):
            return []
        return value

    def save(self, query: str) -> list[str]:
        """Move ``query`` to the front and return the updated list."""
        updated = [query, *(q for q in self.get() if q != query)][: self.limit]
        self.store.set(self.key, json.dumps(updated, ensure_ascii=False))
        return updated

    def clear(self) -> None:
        self.store.delete(self.key)
