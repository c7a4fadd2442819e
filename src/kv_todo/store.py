from __future__ import annotations

from abc import ABC, abstractmethod
from threading import RLock
from typing import Dict, List, Optional

from .settings import Settings, get_settings


# PUBLIC_INTERFACE
class KeyValueStore(ABC):
    """
    Abstract contract for the opaque key-value backing store.

    Only exact-key get/put/delete are offered: no scans, no transactions,
    no compare-and-swap, no expiry.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if the key is absent."""

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        """Store value under key, overwriting any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error."""


class InMemoryKeyValueStore(KeyValueStore):
    """
    Thread-safe in-memory store suitable for testing and default runtime.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._lock = RLock()
        self._items: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    async def put(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    async def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> List[str]:
        """Snapshot of stored keys, sorted. Not part of the store contract."""
        with self._lock:
            return sorted(self._items)


# PUBLIC_INTERFACE
def get_kv_store(settings: Optional[Settings] = None) -> KeyValueStore:
    """
    Factory to return the configured key-value store based on settings.
    - memory: InMemoryKeyValueStore
    - sqlite: SQLiteKeyValueStore backed by settings.sqlite_db_path
    """
    settings = settings or get_settings()
    if settings.kv_backend == "sqlite":
        from .db import SQLiteKeyValueStore

        return SQLiteKeyValueStore(settings.sqlite_db_path)
    return InMemoryKeyValueStore()
