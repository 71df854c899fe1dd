"""
In-memory key-value store adapter - Implements KeyValueStore and BlobStores.

Process-local and lost on restart. Used for development and tests; each
logical store is an independent dict guarded by a re-entrant lock.
"""

import threading


class InMemoryKeyValueStore:
    """
    Implements KeyValueStore protocol with a locked dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._items: dict[str, bytes] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._items.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._items[key] = bytes(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def list(self) -> list[str]:
        with self._lock:
            return list(self._items)


class InMemoryBlobStores:
    """Implements BlobStores protocol; creates stores on first use."""

    def __init__(self) -> None:
        self._stores: dict[str, InMemoryKeyValueStore] = {}
        self._lock = threading.Lock()

    def store(self, name: str) -> InMemoryKeyValueStore:
        with self._lock:
            if name not in self._stores:
                self._stores[name] = InMemoryKeyValueStore()
            return self._stores[name]

    def ping(self) -> None:
        """Health probe. Always succeeds."""
        return None
