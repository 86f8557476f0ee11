"""
In-memory key-value stores.

Used by tests and by hosts that keep the ledger only for one session.
"""

from threading import RLock

from stockledger.core.interfaces.storage import IAsyncKeyValueStore, IKeyValueStore


class InMemoryStore(IKeyValueStore):
    """Dictionary-backed primary store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = RLock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)


class InMemoryAsyncStore(IAsyncKeyValueStore):
    """Dictionary-backed backup store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value
