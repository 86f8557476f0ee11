"""
Storage interfaces.

The engine never talks to storage; the host persists ledger documents
through these key-value collaborators.
"""

from abc import ABC, abstractmethod


class IKeyValueStore(ABC):
    """Primary synchronous key-value store for ledger documents."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Read a value; None when the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Write a value, replacing any previous one."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key if present."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List stored keys."""
        pass


class IAsyncKeyValueStore(ABC):
    """Secondary asynchronous store, used only as a recovery backup."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Read a value; None when the key is absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Write a value, replacing any previous one."""
        pass
