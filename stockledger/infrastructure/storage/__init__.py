"""
Ledger persistence.

Key-value stores and the repository that reads and writes ledger documents.
"""

from .json_file_store import AsyncJsonDirectoryStore, JsonDirectoryStore
from .memory_store import InMemoryAsyncStore, InMemoryStore
from .repository import BackupStatus, LedgerRepository, LoadResult, LoadSource

__all__ = [
    "AsyncJsonDirectoryStore",
    "BackupStatus",
    "InMemoryAsyncStore",
    "InMemoryStore",
    "JsonDirectoryStore",
    "LedgerRepository",
    "LoadResult",
    "LoadSource",
]
