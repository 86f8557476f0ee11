"""
File-backed key-value stores.

Each key is one ``<key>.json`` file inside a directory. The async variant
runs the same file operations in the default executor.
"""

import asyncio
import os
import re
import tempfile
from pathlib import Path

from loguru import logger

from stockledger.core.exceptions.ledger import StorageError
from stockledger.core.interfaces.storage import IAsyncKeyValueStore, IKeyValueStore

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]{1,100}$")


def sanitize_key(key: str) -> str:
    """Reject keys that could escape the store directory."""
    if not key or ".." in key or not _SAFE_KEY.match(key):
        raise StorageError(
            f"Invalid storage key {key!r}: only alphanumeric, underscore, dash and dot are allowed"
        )
    return key


class JsonDirectoryStore(IKeyValueStore):
    """Synchronous store writing one file per key."""

    SUFFIX = ".json"

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{sanitize_key(key)}{self.SUFFIX}"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Cannot read {path.name}: {e}")
            raise StorageError(f"Cannot read {path.name}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            # Write then rename so a crash never leaves a half-written document
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            logger.error(f"Cannot write {path.name}: {e}")
            raise StorageError(f"Cannot write {path.name}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot delete {path.name}") from e

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob(f"*{self.SUFFIX}") if p.is_file())


class AsyncJsonDirectoryStore(IAsyncKeyValueStore):
    """Asynchronous wrapper around JsonDirectoryStore."""

    def __init__(self, directory: str | Path) -> None:
        self._store = JsonDirectoryStore(directory)

    @property
    def directory(self) -> Path:
        return self._store.directory

    async def get(self, key: str) -> str | None:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._store.get, key)

    async def set(self, key: str, value: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._store.set, key, value)
