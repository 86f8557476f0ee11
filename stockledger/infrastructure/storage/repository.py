"""
Ledger repository.

Loads and saves the ledger document under a single key in the primary store,
migrates documents found under legacy keys, mirrors every save to an optional
asynchronous backup store, and tracks when the user last exported a backup.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from loguru import logger

from stockledger.core.constants import (
    BACKUP_REMIND_DAYS,
    DEFAULT_STORAGE_KEY,
    LAST_BACKUP_KEY,
    LEGACY_KEY_PREFIX,
    TIMESTAMP_FORMAT,
)
from stockledger.core.enums import DEFAULT_MARKETS, MarketRegistry
from stockledger.core.exceptions.ledger import MalformedLedgerDocumentError
from stockledger.core.interfaces.storage import IAsyncKeyValueStore, IKeyValueStore
from stockledger.core.models.ledger import Ledger


class LoadSource(StrEnum):
    """Where a loaded ledger came from."""

    PRIMARY = "primary"
    PARTIAL = "partial"
    LEGACY = "legacy"
    BACKUP = "backup"
    EMPTY = "empty"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class LoadResult:
    ledger: Ledger
    source: LoadSource

    @property
    def recovered_from_malformed(self) -> bool:
        return self.source == LoadSource.MALFORMED


@dataclass(frozen=True)
class BackupStatus:
    """Time since the last exported backup."""

    last_backup_at: datetime | None
    days_since: int | None
    needs_reminder: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastBackupAt": self.last_backup_at.isoformat() if self.last_backup_at else None,
            "daysSince": self.days_since,
            "needsReminder": self.needs_reminder,
        }


class LedgerRepository:
    """Persistence of the ledger document."""

    def __init__(
        self,
        primary: IKeyValueStore,
        backup: IAsyncKeyValueStore | None = None,
        key: str = DEFAULT_STORAGE_KEY,
        markets: MarketRegistry = DEFAULT_MARKETS,
        remind_days: int = BACKUP_REMIND_DAYS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.primary = primary
        self.backup = backup
        self.key = key
        self.markets = markets
        self.remind_days = remind_days
        self.clock = clock
        self._pending: set[asyncio.Task] = set()
        self._last_mirror: asyncio.Task | None = None

    # Loading
    def load(self) -> LoadResult:
        """
        Load the ledger from the primary store.

        An unreadable document yields an empty ledger flagged MALFORMED so the
        host can attempt a restore. Lots that fail validation are carried in
        ``Ledger.unparsed``; the result is PARTIAL when some lots survive and
        MALFORMED when none do. When the key is absent, the legacy key holding
        the most lots is migrated.
        """
        raw = self.primary.get(self.key)
        if raw:
            try:
                ledger = Ledger.from_json(raw, strict=False, markets=self.markets)
            except MalformedLedgerDocumentError as e:
                logger.error(f"Stored ledger under {self.key} is unreadable: {e}")
                return LoadResult(Ledger.empty(), LoadSource.MALFORMED)
            if not ledger.has_unparsed:
                return LoadResult(ledger, LoadSource.PRIMARY)
            logger.warning(
                f"Stored ledger under {self.key} has {len(ledger.unparsed)} unreadable lots, "
                f"{len(ledger)} readable"
            )
            source = LoadSource.PARTIAL if len(ledger) else LoadSource.MALFORMED
            return LoadResult(ledger, source)

        migrated = self._migrate_legacy()
        if migrated is not None:
            return LoadResult(migrated, LoadSource.LEGACY)
        return LoadResult(Ledger.empty(), LoadSource.EMPTY)

    def _migrate_legacy(self) -> Ledger | None:
        best: Ledger | None = None
        best_key = None
        for candidate in self.primary.keys():
            if candidate in (self.key, LAST_BACKUP_KEY):
                continue
            if not candidate.lower().startswith(LEGACY_KEY_PREFIX):
                continue
            raw = self.primary.get(candidate)
            if not raw:
                continue
            try:
                ledger = Ledger.from_json(raw, strict=False, markets=self.markets)
            except MalformedLedgerDocumentError:
                continue
            if len(ledger) and (best is None or len(ledger) > len(best)):
                best, best_key = ledger, candidate

        if best is None:
            return None
        self.primary.set(self.key, best.to_json())
        logger.info(f"Migrated {len(best)} lots from legacy key {best_key} to {self.key}")
        return best

    async def restore_if_primary_empty(self) -> LoadResult | None:
        """
        Copy the backup document into the primary store.

        Only runs when the primary key is absent, unreadable, or holds no
        readable lot, and only when the backup holds at least one lot.

        Returns:
            LoadResult with source BACKUP, or None if nothing was restored
        """
        if self.backup is None:
            return None

        raw = self.primary.get(self.key)
        set_aside = 0
        if raw:
            try:
                current = Ledger.from_json(raw, strict=False, markets=self.markets)
            except MalformedLedgerDocumentError:
                current = None
            if current is not None:
                if not (current.is_empty and current.has_unparsed):
                    return None
                set_aside = len(current.unparsed)

        backup_raw = await self.backup.get(self.key)
        if not backup_raw:
            return None
        try:
            ledger = Ledger.from_json(backup_raw, strict=False, markets=self.markets)
        except MalformedLedgerDocumentError as e:
            logger.warning(f"Backup document is unreadable, not restoring: {e}")
            return None
        if ledger.is_empty:
            return None

        if set_aside:
            logger.warning(f"Replacing {set_aside} unreadable stored lots with the backup")
        self.primary.set(self.key, backup_raw)
        logger.info(f"Restored {len(ledger)} lots from backup store")
        return LoadResult(ledger, LoadSource.BACKUP)

    # Saving
    def save(self, ledger: Ledger) -> Ledger:
        """
        Persist a ledger, stamping lastSaved.

        The primary write is synchronous. The backup mirror is fire-and-forget:
        its failures are logged and never surface to the caller.

        Returns:
            The stamped ledger that was written
        """
        stamped = ledger.stamped(self.clock().strftime(TIMESTAMP_FORMAT))
        raw = stamped.to_json()
        self.primary.set(self.key, raw)
        logger.debug(f"Saved {len(stamped)} lots under {self.key}")
        self._mirror_to_backup(raw)
        return stamped

    def _mirror_to_backup(self, raw: str) -> None:
        if self.backup is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            try:
                asyncio.run(self.backup.set(self.key, raw))
            except Exception as e:
                logger.warning(f"Backup mirror failed: {e}")
            return

        previous = self._last_mirror
        if previous is not None and previous.get_loop() is not loop:
            previous = None
        task = loop.create_task(self._write_backup(raw, previous))
        self._last_mirror = task
        self._pending.add(task)
        task.add_done_callback(self._on_mirror_done)

    async def _write_backup(self, raw: str, previous: asyncio.Task | None) -> None:
        # Mirrors land in save order.
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        await self.backup.set(self.key, raw)

    def _on_mirror_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Backup mirror failed: {error}")

    async def flush_backups(self) -> None:
        """Wait for pending backup mirrors scheduled on the running loop."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def restore_document(self, document: Any) -> Ledger:
        """
        Replace the stored ledger with an uploaded document.

        Raises:
            MalformedLedgerDocumentError: If the document has no lots list or
                contains an invalid lot
        """
        ledger = Ledger.from_document(document, strict=True, markets=self.markets)
        return self.save(ledger)

    def reset(self) -> Ledger:
        """Clear all lots and forget the last backup time."""
        self.primary.delete(LAST_BACKUP_KEY)
        logger.info("Ledger reset")
        return self.save(Ledger.empty())

    # Backup reminder
    def mark_exported(self, when: datetime | None = None) -> datetime:
        when = when or self.clock()
        self.primary.set(LAST_BACKUP_KEY, when.isoformat())
        return when

    def last_backup_at(self) -> datetime | None:
        raw = self.primary.get(LAST_BACKUP_KEY)
        if not raw:
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable last backup stamp {raw!r}")
            return None

    def backup_status(self, now: datetime | None = None) -> BackupStatus:
        """Days since the last export, and whether to remind the user."""
        now = now or self.clock()
        last = self.last_backup_at()
        if last is None:
            return BackupStatus(last_backup_at=None, days_since=None, needs_reminder=True)
        days = max(0, (now - last).days)
        return BackupStatus(
            last_backup_at=last,
            days_since=days,
            needs_reminder=days >= self.remind_days,
        )
