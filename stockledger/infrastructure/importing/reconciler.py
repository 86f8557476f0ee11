"""
Bulk import reconciler.

Merges an external trade list into a ledger as one all-or-nothing batch:
rows that fail normalization are reported and skipped, duplicates are
skipped, and if the merged ledger would hold a negative quantity anywhere the
whole batch is discarded.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from stockledger.core.constants import DEFAULT_IMPORT_TIME, MAX_IMPORT_ERRORS_IN_MESSAGE
from stockledger.core.engine.validator import MutationValidator
from stockledger.core.enums import DEFAULT_MARKETS, MarketRegistry
from stockledger.core.exceptions.ledger import (
    ImportRejectedError,
    OversellRejectedError,
    ValidationError,
)
from stockledger.core.models.ledger import Ledger
from stockledger.core.models.trade import DedupKey, TradeRecord
from stockledger.core.normalizer import TradeNormalizer

from .csv_parser import parse_csv, table_to_records
from .row_canonicalizer import ImportRowCanonicalizer


@dataclass(frozen=True)
class ImportRowError:
    """A row excluded from the batch because it could not be normalized."""

    row_number: int
    field: str
    message: str

    def __str__(self) -> str:
        return f"Row {self.row_number}: {self.message}"


@dataclass(frozen=True)
class ImportReport:
    """Outcome of an accepted batch."""

    ledger: Ledger
    accepted: list[TradeRecord] = field(default_factory=list)
    skipped: int = 0
    errors: list[ImportRowError] = field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    def message(self) -> str:
        """Human readable summary of the batch."""
        parts = [f"Imported {self.accepted_count} trades"]
        if self.skipped:
            parts.append(f" (skipped {self.skipped} duplicates)")
        if self.errors:
            shown = "\n".join(str(e) for e in self.errors[:MAX_IMPORT_ERRORS_IN_MESSAGE])
            more = "\n..." if len(self.errors) > MAX_IMPORT_ERRORS_IN_MESSAGE else ""
            parts.append(f"\n\n{len(self.errors)} rows were not imported:\n{shown}{more}")
        return "".join(parts)


class BulkImportReconciler:
    """Atomic merge-and-validate of imported trades."""

    def __init__(
        self,
        markets: MarketRegistry = DEFAULT_MARKETS,
        default_time: str = DEFAULT_IMPORT_TIME,
        validator: MutationValidator | None = None,
    ) -> None:
        self.canonicalizer = ImportRowCanonicalizer(markets, default_time)
        self.normalizer = TradeNormalizer(markets)
        self.validator = validator or MutationValidator()

    def reconcile(self, ledger: Ledger, rows: Iterable[Mapping[str, Any]]) -> ImportReport:
        """
        Merge imported rows into a ledger.

        Args:
            ledger: Current ledger; never modified
            rows: Field mappings (market, symbol, side, date, time, qty, price, fee)

        Returns:
            ImportReport whose ledger holds the merged lots sorted by timestamp

        Raises:
            ImportRejectedError: If the merged ledger contains an oversell
        """
        seen: set[DedupKey] = {lot.dedup_key() for lot in ledger.lots}
        staged: list[TradeRecord] = []
        errors: list[ImportRowError] = []
        skipped = 0

        for row_number, row in enumerate(rows, start=1):
            if all(str(value or "").strip() == "" for value in row.values()):
                continue
            try:
                record = self.normalizer.normalize(self.canonicalizer.canonicalize(row))
            except ValidationError as e:
                errors.append(ImportRowError(row_number, e.field, str(e)))
                continue

            key = record.dedup_key()
            if key in seen:
                skipped += 1
                continue
            seen.add(key)
            staged.append(record)

        proposed = ledger.with_lots(staged).sorted_by_timestamp()
        try:
            self.validator.scan_ledger(proposed)
        except OversellRejectedError as e:
            market, symbol = e.instrument
            logger.warning(f"Import of {len(staged)} trades rolled back: {e}")
            raise ImportRejectedError(
                f"Import rejected: {market}:{symbol} would hold a negative quantity after the "
                f"sell at {e.timestamp}. Check for missing buys or wrong dates.",
                instrument=e.instrument,
                timestamp=e.timestamp,
            ) from e

        logger.info(
            f"Import accepted {len(staged)} trades, skipped {skipped}, {len(errors)} row errors"
        )
        return ImportReport(
            ledger=proposed if staged else ledger,
            accepted=staged,
            skipped=skipped,
            errors=errors,
        )

    def import_csv(self, ledger: Ledger, text: str) -> ImportReport:
        """
        Parse a delimited trade list and reconcile it.

        Raises:
            DataError: If the text cannot be tokenized
            ImportRejectedError: If there are no data rows or the batch oversells
        """
        table = parse_csv(text)
        if not table.rows:
            raise ImportRejectedError("Import rejected: the file has no data rows")
        return self.reconcile(ledger, table_to_records(table))
