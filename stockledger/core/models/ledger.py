"""
Ledger value object.

The ledger is an immutable collection of lots plus a schema version. Every
mutation returns a new Ledger; the host persists the full document.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from loguru import logger

from stockledger.core.constants import LEDGER_SCHEMA_VERSION
from stockledger.core.enums import DEFAULT_MARKETS, MarketRegistry
from stockledger.core.exceptions.ledger import (
    MalformedLedgerDocumentError,
    RecordNotFoundError,
    ValidationError,
)
from stockledger.core.models.trade import InstrumentKey, TradeRecord
from stockledger.core.normalizer import TradeNormalizer


@dataclass(frozen=True)
class LedgerSummary:
    """Lot count and latest timestamp, shown next to backup status."""

    count: int
    last_timestamp: str | None


@dataclass(frozen=True)
class Ledger:
    """Immutable ledger state.

    Stored lots that fail validation on a lenient load are kept verbatim in
    ``unparsed`` and written back on every save. They take no part in replay.
    """

    lots: tuple[TradeRecord, ...] = field(default_factory=tuple)
    version: int = LEDGER_SCHEMA_VERSION
    last_saved: str | None = None
    unparsed: tuple[Any, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "Ledger":
        return cls()

    def __len__(self) -> int:
        return len(self.lots)

    def __iter__(self):
        return iter(self.lots)

    @property
    def is_empty(self) -> bool:
        return not self.lots

    @property
    def has_unparsed(self) -> bool:
        return bool(self.unparsed)

    # Lookup
    def index_of(self, trade_id: str) -> int:
        """Position of a lot; raises RecordNotFoundError if absent."""
        tid = str(trade_id or "").strip()
        for i, lot in enumerate(self.lots):
            if lot.id == tid:
                return i
        raise RecordNotFoundError(tid)

    def find(self, trade_id: str) -> TradeRecord:
        return self.lots[self.index_of(trade_id)]

    def lots_for(self, instrument: InstrumentKey | tuple[str, str]) -> list[TradeRecord]:
        """Lots of one instrument in ledger order."""
        key = InstrumentKey(*instrument)
        return [lot for lot in self.lots if lot.instrument == key]

    def instruments(self) -> list[InstrumentKey]:
        """Distinct instruments in first-seen order."""
        seen: dict[InstrumentKey, None] = {}
        for lot in self.lots:
            seen.setdefault(lot.instrument, None)
        return list(seen)

    # Mutation (returns new values)
    def with_lot(self, record: TradeRecord) -> "Ledger":
        return replace(self, lots=(*self.lots, record))

    def with_lots(self, records: list[TradeRecord]) -> "Ledger":
        return replace(self, lots=(*self.lots, *records))

    def replace_lot(self, record: TradeRecord) -> "Ledger":
        idx = self.index_of(record.id)
        lots = list(self.lots)
        lots[idx] = record
        return replace(self, lots=tuple(lots))

    def without_lot(self, trade_id: str) -> "Ledger":
        idx = self.index_of(trade_id)
        return replace(self, lots=self.lots[:idx] + self.lots[idx + 1 :])

    def sorted_by_timestamp(self) -> "Ledger":
        """Stable sort of all lots by timestamp."""
        return replace(self, lots=tuple(sorted(self.lots, key=lambda lot: lot.timestamp)))

    def stamped(self, last_saved: str) -> "Ledger":
        return replace(self, last_saved=last_saved)

    def summary(self) -> LedgerSummary:
        last = max((lot.timestamp for lot in self.lots), default=None)
        return LedgerSummary(count=len(self.lots), last_timestamp=last)

    # Serialization
    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "version": self.version,
            "lots": [lot.to_document() for lot in self.lots] + list(self.unparsed),
        }
        if self.last_saved:
            document["lastSaved"] = self.last_saved
        return document

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_document(), ensure_ascii=False, indent=indent)

    @classmethod
    def from_document(
        cls,
        document: Any,
        strict: bool = True,
        markets: MarketRegistry = DEFAULT_MARKETS,
    ) -> "Ledger":
        """Build a ledger from a parsed document.

        Args:
            document: Parsed JSON object with a ``lots`` list
            strict: Raise on an invalid lot instead of setting it aside
            markets: Market registry used to validate lots

        Raises:
            MalformedLedgerDocumentError: If the document shape is wrong, or a
                lot is invalid in strict mode
        """
        if not isinstance(document, Mapping) or not isinstance(document.get("lots"), list):
            raise MalformedLedgerDocumentError("Ledger document must be an object with a lots list")

        normalizer = TradeNormalizer(markets)
        lots: list[TradeRecord] = []
        unparsed: list[Any] = []
        for position, raw in enumerate(document["lots"], start=1):
            try:
                if not isinstance(raw, Mapping):
                    raise MalformedLedgerDocumentError(f"Lot {position} is not an object")
                lots.append(normalizer.normalize(raw))
            except (ValidationError, MalformedLedgerDocumentError) as e:
                if strict:
                    raise MalformedLedgerDocumentError(f"Invalid lot {position}: {e}") from e
                logger.warning(f"Keeping unreadable lot {position} aside: {e}")
                unparsed.append(raw)

        version = document.get("version", LEDGER_SCHEMA_VERSION)
        last_saved = document.get("lastSaved")
        return cls(
            lots=tuple(lots),
            version=version if isinstance(version, int) else LEDGER_SCHEMA_VERSION,
            last_saved=str(last_saved) if last_saved else None,
            unparsed=tuple(unparsed),
        )

    @classmethod
    def from_json(
        cls, raw: str, strict: bool = True, markets: MarketRegistry = DEFAULT_MARKETS
    ) -> "Ledger":
        try:
            document = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedLedgerDocumentError(f"Ledger document is not valid JSON: {e}") from e
        return cls.from_document(document, strict=strict, markets=markets)
