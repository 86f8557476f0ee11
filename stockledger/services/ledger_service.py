"""
Ledger service.

Host-facing façade used by the API and the CLI. Every operation reads the
current ledger from the repository, runs the pure engine over it, and saves
only when the engine accepted the change.
"""

from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import datetime
from threading import RLock
from typing import Any

from loguru import logger

from stockledger.config import Settings
from stockledger.core.constants import DEFAULT_IMPORT_TIME
from stockledger.core.engine import (
    HoldingsAggregator,
    LedgerMutations,
    MutationResult,
    MutationValidator,
    PositionReplayEngine,
)
from stockledger.core.enums import DEFAULT_MARKETS, MarketRegistry
from stockledger.core.models.ledger import Ledger, LedgerSummary
from stockledger.core.models.position import PositionSummary, Timeline
from stockledger.core.models.trade import InstrumentKey, TradeRecord
from stockledger.core.normalizer import TradeNormalizer
from stockledger.infrastructure.export import (
    backup_filename,
    chart_series,
    export_json,
    export_timeline_csv,
    instrument_csv_filename,
)
from stockledger.infrastructure.importing import BulkImportReconciler, ImportReport
from stockledger.infrastructure.storage import (
    AsyncJsonDirectoryStore,
    BackupStatus,
    JsonDirectoryStore,
    LedgerRepository,
    LoadResult,
)


class LedgerService:
    """Persistence-aware operations over the ledger."""

    def __init__(
        self,
        repository: LedgerRepository,
        markets: MarketRegistry = DEFAULT_MARKETS,
        default_import_time: str = DEFAULT_IMPORT_TIME,
        clock=datetime.now,
    ) -> None:
        self.repository = repository
        self.markets = markets
        self.clock = clock

        engine = PositionReplayEngine(markets)
        validator = MutationValidator(engine)
        self.engine = engine
        self.normalizer = TradeNormalizer(markets)
        self.mutations = LedgerMutations(self.normalizer, validator)
        self.aggregator = HoldingsAggregator(engine)
        self.reconciler = BulkImportReconciler(markets, default_import_time, validator)
        self._lock = RLock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LedgerService":
        """Build a service backed by JSON files under the configured directories."""
        backup = AsyncJsonDirectoryStore(settings.backup_dir) if settings.backup_dir else None
        repository = LedgerRepository(
            primary=JsonDirectoryStore(settings.data_dir),
            backup=backup,
            key=settings.storage_key,
            remind_days=settings.backup_remind_days,
        )
        return cls(repository, default_import_time=settings.default_import_time)

    async def startup(self) -> LoadResult:
        """Recover from the backup store if needed, then load."""
        restored = await self.repository.restore_if_primary_empty()
        if restored is not None:
            return restored
        result = self.repository.load()
        logger.info(f"Loaded {len(result.ledger)} lots ({result.source})")
        return result

    def load(self) -> Ledger:
        return self.repository.load().ledger

    def _instrument(self, market: str, symbol: str) -> InstrumentKey:
        spec = self.normalizer.normalize_market(market)
        return InstrumentKey(spec.code, self.normalizer.normalize_symbol(spec, symbol))

    # Queries
    def list_trades(self, market: str | None = None, symbol: str | None = None) -> list[TradeRecord]:
        """Lots in timestamp order, optionally filtered by market and symbol."""
        lots = self.load().sorted_by_timestamp().lots
        if market and symbol:
            instrument = self._instrument(market, symbol)
            lots = tuple(lot for lot in lots if lot.instrument == instrument)
        elif market:
            code = self.normalizer.normalize_market(market).code
            lots = tuple(lot for lot in lots if lot.market == code)
        elif symbol:
            # Each lot's own market decides whether the symbol is case-folded
            lots = tuple(
                lot for lot in lots if lot.instrument == self._instrument(lot.market, symbol)
            )
        return list(lots)

    def get_trade(self, trade_id: str) -> TradeRecord:
        return self.load().find(trade_id)

    def holdings(self) -> list[PositionSummary]:
        return self.aggregator.aggregate(self.load())

    def timeline(self, market: str, symbol: str) -> Timeline:
        """Replay one instrument; unknown instruments give an empty timeline."""
        instrument = self._instrument(market, symbol)
        return self.engine.replay(self.load().lots_for(instrument), instrument=instrument)

    def chart(self, market: str, symbol: str) -> dict[str, Any]:
        return chart_series(self.timeline(market, symbol))

    def summary(self) -> LedgerSummary:
        return self.load().summary()

    # Mutations
    def _commit(self, result: MutationResult) -> MutationResult:
        saved = self.repository.save(result.ledger)
        return replace(result, ledger=saved)

    def add_trade(self, raw: Mapping[str, Any]) -> MutationResult:
        with self._lock:
            return self._commit(self.mutations.add_trade(self.load(), raw))

    def edit_trade(self, trade_id: str, changes: Mapping[str, Any]) -> MutationResult:
        with self._lock:
            return self._commit(self.mutations.edit_trade(self.load(), trade_id, changes))

    def delete_trade(self, trade_id: str) -> MutationResult:
        with self._lock:
            return self._commit(self.mutations.delete_trade(self.load(), trade_id))

    def import_rows(self, rows: Iterable[Mapping[str, Any]]) -> ImportReport:
        with self._lock:
            report = self.reconciler.reconcile(self.load(), rows)
            return self._save_report(report)

    def import_csv(self, text: str) -> ImportReport:
        """
        Import a delimited trade list as one atomic batch.

        Raises:
            DataError: If the text cannot be parsed
            ImportRejectedError: If the batch is empty or would oversell
        """
        with self._lock:
            report = self.reconciler.import_csv(self.load(), text)
            return self._save_report(report)

    def _save_report(self, report: ImportReport) -> ImportReport:
        if not report.accepted:
            return report
        return replace(report, ledger=self.repository.save(report.ledger))

    def restore_document(self, document: Any) -> Ledger:
        """
        Replace the ledger with an exported document.

        Raises:
            MalformedLedgerDocumentError: If the document is not a valid export
        """
        with self._lock:
            ledger = self.repository.restore_document(document)
            logger.info(f"Restored {len(ledger)} lots from uploaded document")
            return ledger

    def reset(self) -> Ledger:
        with self._lock:
            return self.repository.reset()

    # Exports
    def export_json(self) -> tuple[str, str]:
        """
        Serialize the ledger for download and record the export time.

        Returns:
            Tuple of (filename, JSON text)
        """
        now = self.clock()
        text = export_json(self.load())
        self.repository.mark_exported(now)
        return backup_filename(now), text

    def export_instrument_csv(self, market: str, symbol: str) -> tuple[str, str]:
        timeline = self.timeline(market, symbol)
        instrument = timeline.instrument
        filename = instrument_csv_filename(instrument.market, instrument.symbol, self.clock())
        return filename, export_timeline_csv(timeline)

    def backup_status(self) -> BackupStatus:
        return self.repository.backup_status(self.clock())
