"""
Ledger mutations.

Insert, edit and delete each build a proposed ledger, validate the affected
instrument, and return the new ledger. On rejection the input ledger is
untouched because Ledger values are immutable.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from stockledger.core.engine.validator import MutationValidator
from stockledger.core.exceptions.ledger import ValidationError
from stockledger.core.models.ledger import Ledger
from stockledger.core.models.position import Timeline
from stockledger.core.models.trade import TradeRecord
from stockledger.core.normalizer import TradeNormalizer, split_timestamp
from stockledger.core.types import format_quantity

EDITABLE_FIELDS = frozenset({"date", "time", "timestamp", "quantity", "qty", "price", "fee"})


@dataclass(frozen=True)
class MutationResult:
    """Accepted mutation: the new ledger and the affected timeline."""

    ledger: Ledger
    record: TradeRecord
    timeline: Timeline


class LedgerMutations:
    """Validated insert/edit/delete over immutable ledgers."""

    def __init__(
        self,
        normalizer: TradeNormalizer | None = None,
        validator: MutationValidator | None = None,
    ) -> None:
        self.normalizer = normalizer or TradeNormalizer()
        self.validator = validator or MutationValidator()

    def add_trade(self, ledger: Ledger, raw: Mapping[str, Any] | TradeRecord) -> MutationResult:
        """
        Append a trade.

        Args:
            ledger: Current ledger
            raw: Raw trade fields or an already validated record

        Raises:
            ValidationError: If the input does not normalize
            OversellRejectedError: If a SELL exceeds the holding at its time
        """
        record = raw if isinstance(raw, TradeRecord) else self.normalizer.normalize(raw)
        proposed = ledger.with_lot(record)
        timeline = self.validator.validate(proposed, record.instrument)
        logger.info(
            f"Added {record.side} {format_quantity(record.quantity)} {record.instrument} @ {record.price:g}"
        )
        return MutationResult(proposed, record, timeline)

    def edit_trade(
        self, ledger: Ledger, trade_id: str, changes: Mapping[str, Any]
    ) -> MutationResult:
        """
        Edit the timestamp, quantity, price or fee of a trade.

        Market, symbol, side and id are fixed for the life of a trade.

        Raises:
            RecordNotFoundError: If no trade has this id
            ValidationError: If a change is invalid or targets a fixed field
            OversellRejectedError: If the edit makes any SELL exceed its holding
        """
        current = ledger.find(trade_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        fixed = set(changes) - EDITABLE_FIELDS
        if fixed:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(fixed))}")

        raw = current.to_document()
        raw.update(changes)
        current_date, current_time = split_timestamp(current.timestamp)
        if "date" in changes and "time" not in changes:
            raw["time"] = current_time
        elif "time" in changes and "date" not in changes:
            raw["date"] = current_date
        if "quantity" in changes:
            raw.pop("qty", None)

        updated = self.normalizer.normalize(raw)
        proposed = ledger.replace_lot(updated)
        timeline = self.validator.validate(proposed, updated.instrument)
        logger.info(f"Edited trade {trade_id} on {updated.instrument}")
        return MutationResult(proposed, updated, timeline)

    def delete_trade(self, ledger: Ledger, trade_id: str) -> MutationResult:
        """
        Remove a trade.

        Raises:
            RecordNotFoundError: If no trade has this id
            OversellRejectedError: If removing a BUY leaves a later SELL uncovered
        """
        record = ledger.find(trade_id)
        proposed = ledger.without_lot(trade_id)
        timeline = self.validator.validate(proposed, record.instrument)
        logger.info(f"Deleted trade {trade_id} on {record.instrument}")
        return MutationResult(proposed, record, timeline)
