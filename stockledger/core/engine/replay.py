"""
Position replay engine.

The single arithmetic authority of the ledger. Given the lots of one
instrument it computes, in timestamp order, the running holding quantity,
weighted-average cost and realized P&L. Holdings, queries, chart series and
CSV export all consume its output.

Average-cost rules:
    BUY(q, px, fee):  total = qty*avg + q*px + fee; qty += q; avg = total / qty
    SELL(q, px, fee): realized += (q*px - fee) - q*avg; qty -= q
                      qty <= epsilon  ->  qty = 0, avg = 0
"""

from collections.abc import Iterable

from stockledger.core.enums import DEFAULT_MARKETS, MarketRegistry
from stockledger.core.exceptions.ledger import OversellRejectedError
from stockledger.core.models.position import PositionSnapshot, Timeline, TimelineEntry
from stockledger.core.models.trade import InstrumentKey, TradeRecord
from stockledger.core.types.financial import ZERO, exceeds, is_depleted


def sort_by_timestamp(records: Iterable[TradeRecord]) -> list[TradeRecord]:
    """Stable sort by timestamp; ties keep their original order."""
    return sorted(records, key=lambda record: record.timestamp)


def apply_buy(state: PositionSnapshot, record: TradeRecord) -> PositionSnapshot:
    """Fold a BUY into the running position."""
    total_cost = state.quantity * state.average_cost + record.quantity * record.price + record.fee
    quantity = state.quantity + record.quantity
    average_cost = total_cost / quantity if quantity > ZERO else ZERO
    return PositionSnapshot(quantity, average_cost, state.realized_pnl)


def apply_sell(state: PositionSnapshot, record: TradeRecord) -> PositionSnapshot:
    """Fold a SELL into the running position, clamping float residue to zero."""
    proceeds = record.quantity * record.price - record.fee
    cost_basis = record.quantity * state.average_cost
    realized = state.realized_pnl + (proceeds - cost_basis)
    quantity = state.quantity - record.quantity
    average_cost = state.average_cost
    if is_depleted(quantity):
        quantity = ZERO
        average_cost = ZERO
    return PositionSnapshot(quantity, average_cost, realized)


def apply_record(state: PositionSnapshot, record: TradeRecord) -> PositionSnapshot:
    if record.side.is_buy:
        return apply_buy(state, record)
    return apply_sell(state, record)


class PositionReplayEngine:
    """Deterministic replay of one instrument's lots."""

    def __init__(self, markets: MarketRegistry = DEFAULT_MARKETS) -> None:
        self.markets = markets

    def replay(
        self,
        records: Iterable[TradeRecord],
        instrument: InstrumentKey | None = None,
        strict: bool = False,
    ) -> Timeline:
        """
        Replay the lots of one instrument.

        Args:
            records: Lots of a single instrument, in any order
            instrument: Instrument key; taken from the first record if omitted
            strict: Raise on the first SELL exceeding the running holding

        Returns:
            Timeline with one entry per record and the terminal snapshot

        Raises:
            ValueError: If records belong to more than one instrument
            OversellRejectedError: In strict mode, on the first oversell
        """
        ordered = sort_by_timestamp(records)
        if instrument is None:
            instrument = ordered[0].instrument if ordered else InstrumentKey("", "")
        instrument = InstrumentKey(*instrument)

        state = PositionSnapshot()
        entries: list[TimelineEntry] = []
        for record in ordered:
            if record.instrument != instrument:
                raise ValueError(
                    f"Record {record.id} belongs to {record.instrument}, not {instrument}"
                )
            if strict and record.side.is_sell and exceeds(record.quantity, state.quantity):
                raise OversellRejectedError(
                    instrument=tuple(instrument),
                    timestamp=record.timestamp,
                    requested_qty=record.quantity,
                    holding_at_time=state.quantity,
                    trade_id=record.id,
                )
            state = apply_record(state, record)
            entries.append(
                TimelineEntry(
                    index=len(entries) + 1,
                    record=record,
                    average_cost_after=state.average_cost,
                    quantity_after=state.quantity,
                    realized_pnl_after=state.realized_pnl,
                )
            )

        return Timeline(
            instrument=instrument,
            currency=self.markets.currency_of(instrument.market),
            entries=tuple(entries),
            final=state,
        )


_default_engine = PositionReplayEngine()


def replay(
    records: Iterable[TradeRecord],
    instrument: InstrumentKey | None = None,
    strict: bool = False,
) -> Timeline:
    """Replay with the default market registry."""
    return _default_engine.replay(records, instrument=instrument, strict=strict)
