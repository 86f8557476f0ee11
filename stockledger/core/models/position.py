"""
Position domain models derived by the replay engine.

None of these are persisted; they are recomputed from the ledger lots.
"""

from dataclasses import dataclass, field
from typing import Any

from stockledger.core.enums import TradeSide
from stockledger.core.models.trade import InstrumentKey, TradeRecord
from stockledger.core.types.financial import ZERO


@dataclass(frozen=True)
class PositionSnapshot:
    """Running state of one instrument at one point of its timeline."""

    quantity: float = ZERO
    average_cost: float = ZERO
    realized_pnl: float = ZERO

    @property
    def is_open(self) -> bool:
        """Check if anything is still held."""
        return self.quantity > ZERO


@dataclass(frozen=True)
class TimelineEntry:
    """One replayed event: the record plus the position right after it."""

    index: int
    record: TradeRecord
    average_cost_after: float
    quantity_after: float
    realized_pnl_after: float

    @property
    def trade_id(self) -> str:
        return self.record.id

    @property
    def timestamp(self) -> str:
        return self.record.timestamp

    @property
    def side(self) -> TradeSide:
        return self.record.side

    @property
    def quantity(self) -> float:
        return self.record.quantity

    @property
    def price(self) -> float:
        return self.record.price

    @property
    def fee(self) -> float:
        return self.record.fee

    def to_dict(self) -> dict[str, Any]:
        """Flat representation for exports and API responses."""
        return {
            "idx": self.index,
            "id": self.record.id,
            "timestamp": self.record.timestamp,
            "side": self.record.side.value,
            "qty": self.record.quantity,
            "price": self.record.price,
            "fee": self.record.fee,
            "afterQty": self.quantity_after,
            "avgCostAfter": self.average_cost_after,
            "realizedAfter": self.realized_pnl_after,
        }


@dataclass(frozen=True)
class Timeline:
    """Full replay of one instrument."""

    instrument: InstrumentKey
    currency: str
    entries: tuple[TimelineEntry, ...] = field(default_factory=tuple)
    final: PositionSnapshot = field(default_factory=PositionSnapshot)

    @property
    def holding_quantity(self) -> float:
        return self.final.quantity

    @property
    def average_cost(self) -> float:
        return self.final.average_cost

    @property
    def realized_pnl(self) -> float:
        return self.final.realized_pnl

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class PositionSummary:
    """Terminal position of one instrument, as listed in holdings."""

    market: str
    symbol: str
    currency: str
    quantity: float
    average_cost: float
    realized_pnl: float

    @property
    def instrument(self) -> InstrumentKey:
        return InstrumentKey(self.market, self.symbol)

    def to_dict(self) -> dict[str, Any]:
        return {
            "market": self.market,
            "symbol": self.symbol,
            "currency": self.currency,
            "qty": self.quantity,
            "avgCost": self.average_cost,
            "realized": self.realized_pnl,
        }
