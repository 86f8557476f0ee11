"""
Trade record domain model.

A trade record is one BUY or SELL lot. Records are immutable; edits produce a
new record with the same id.
"""

import uuid
from dataclasses import dataclass
from typing import Any, NamedTuple

from stockledger.core.enums import TradeSide
from stockledger.core.exceptions.ledger import (
    InvalidFeeError,
    InvalidPriceError,
    InvalidQuantityError,
    MissingSymbolError,
)


class InstrumentKey(NamedTuple):
    """(market, symbol) pair identifying one accounting timeline."""

    market: str
    symbol: str

    def __str__(self) -> str:
        return f"{self.market}:{self.symbol}"


DedupKey = tuple[str, str, str, str, float, float, float]


def new_trade_id() -> str:
    """Generate an opaque unique trade id."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TradeRecord:
    """Represents one validated ledger lot.

    ``timestamp`` is the canonical ``YYYY-MM-DD HH:MM:SS`` string; string
    order equals chronological order.
    """

    id: str
    timestamp: str
    market: str
    symbol: str
    side: TradeSide
    quantity: float
    price: float
    fee: float = 0.0

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.symbol:
            raise MissingSymbolError("Symbol cannot be empty")
        if self.quantity <= 0:
            raise InvalidQuantityError(
                f"Quantity must be positive, got {self.quantity}", self.quantity
            )
        if self.price <= 0:
            raise InvalidPriceError(f"Price must be positive, got {self.price}", self.price)
        if self.fee < 0:
            raise InvalidFeeError(f"Fee must be non-negative, got {self.fee}", self.fee)

    @property
    def instrument(self) -> InstrumentKey:
        """Instrument this record belongs to."""
        return InstrumentKey(self.market, self.symbol)

    def dedup_key(self) -> DedupKey:
        """Identity of the trade ignoring its id, used by bulk import."""
        return (
            self.market,
            self.symbol,
            self.side.value,
            self.timestamp,
            self.quantity,
            self.price,
            self.fee,
        )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the persisted lot shape."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "market": self.market,
            "symbol": self.symbol,
            "type": self.side.value,
            "qty": self.quantity,
            "price": self.price,
            "fee": self.fee,
        }
