"""
Custom exception hierarchy for the stock ledger.

This module defines domain-specific exceptions for better error handling.
"""

from typing import Any

from stockledger.core.types import format_quantity


class LedgerException(Exception):
    """Base exception for all ledger-related errors."""

    pass


class ValidationError(LedgerException):
    """Raised when trade input validation fails."""

    field: str = ""

    def __init__(self, message: str, value: Any = None):
        self.value = value
        super().__init__(message)


class InvalidMarketError(ValidationError):
    """Raised when the market code is not registered."""

    field = "market"


class MissingSymbolError(ValidationError):
    """Raised when the symbol is empty after trimming."""

    field = "symbol"


class InvalidSideError(ValidationError):
    """Raised when the side is neither BUY nor SELL."""

    field = "side"


class InvalidTimestampError(ValidationError):
    """Raised when the date or time cannot be parsed."""

    field = "timestamp"


class InvalidQuantityError(ValidationError):
    """Raised when the quantity is not a finite positive number."""

    field = "quantity"


class InvalidPriceError(ValidationError):
    """Raised when the price is not a finite positive number."""

    field = "price"


class InvalidFeeError(ValidationError):
    """Raised when the fee is not a finite non-negative number."""

    field = "fee"


class OversellRejectedError(LedgerException):
    """Raised when a sell exceeds the holding at that point in the timeline."""

    def __init__(
        self,
        instrument: tuple[str, str],
        timestamp: str,
        requested_qty: float,
        holding_at_time: float,
        trade_id: str | None = None,
    ):
        self.instrument = instrument
        self.timestamp = timestamp
        self.requested_qty = requested_qty
        self.holding_at_time = holding_at_time
        self.trade_id = trade_id
        market, symbol = instrument
        super().__init__(
            f"Sell of {format_quantity(requested_qty)} {market}:{symbol} at {timestamp} exceeds "
            f"holding of {format_quantity(holding_at_time)} at that time"
        )

    def to_dict(self) -> dict[str, Any]:
        """Structured reason for API and CLI consumers."""
        return {
            "market": self.instrument[0],
            "symbol": self.instrument[1],
            "timestamp": self.timestamp,
            "requested_qty": self.requested_qty,
            "holding_at_time": self.holding_at_time,
            "trade_id": self.trade_id,
        }


class RecordNotFoundError(LedgerException):
    """Raised when trying to operate on a non-existent trade."""

    def __init__(self, trade_id: str):
        self.trade_id = trade_id
        super().__init__(f"Trade not found: {trade_id}")


class MalformedLedgerDocumentError(LedgerException):
    """Raised when a ledger document does not have the expected shape."""

    pass


class DataError(LedgerException):
    """Raised when tabular input cannot be parsed."""

    pass


class ImportRejectedError(LedgerException):
    """Raised when a bulk import is discarded as a whole."""

    def __init__(
        self,
        reason: str,
        instrument: tuple[str, str] | None = None,
        timestamp: str | None = None,
    ):
        self.reason = reason
        self.instrument = instrument
        self.timestamp = timestamp
        super().__init__(reason)


class StorageError(LedgerException):
    """Raised when the primary store cannot be read or written."""

    pass
