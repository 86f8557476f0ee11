"""
Trade input normalizer.

Validates and canonicalizes raw trade fields into a TradeRecord. Raw input is
any mapping with the keys below; values may be strings as typed by a user.

    market, symbol, side (or type), date, time (or timestamp),
    quantity (or qty), price, fee, id
"""

import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from stockledger.core.constants import DEFAULT_TIME, TIMESTAMP_FORMAT
from stockledger.core.enums import DEFAULT_MARKETS, MarketRegistry, MarketSpec, TradeSide
from stockledger.core.exceptions.ledger import (
    InvalidFeeError,
    InvalidMarketError,
    InvalidPriceError,
    InvalidQuantityError,
    InvalidSideError,
    InvalidTimestampError,
    MissingSymbolError,
)
from stockledger.core.models.trade import TradeRecord, new_trade_id
from stockledger.core.types.financial import is_blank
from stockledger.core.utils.validation import validate_non_negative, validate_positive

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_HHMM_PATTERN = re.compile(r"^\d{2}:\d{2}$")
TIME_HHMMSS_PATTERN = re.compile(r"^\d{2}:\d{2}:\d{2}$")


def parse_timestamp(date_str: Any, time_str: Any = None, default_time: str = DEFAULT_TIME) -> str:
    """Combine a date and an optional time into the canonical timestamp.

    Args:
        date_str: ``YYYY-MM-DD``
        time_str: ``HH:MM``, ``HH:MM:SS`` or blank
        default_time: Time used when ``time_str`` is blank

    Returns:
        ``YYYY-MM-DD HH:MM:SS``

    Raises:
        InvalidTimestampError: If the date is missing or either part is malformed
    """
    date_part = str(date_str or "").strip()
    if not DATE_PATTERN.match(date_part):
        raise InvalidTimestampError(f"Date must be YYYY-MM-DD, got {date_str!r}", date_str)

    time_part = str(time_str or "").strip() or default_time
    if TIME_HHMM_PATTERN.match(time_part):
        time_part = f"{time_part}:00"
    elif not TIME_HHMMSS_PATTERN.match(time_part):
        raise InvalidTimestampError(f"Time must be HH:MM or HH:MM:SS, got {time_str!r}", time_str)

    timestamp = f"{date_part} {time_part}"
    try:
        datetime.strptime(timestamp, TIMESTAMP_FORMAT)
    except ValueError as e:
        raise InvalidTimestampError(f"Not a calendar date/time: {timestamp}", timestamp) from e
    return timestamp


def split_timestamp(value: Any) -> tuple[str, str]:
    """Split a combined ``date time`` (or ISO ``dateTtime``) string."""
    text = str(value or "").strip().replace("T", " ", 1)
    date_part, _, time_part = text.partition(" ")
    return date_part, time_part.strip()


class TradeNormalizer:
    """Turns raw trade fields into validated TradeRecords."""

    def __init__(self, markets: MarketRegistry = DEFAULT_MARKETS) -> None:
        self.markets = markets

    def normalize_market(self, value: Any) -> MarketSpec:
        """Resolve a market code; raises InvalidMarketError for unknown codes."""
        spec = self.markets.get(str(value or ""))
        if spec is None:
            raise InvalidMarketError(
                f"Unknown market {value!r}. Supported markets: {', '.join(self.markets.codes)}",
                value,
            )
        return spec

    @staticmethod
    def normalize_symbol(spec: MarketSpec, value: Any) -> str:
        """Apply the market's symbol rule; raises MissingSymbolError if empty."""
        symbol = spec.normalize_symbol(value)
        if not symbol:
            raise MissingSymbolError("Symbol cannot be empty", value)
        return symbol

    @staticmethod
    def normalize_side(value: Any) -> TradeSide:
        if isinstance(value, TradeSide):
            return value
        try:
            return TradeSide.from_string(value)
        except ValueError as e:
            raise InvalidSideError(str(e), value) from e

    @staticmethod
    def normalize_timestamp(raw: Mapping[str, Any]) -> str:
        date_value = raw.get("date")
        time_value = raw.get("time")
        if is_blank(date_value) and not is_blank(raw.get("timestamp")):
            date_value, time_value = split_timestamp(raw.get("timestamp"))
        return parse_timestamp(date_value, time_value)

    def normalize(self, raw: Mapping[str, Any]) -> TradeRecord:
        """Validate raw fields and build a TradeRecord.

        Args:
            raw: Mapping of raw field values

        Returns:
            Validated TradeRecord; a new id is generated if none is supplied

        Raises:
            ValidationError: Subclass naming the first invalid field
        """
        spec = self.normalize_market(raw.get("market"))
        symbol = self.normalize_symbol(spec, raw.get("symbol"))
        side = self.normalize_side(raw.get("side", raw.get("type")))
        timestamp = self.normalize_timestamp(raw)
        quantity = validate_positive(
            raw.get("quantity", raw.get("qty")), "Quantity", InvalidQuantityError
        )
        price = validate_positive(raw.get("price"), "Price", InvalidPriceError)
        fee = validate_non_negative(raw.get("fee"), "Fee", InvalidFeeError)

        trade_id = str(raw.get("id") or "").strip() or new_trade_id()
        return TradeRecord(
            id=trade_id,
            timestamp=timestamp,
            market=spec.code,
            symbol=symbol,
            side=side,
            quantity=quantity,
            price=price,
            fee=fee,
        )


_default_normalizer = TradeNormalizer()


def normalize(raw: Mapping[str, Any], markets: MarketRegistry | None = None) -> TradeRecord:
    """Normalize raw trade fields with the given (or default) market registry."""
    if markets is None:
        return _default_normalizer.normalize(raw)
    return TradeNormalizer(markets).normalize(raw)
