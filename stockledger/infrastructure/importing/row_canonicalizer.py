"""
Lenient canonicalization of imported rows.

External trade lists use looser formats than manual entry. Each helper here
rewrites one field into the strict form the normalizer accepts, so that the
dedup key is computed on canonical values.
"""

import re
from collections.abc import Mapping
from typing import Any

from stockledger.core.constants import DEFAULT_IMPORT_TIME
from stockledger.core.enums import DEFAULT_MARKETS, MarketRegistry, TradeSide
from stockledger.core.exceptions.ledger import (
    InvalidMarketError,
    InvalidSideError,
    InvalidTimestampError,
    MissingSymbolError,
)
from stockledger.core.types.financial import is_blank

_COMPACT_DATE = re.compile(r"^\d{8}$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SHORT_HOUR_TIME = re.compile(r"^\d:\d{2}(:\d{2})?$")
_TIME = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")


def normalize_import_date(value: Any) -> str | None:
    """Accept ``YYYY-MM-DD``, ``YYYY/MM/DD``, ``YYYY.MM.DD`` or ``YYYYMMDD``."""
    text = str(value or "").strip()
    if not text:
        return None
    text = text.replace("/", "-").replace(".", "-")
    if _COMPACT_DATE.match(text):
        text = f"{text[:4]}-{text[4:6]}-{text[6:]}"
    return text if _ISO_DATE.match(text) else None


def normalize_import_time(value: Any, default_time: str = DEFAULT_IMPORT_TIME) -> str | None:
    """Accept ``H:MM``, ``HH:MM`` or ``HH:MM:SS``; blank gives ``default_time``."""
    text = str(value or "").strip()
    if not text:
        return default_time
    if _SHORT_HOUR_TIME.match(text):
        text = f"0{text}"
    return text if _TIME.match(text) else None


class ImportRowCanonicalizer:
    """Rewrites one imported row into raw fields for the normalizer."""

    def __init__(
        self,
        markets: MarketRegistry = DEFAULT_MARKETS,
        default_time: str = DEFAULT_IMPORT_TIME,
    ) -> None:
        self.markets = markets
        self.default_time = default_time

    def resolve_market(self, market: Any, symbol: str) -> str:
        """Explicit market column wins; otherwise infer from the symbol shape."""
        if is_blank(market):
            return self.markets.infer_market(symbol)
        spec = self.markets.get(str(market))
        if spec is None:
            raise InvalidMarketError(f"Unknown market {market!r}", market)
        return spec.code

    def canonicalize(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """
        Canonicalize the lenient fields of an imported row.

        Args:
            row: Mapping with market, symbol, side, date, time, qty, price, fee

        Returns:
            Raw fields ready for TradeNormalizer.normalize

        Raises:
            ValidationError: Subclass naming the first field that cannot be read
        """
        symbol = str(row.get("symbol") or "").strip()
        if not symbol:
            raise MissingSymbolError("Missing symbol")

        market = self.resolve_market(row.get("market"), symbol)

        side = TradeSide.parse_lenient(row.get("side"))
        if side is None:
            raise InvalidSideError(
                f"Side must be BUY/SELL, B/S, or contain 買/賣; got {row.get('side')!r}",
                row.get("side"),
            )

        date = normalize_import_date(row.get("date"))
        if date is None:
            raise InvalidTimestampError(
                f"Date must be YYYY-MM-DD (or / . separated, or YYYYMMDD); got {row.get('date')!r}",
                row.get("date"),
            )

        time = normalize_import_time(row.get("time"), self.default_time)
        if time is None:
            raise InvalidTimestampError(
                f"Time must be HH:MM or blank; got {row.get('time')!r}", row.get("time")
            )

        return {
            "market": market,
            "symbol": symbol,
            "side": side,
            "date": date,
            "time": time,
            "qty": row.get("qty", row.get("quantity")),
            "price": row.get("price"),
            "fee": row.get("fee"),
        }
