"""
Market enumerations and the market registry.

The two built-in markets are a domestic one (TW) and a foreign one (US).
The registry keeps the set open: additional market codes can be registered
with their own currency and symbol case rule.
"""

import re
from dataclasses import dataclass
from enum import StrEnum


class Market(StrEnum):
    """
    Built-in market codes.

    TW symbols keep their case, US symbols are upper-cased.
    """

    TW = "TW"
    US = "US"

    @property
    def currency(self) -> str:
        """Get the settlement currency of the market."""
        return {Market.TW: "TWD", Market.US: "USD"}[self]

    @property
    def uppercase_symbols(self) -> bool:
        """Check if symbols of this market are case-normalized."""
        return self == Market.US


@dataclass(frozen=True)
class MarketSpec:
    """Describes one market code."""

    code: str
    currency: str
    uppercase_symbols: bool = False

    def normalize_symbol(self, symbol: str) -> str:
        """Trim the symbol and apply the market's case rule."""
        trimmed = str(symbol or "").strip()
        return trimmed.upper() if self.uppercase_symbols else trimmed


DOMESTIC_SYMBOL_PATTERN = re.compile(r"^\d{4,6}$")


class MarketRegistry:
    """
    Open set of market codes.

    Also owns the market inference default used by bulk import: a purely
    numeric 4-6 digit symbol belongs to the domestic market, anything else to
    the foreign market. An explicit market column always overrides this.
    """

    def __init__(
        self,
        specs: list[MarketSpec] | None = None,
        domestic: str = Market.TW.value,
        foreign: str = Market.US.value,
    ) -> None:
        if specs is None:
            specs = [
                MarketSpec(code=m.value, currency=m.currency, uppercase_symbols=m.uppercase_symbols)
                for m in Market
            ]
        self._specs: dict[str, MarketSpec] = {}
        for spec in specs:
            self.register(spec)
        if domestic not in self._specs or foreign not in self._specs:
            raise ValueError("Domestic and foreign markets must be registered")
        self.domestic = domestic
        self.foreign = foreign

    def register(self, spec: MarketSpec) -> None:
        """Add or replace a market code."""
        code = spec.code.strip().upper()
        if not code:
            raise ValueError("Market code cannot be empty")
        self._specs[code] = MarketSpec(code, spec.currency, spec.uppercase_symbols)

    def get(self, code: str) -> MarketSpec | None:
        """Look up a market by (case-insensitive) code."""
        return self._specs.get(str(code or "").strip().upper())

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and self.get(code) is not None

    @property
    def codes(self) -> list[str]:
        """Registered market codes in registration order."""
        return list(self._specs)

    def currency_of(self, code: str) -> str:
        """Currency for a market code; empty string for unknown codes."""
        spec = self.get(code)
        return spec.currency if spec else ""

    def infer_market(self, symbol: str) -> str:
        """Guess the market of a symbol from its shape."""
        if DOMESTIC_SYMBOL_PATTERN.match(str(symbol or "").strip()):
            return self.domestic
        return self.foreign


DEFAULT_MARKETS = MarketRegistry()
