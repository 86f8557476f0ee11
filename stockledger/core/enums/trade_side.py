"""
Trade side enumeration.

This module defines the allowed sides of a ledger lot.
"""

from enum import StrEnum


class TradeSide(StrEnum):
    """
    Allowed trade sides.

    Stored in the ledger document under the ``type`` field.
    """

    BUY = "BUY"
    SELL = "SELL"

    @property
    def is_buy(self) -> bool:
        """Check if side adds to the holding."""
        return self == self.BUY

    @property
    def is_sell(self) -> bool:
        """Check if side reduces the holding."""
        return self == self.SELL

    @property
    def short_code(self) -> str:
        """Single-letter code used in chart labels and imports."""
        return "B" if self.is_buy else "S"

    @classmethod
    def from_string(cls, value: str) -> "TradeSide":
        """
        Convert a strict side string to TradeSide, case-insensitively.

        Args:
            value: "BUY" or "SELL" in any case

        Returns:
            Corresponding TradeSide

        Raises:
            ValueError: If side is not supported
        """
        value_upper = str(value or "").strip().upper()
        if value_upper == cls.BUY.value:
            return cls.BUY
        if value_upper == cls.SELL.value:
            return cls.SELL
        raise ValueError(
            f"Unsupported side: {value!r}. Supported sides: {', '.join(s.value for s in cls)}"
        )

    @classmethod
    def parse_lenient(cls, value: str) -> "TradeSide | None":
        """
        Parse side tokens found in external trade lists.

        Accepts BUY/SELL, B/S, and text containing 買 or 賣.
        Returns None when the token cannot be interpreted.
        """
        raw = str(value or "").strip()
        token = raw.upper()
        if not token:
            return None
        if token in ("BUY", "B"):
            return cls.BUY
        if token in ("SELL", "S"):
            return cls.SELL
        if "買" in raw:
            return cls.BUY
        if "賣" in raw:
            return cls.SELL
        return None
