"""
Financial number helpers for ledger calculations.

The ledger works in float. Quantities and prices are user-entered, so the
engine compares against small tolerances instead of exact zero:

- QUANTITY_EPSILON (1e-9) decides oversell and clamps float residue on sells
- REALIZED_PNL_EPSILON (1e-6) decides whether a closed position still reports P&L
"""

import math
import re

from stockledger.core.constants import QUANTITY_EPSILON

ZERO = 0.0

# Grouping separators accepted in user-entered numbers ("1,234.5")
_GROUPING_SEPARATORS = (",",)

# Plain ASCII decimal or exponent notation only
_DECIMAL_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def parse_number(value: str | int | float | None) -> float | None:
    """Parse a user-entered number.

    Strips whitespace and grouping separators. Returns None when the value
    is blank, not numeric, or not finite.

    Examples:
        >>> parse_number("1,234.5")
        1234.5
        >>> parse_number("abc") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        for separator in _GROUPING_SEPARATORS:
            text = text.replace(separator, "")
        if not _DECIMAL_PATTERN.fullmatch(text):
            return None
        number = float(text)
    if not math.isfinite(number):
        return None
    return number


def is_blank(value: object) -> bool:
    """Check whether a raw field is absent or whitespace only."""
    return value is None or (isinstance(value, str) and not value.strip())


def exceeds(requested: float, available: float, tolerance: float = QUANTITY_EPSILON) -> bool:
    """Check whether ``requested`` is larger than ``available`` beyond tolerance."""
    return requested > available + tolerance


def is_depleted(quantity: float, tolerance: float = QUANTITY_EPSILON) -> bool:
    """Check whether a holding is zero once float residue is ignored."""
    return quantity <= tolerance


def format_quantity(quantity: float) -> str:
    """Render a share count with thousands separators.

    Examples:
        >>> format_quantity(1000000)
        '1,000,000'
        >>> format_quantity(12.5)
        '12.5'
    """
    if float(quantity).is_integer():
        return f"{quantity:,.0f}"
    return f"{quantity:,.6f}".rstrip("0").rstrip(".")
