"""
Ledger exports.

Builds the JSON backup document, the per-instrument timeline CSV and the
chart series the host plots for one instrument.
"""

from datetime import datetime
from typing import Any

import pandas as pd

from stockledger.core.enums import TradeSide
from stockledger.core.models.ledger import Ledger
from stockledger.core.models.position import Timeline
from stockledger.core.types import format_quantity

TIMELINE_CSV_COLUMNS = ["idx", "date", "side", "qty", "price", "fee", "afterQty", "avgCostAfter"]


def backup_filename(now: datetime) -> str:
    return f"stock-ledger_{now:%Y%m%d_%H%M}.json"


def instrument_csv_filename(market: str, symbol: str, now: datetime) -> str:
    return f"stockledger_{market}_{symbol}_{now:%Y-%m-%d-%H-%M-%S}.csv"


def export_json(ledger: Ledger, indent: int = 2) -> str:
    """Serialize the full ledger document for download."""
    return ledger.to_json(indent=indent)


def timeline_frame(timeline: Timeline) -> pd.DataFrame:
    """One row per replayed lot with the position after it."""
    rows = [
        {
            "idx": entry.index,
            "date": entry.timestamp.replace(",", " "),
            "side": entry.side.value,
            "qty": entry.quantity,
            "price": entry.price,
            "fee": entry.fee,
            "afterQty": entry.quantity_after,
            "avgCostAfter": round(entry.average_cost_after, 6),
        }
        for entry in timeline.entries
    ]
    return pd.DataFrame(rows, columns=TIMELINE_CSV_COLUMNS)


def export_timeline_csv(timeline: Timeline) -> str:
    """
    Render an instrument timeline as CSV text.

    Returns:
        CSV with header idx,date,side,qty,price,fee,afterQty,avgCostAfter
    """
    return timeline_frame(timeline).to_csv(index=False, lineterminator="\n")


def chart_label(side: TradeSide, price: float, quantity: float) -> str:
    sign = "+" if side.is_buy else "-"
    return f"{side.short_code} @{price:.2f}｜{sign}{format_quantity(quantity)}"


def chart_series(timeline: Timeline) -> dict[str, Any]:
    """
    Series for plotting trade prices against the running average cost.

    Returns:
        Dictionary with parallel lists keyed by the timeline index
    """
    entries = timeline.entries
    return {
        "instrument": str(timeline.instrument),
        "currency": timeline.currency,
        "x": [entry.index for entry in entries],
        "date": [entry.timestamp[:10] for entry in entries],
        "price": [entry.price for entry in entries],
        "avg": [entry.average_cost_after for entry in entries],
        "afterQty": [entry.quantity_after for entry in entries],
        "side": [entry.side.value for entry in entries],
        "label": [chart_label(entry.side, entry.price, entry.quantity) for entry in entries],
    }
