"""
Holdings aggregator.

Runs the replay engine once per instrument and keeps the terminal snapshot.
"""

import pandas as pd

from stockledger.core.constants import REALIZED_PNL_EPSILON
from stockledger.core.engine.replay import PositionReplayEngine
from stockledger.core.models.ledger import Ledger
from stockledger.core.models.position import PositionSummary

HOLDINGS_COLUMNS = ["market", "symbol", "currency", "qty", "avgCost", "realized"]


class HoldingsAggregator:
    """Portfolio summary built from the replay engine."""

    def __init__(self, engine: PositionReplayEngine | None = None) -> None:
        self.engine = engine or PositionReplayEngine()

    def aggregate(self, ledger: Ledger) -> list[PositionSummary]:
        """
        Summarize every instrument that is still held or has realized P&L.

        Args:
            ledger: Ledger to summarize

        Returns:
            Summaries sorted by market then symbol
        """
        summaries = []
        for instrument in ledger.instruments():
            timeline = self.engine.replay(ledger.lots_for(instrument), instrument=instrument)
            final = timeline.final
            if not final.is_open and abs(final.realized_pnl) <= REALIZED_PNL_EPSILON:
                continue
            summaries.append(
                PositionSummary(
                    market=instrument.market,
                    symbol=instrument.symbol,
                    currency=timeline.currency,
                    quantity=final.quantity,
                    average_cost=final.average_cost,
                    realized_pnl=final.realized_pnl,
                )
            )
        return sorted(summaries, key=lambda s: (s.market, s.symbol))

    def to_frame(self, summaries: list[PositionSummary]) -> pd.DataFrame:
        """Tabular view of the holdings."""
        if not summaries:
            return pd.DataFrame(columns=HOLDINGS_COLUMNS)
        return pd.DataFrame([summary.to_dict() for summary in summaries], columns=HOLDINGS_COLUMNS)


def aggregate(ledger: Ledger) -> list[PositionSummary]:
    """Aggregate holdings with the default engine."""
    return HoldingsAggregator().aggregate(ledger)
