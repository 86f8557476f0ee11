"""
Position-accounting engine.

This package provides the replay engine, the holdings aggregator and the
oversell-checked ledger mutations.
"""

from .holdings import HoldingsAggregator, aggregate
from .mutations import LedgerMutations, MutationResult
from .replay import PositionReplayEngine, replay, sort_by_timestamp
from .validator import MutationValidator

__all__ = [
    "PositionReplayEngine",
    "replay",
    "sort_by_timestamp",
    "HoldingsAggregator",
    "aggregate",
    "MutationValidator",
    "LedgerMutations",
    "MutationResult",
]
