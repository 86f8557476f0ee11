"""
Core enumerations for the ledger.

This module provides centralized enumerations for domain concepts
like trade sides and markets.
"""

from .markets import DEFAULT_MARKETS, Market, MarketRegistry, MarketSpec
from .trade_side import TradeSide

__all__ = ["Market", "MarketSpec", "MarketRegistry", "DEFAULT_MARKETS", "TradeSide"]
