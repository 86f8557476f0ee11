"""
Stock ledger: average-cost position tracking for a personal trade journal.
"""

__version__ = "1.0.0"
