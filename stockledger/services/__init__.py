"""
Application services.
"""

from .ledger_service import LedgerService

__all__ = ["LedgerService"]
