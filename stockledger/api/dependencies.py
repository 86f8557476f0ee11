"""
FastAPI dependencies.
"""

from fastapi import Request

from stockledger.config import get_settings
from stockledger.services import LedgerService


def get_ledger_service(request: Request) -> LedgerService:
    """Service stored on the application, built from settings on first use."""
    service = getattr(request.app.state, "ledger_service", None)
    if service is None:
        service = LedgerService.from_settings(get_settings())
        request.app.state.ledger_service = service
    return service
