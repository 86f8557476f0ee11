"""
Trade API endpoints.
"""

from fastapi import APIRouter, Depends, status

from stockledger.api.dependencies import get_ledger_service
from stockledger.api.schemas.api_models import (
    MutationResponse,
    PositionResponse,
    TradeCreateRequest,
    TradeResponse,
    TradesResponse,
    TradeUpdateRequest,
)
from stockledger.core.engine import MutationResult
from stockledger.services import LedgerService

router = APIRouter()


def _mutation_response(result: MutationResult) -> MutationResponse:
    return MutationResponse(
        trade=TradeResponse.from_record(result.record),
        position=PositionResponse.from_timeline(result.timeline),
        ledger_count=len(result.ledger),
    )


@router.get("", response_model=TradesResponse)
async def list_trades(
    market: str | None = None,
    symbol: str | None = None,
    service: LedgerService = Depends(get_ledger_service),
) -> TradesResponse:
    """List trades in timestamp order."""
    trades = service.list_trades(market=market, symbol=symbol)
    return TradesResponse(
        trades=[TradeResponse.from_record(t) for t in trades],
        count=len(trades),
        last_timestamp=trades[-1].timestamp if trades else None,
    )


@router.get("/{trade_id}", response_model=TradeResponse)
async def get_trade(
    trade_id: str, service: LedgerService = Depends(get_ledger_service)
) -> TradeResponse:
    return TradeResponse.from_record(service.get_trade(trade_id))


@router.post("", response_model=MutationResponse, status_code=status.HTTP_201_CREATED)
async def add_trade(
    request: TradeCreateRequest, service: LedgerService = Depends(get_ledger_service)
) -> MutationResponse:
    """Record a trade; a SELL beyond the holding at its time is rejected."""
    return _mutation_response(service.add_trade(request.model_dump()))


@router.patch("/{trade_id}", response_model=MutationResponse)
async def edit_trade(
    trade_id: str,
    request: TradeUpdateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> MutationResponse:
    """Edit the date, time, quantity, price or fee of a trade."""
    return _mutation_response(service.edit_trade(trade_id, request.model_dump(exclude_none=True)))


@router.delete("/{trade_id}", response_model=MutationResponse)
async def delete_trade(
    trade_id: str, service: LedgerService = Depends(get_ledger_service)
) -> MutationResponse:
    return _mutation_response(service.delete_trade(trade_id))
