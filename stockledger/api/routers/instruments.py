"""
Holdings and per-instrument API endpoints.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from stockledger.api.dependencies import get_ledger_service
from stockledger.api.schemas.api_models import HoldingsResponse, PositionResponse, TimelineResponse
from stockledger.services import LedgerService

router = APIRouter()


@router.get("/holdings", response_model=HoldingsResponse)
async def get_holdings(service: LedgerService = Depends(get_ledger_service)) -> HoldingsResponse:
    """Open positions and closed positions with realized P&L."""
    return HoldingsResponse(
        holdings=[PositionResponse.from_summary(s) for s in service.holdings()]
    )


@router.get("/instruments/{market}/{symbol}/timeline", response_model=TimelineResponse)
async def get_timeline(
    market: str, symbol: str, service: LedgerService = Depends(get_ledger_service)
) -> TimelineResponse:
    timeline = service.timeline(market, symbol)
    return TimelineResponse(
        position=PositionResponse.from_timeline(timeline),
        entries=[entry.to_dict() for entry in timeline.entries],
    )


@router.get("/instruments/{market}/{symbol}/chart")
async def get_chart(
    market: str, symbol: str, service: LedgerService = Depends(get_ledger_service)
) -> dict:
    """Trade prices against the running average cost."""
    return service.chart(market, symbol)


@router.get("/instruments/{market}/{symbol}/export.csv")
async def export_instrument_csv(
    market: str, symbol: str, service: LedgerService = Depends(get_ledger_service)
) -> Response:
    filename, text = service.export_instrument_csv(market, symbol)
    return Response(
        content=text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
