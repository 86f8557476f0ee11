"""
Pydantic schemas for API request/response models.
"""

from pydantic import BaseModel, ConfigDict, Field

from stockledger.core.models.position import PositionSummary, Timeline
from stockledger.core.models.trade import TradeRecord


class TradeCreateRequest(BaseModel):
    """Request model for recording a trade."""

    market: str = Field(..., description="Market code (TW or US)")
    symbol: str = Field(..., description="Instrument symbol")
    side: str = Field(..., description="BUY or SELL")
    date: str = Field(..., description="Trade date, YYYY-MM-DD")
    time: str | None = Field(default=None, description="Trade time, HH:MM or HH:MM:SS")
    quantity: float = Field(..., description="Shares traded")
    price: float = Field(..., description="Price per share")
    fee: float = Field(default=0.0, description="Fees and taxes")


class TradeUpdateRequest(BaseModel):
    """Request model for editing a trade; market, symbol and side are fixed."""

    model_config = ConfigDict(extra="forbid")

    date: str | None = None
    time: str | None = None
    quantity: float | None = None
    price: float | None = None
    fee: float | None = None


class TradeResponse(BaseModel):
    id: str
    timestamp: str
    market: str
    symbol: str
    side: str
    quantity: float
    price: float
    fee: float

    @classmethod
    def from_record(cls, record: TradeRecord) -> "TradeResponse":
        return cls(
            id=record.id,
            timestamp=record.timestamp,
            market=record.market,
            symbol=record.symbol,
            side=record.side.value,
            quantity=record.quantity,
            price=record.price,
            fee=record.fee,
        )


class PositionResponse(BaseModel):
    """Position of one instrument after a replay."""

    market: str
    symbol: str
    currency: str
    quantity: float
    average_cost: float
    realized_pnl: float

    @classmethod
    def from_summary(cls, summary: PositionSummary) -> "PositionResponse":
        return cls(
            market=summary.market,
            symbol=summary.symbol,
            currency=summary.currency,
            quantity=summary.quantity,
            average_cost=summary.average_cost,
            realized_pnl=summary.realized_pnl,
        )

    @classmethod
    def from_timeline(cls, timeline: Timeline) -> "PositionResponse":
        return cls(
            market=timeline.instrument.market,
            symbol=timeline.instrument.symbol,
            currency=timeline.currency,
            quantity=timeline.holding_quantity,
            average_cost=timeline.average_cost,
            realized_pnl=timeline.realized_pnl,
        )


class MutationResponse(BaseModel):
    """Response model for an accepted insert, edit or delete."""

    trade: TradeResponse
    position: PositionResponse
    ledger_count: int


class TradesResponse(BaseModel):
    trades: list[TradeResponse]
    count: int
    last_timestamp: str | None = None


class HoldingsResponse(BaseModel):
    holdings: list[PositionResponse]


class TimelineResponse(BaseModel):
    """Response model for an instrument timeline."""

    position: PositionResponse
    entries: list[dict]


class ImportRowErrorResponse(BaseModel):
    row: int
    field: str
    message: str


class ImportResponse(BaseModel):
    """Response model for an accepted bulk import."""

    accepted: int
    skipped: int
    errors: list[ImportRowErrorResponse]
    ledger_count: int
    message: str


class RestoreResponse(BaseModel):
    ledger_count: int
    last_timestamp: str | None = None


class BackupStatusResponse(BaseModel):
    last_backup_at: str | None = None
    days_since: int | None = None
    needs_reminder: bool
    ledger_count: int
    last_saved: str | None = None


class ErrorResponse(BaseModel):
    """Response model for errors."""

    error: str
    message: str
    details: dict | None = None
