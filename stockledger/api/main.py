"""
FastAPI main application for the stock ledger.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from stockledger import __version__
from stockledger.api.routers import backup, instruments, trades
from stockledger.api.schemas.api_models import ErrorResponse
from stockledger.config import Settings, get_settings
from stockledger.core.exceptions.ledger import (
    DataError,
    ImportRejectedError,
    LedgerException,
    MalformedLedgerDocumentError,
    OversellRejectedError,
    RecordNotFoundError,
    StorageError,
    ValidationError,
)
from stockledger.logging_setup import setup_logging
from stockledger.services import LedgerService


def _error_payload(error: str, exc: Exception, details: dict | None = None) -> dict:
    return ErrorResponse(error=error, message=str(exc), details=details).model_dump()


def _status_for(exc: LedgerException) -> tuple[int, str, dict | None]:
    if isinstance(exc, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error", {"field": exc.field}
    if isinstance(exc, RecordNotFoundError):
        return status.HTTP_404_NOT_FOUND, "not_found", {"trade_id": exc.trade_id}
    if isinstance(exc, OversellRejectedError):
        return status.HTTP_409_CONFLICT, "oversell_rejected", exc.to_dict()
    if isinstance(exc, ImportRejectedError):
        details = None
        if exc.instrument:
            market, symbol = exc.instrument
            details = {"market": market, "symbol": symbol, "timestamp": exc.timestamp}
        return status.HTTP_409_CONFLICT, "import_rejected", details
    if isinstance(exc, (MalformedLedgerDocumentError, DataError)):
        return status.HTTP_400_BAD_REQUEST, "malformed_input", None
    if isinstance(exc, StorageError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR, "storage_error", None
    return status.HTTP_400_BAD_REQUEST, "ledger_error", None


async def ledger_exception_handler(request: Request, exc: LedgerException) -> JSONResponse:
    code, error, details = _status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.debug(f"{request.method} {request.url.path} -> {code} {error}: {exc}")
    return JSONResponse(status_code=code, content=_error_payload(error, exc, details))


def create_app(settings: Settings | None = None, service: LedgerService | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Runtime settings; read from the environment if omitted
        service: Ledger service; built from settings on first request if omitted
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        if getattr(app.state, "ledger_service", None) is None:
            app.state.ledger_service = LedgerService.from_settings(settings)
        result = await app.state.ledger_service.startup()
        if result.recovered_from_malformed:
            logger.warning("Stored ledger was unreadable; starting from an empty ledger")
        yield
        await app.state.ledger_service.repository.flush_backups()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Average-cost trade ledger for stocks",
        lifespan=lifespan,
    )
    app.state.ledger_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:8080",
        ],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Accept", "Origin"],
    )
    app.add_exception_handler(LedgerException, ledger_exception_handler)

    app.include_router(trades.router, prefix="/api/trades", tags=["trades"])
    app.include_router(instruments.router, prefix="/api", tags=["instruments"])
    app.include_router(backup.router, prefix="/api/backup", tags=["backup"])

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint returning API information."""
        return {"message": settings.app_name, "version": __version__, "status": "running"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


__all__ = ["create_app"]
