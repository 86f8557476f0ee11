"""
Backup, restore and bulk import endpoints.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import Response

from stockledger.api.dependencies import get_ledger_service
from stockledger.api.schemas.api_models import (
    BackupStatusResponse,
    ImportResponse,
    ImportRowErrorResponse,
    RestoreResponse,
)
from stockledger.core.exceptions.ledger import DataError
from stockledger.services import LedgerService

router = APIRouter()


@router.get("/export")
async def export_backup(service: LedgerService = Depends(get_ledger_service)) -> Response:
    """Download the full ledger document and reset the backup reminder."""
    filename, text = service.export_json()
    return Response(
        content=text,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/restore", response_model=RestoreResponse)
async def restore_backup(
    document: Any = Body(...), service: LedgerService = Depends(get_ledger_service)
) -> RestoreResponse:
    """Replace the ledger with a previously exported document."""
    ledger = service.restore_document(document)
    summary = ledger.summary()
    return RestoreResponse(ledger_count=summary.count, last_timestamp=summary.last_timestamp)


@router.post("/import-csv", response_model=ImportResponse)
async def import_csv(
    request: Request, service: LedgerService = Depends(get_ledger_service)
) -> ImportResponse:
    """
    Import a delimited trade list sent as the raw request body.

    The batch is all-or-nothing: one oversell discards every row.
    """
    body = await request.body()
    try:
        text = body.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise DataError("Import file must be UTF-8 text") from e

    report = service.import_csv(text)
    return ImportResponse(
        accepted=report.accepted_count,
        skipped=report.skipped,
        errors=[
            ImportRowErrorResponse(row=e.row_number, field=e.field, message=e.message)
            for e in report.errors
        ],
        ledger_count=len(report.ledger),
        message=report.message(),
    )


@router.get("/status", response_model=BackupStatusResponse)
async def backup_status(
    service: LedgerService = Depends(get_ledger_service),
) -> BackupStatusResponse:
    status = service.backup_status()
    ledger = service.load()
    return BackupStatusResponse(
        last_backup_at=status.last_backup_at.isoformat() if status.last_backup_at else None,
        days_since=status.days_since,
        needs_reminder=status.needs_reminder,
        ledger_count=len(ledger),
        last_saved=ledger.last_saved,
    )


@router.delete("/ledger", response_model=RestoreResponse)
async def reset_ledger(service: LedgerService = Depends(get_ledger_service)) -> RestoreResponse:
    """Delete every trade."""
    ledger = service.reset()
    return RestoreResponse(ledger_count=len(ledger))
