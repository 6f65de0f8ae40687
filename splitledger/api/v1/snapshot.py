"""Snapshot, store status and export endpoints"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from starlette.responses import Response

from splitledger.api.dependencies import get_ledger_store
from splitledger.api.v1.schemas import StatusResponse
from splitledger.infrastructure.export import export_csv, export_json
from splitledger.infrastructure.storage.serialization import snapshot_to_document
from splitledger.infrastructure.store import LedgerStore

router = APIRouter()


@router.get("/snapshot")
def get_snapshot(store: LedgerStore = Depends(get_ledger_store)):
    """Current snapshot in its persisted document layout"""
    return snapshot_to_document(store.snapshot)


@router.get("/status", response_model=StatusResponse)
def get_status(store: LedgerStore = Depends(get_ledger_store)):
    return StatusResponse(
        is_loading=store.is_loading,
        sync_status=store.sync_status,
        last_error=store.last_error,
    )


@router.get("/export")
def export(
    format: str = Query("json", description="json or csv"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    store: LedgerStore = Depends(get_ledger_store),
):
    """Export the ledger for a date range"""
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")

    if format == "json":
        return export_json(store.snapshot, start, end)
    if format == "csv":
        return Response(
            content=export_csv(store.snapshot, start, end),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=expenses.csv"},
        )
    raise HTTPException(status_code=400, detail="format must be json or csv")
