"""Settlement queries - exhaustive suggestions and minimal netting"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from splitledger.api.dependencies import get_ledger_store
from splitledger.api.v1.schemas import OptimizeRequest, SettlementListResponse, SettlementSchema
from splitledger.domain.settlements import get_settlement_suggestions, optimize_settlements
from splitledger.infrastructure.observability.metrics import record_suggestions
from splitledger.infrastructure.store import LedgerStore

router = APIRouter()


@router.get("/settlements/suggestions", response_model=SettlementListResponse)
def list_suggestions(
    threshold: Optional[float] = Query(None, ge=0, description="Override the materiality threshold"),
    store: LedgerStore = Depends(get_ledger_store),
):
    """
    All plausible debtor -> creditor payments backed by unsettled expenses.

    Suggestions are not persisted; accept one by sending ADD_SETTLEMENT.
    """
    suggestions = get_settlement_suggestions(store.snapshot, threshold=threshold)
    record_suggestions("suggestions", len(suggestions))
    return SettlementListResponse(settlements=[SettlementSchema.model_validate(s) for s in suggestions])


@router.post("/settlements/optimize", response_model=SettlementListResponse)
def optimize(body: OptimizeRequest, store: LedgerStore = Depends(get_ledger_store)):
    """Fewest payments that zero out the given users' balances"""
    settlements = optimize_settlements(store.snapshot, body.user_ids)
    record_suggestions("optimizer", len(settlements))
    return SettlementListResponse(settlements=[SettlementSchema.model_validate(s) for s in settlements])
