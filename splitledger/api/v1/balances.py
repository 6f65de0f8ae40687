"""Balance queries - per-user summaries, counterparty debts, group balances and reminders"""

from fastapi import APIRouter, Depends, HTTPException

from splitledger.api.dependencies import get_ledger_store
from splitledger.api.v1.schemas import (
    BalancesResponse,
    CounterpartyDebtSchema,
    DebtSummarySchema,
    GroupBalanceResponse,
    ReminderListResponse,
    ReminderSchema,
    UserDebtsResponse,
)
from splitledger.domain.balances import (
    calculate_all_balances,
    calculate_balance,
    calculate_group_balance,
    get_unread_reminders,
    get_user_debts,
)
from splitledger.domain.exceptions import NotFoundError
from splitledger.infrastructure.store import LedgerStore

router = APIRouter()


@router.get("/balances", response_model=BalancesResponse)
def list_balances(store: LedgerStore = Depends(get_ledger_store)):
    """Every user's balance, computed in one pass"""
    balances = calculate_all_balances(store.snapshot)
    return BalancesResponse(balances=[DebtSummarySchema.model_validate(s) for s in balances.values()])


@router.get("/balances/{user_id}", response_model=DebtSummarySchema)
def get_balance(user_id: str, store: LedgerStore = Depends(get_ledger_store)):
    """Balance for one user; unknown users get zeros"""
    return DebtSummarySchema.model_validate(calculate_balance(store.snapshot, user_id))


@router.get("/users/{user_id}/debts", response_model=UserDebtsResponse)
def get_debts(user_id: str, store: LedgerStore = Depends(get_ledger_store)):
    """Who the user owes and who owes the user, per counterparty"""
    debts = get_user_debts(store.snapshot, user_id)
    return UserDebtsResponse(
        user_id=user_id,
        owes=[CounterpartyDebtSchema.model_validate(d) for d in debts.owes],
        owed=[CounterpartyDebtSchema.model_validate(d) for d in debts.owed],
    )


@router.get("/groups/{group_id}/balances", response_model=GroupBalanceResponse)
def get_group_balance(group_id: str, store: LedgerStore = Depends(get_ledger_store)):
    try:
        balances = calculate_group_balance(store.snapshot, group_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Group not found")
    return GroupBalanceResponse(group_id=group_id, balances=balances)


@router.get("/users/{user_id}/reminders", response_model=ReminderListResponse)
def list_unread_reminders(user_id: str, store: LedgerStore = Depends(get_ledger_store)):
    """Pending reminders addressed to the user, newest first"""
    reminders = get_unread_reminders(store.snapshot, user_id)
    return ReminderListResponse(reminders=[ReminderSchema.model_validate(r) for r in reminders])
