"""Settlement engine - suggestions, debt simplification and status transitions"""

from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from splitledger.domain.balances import calculate_all_balances, calculate_balance
from splitledger.domain.exceptions import InvalidTransitionError
from splitledger.domain.models import LedgerSnapshot, Settlement, SettlementStatus
from splitledger.utils.ids import new_id

# Remainders smaller than this are float noise, not money
MONEY_EPSILON = 1e-9

ALLOWED_TRANSITIONS: Dict[SettlementStatus, Tuple[SettlementStatus, ...]] = {
    SettlementStatus.SUGGESTED: (SettlementStatus.AGREED, SettlementStatus.DECLINED),
    SettlementStatus.AGREED: (SettlementStatus.COMPLETED, SettlementStatus.DECLINED),
    SettlementStatus.COMPLETED: (),
    SettlementStatus.DECLINED: (),
}

IdFactory = Callable[[], str]


def _settlement_id() -> str:
    return new_id("settlement")


def _related_expenses(snapshot: LedgerSnapshot) -> Dict[Tuple[str, str], List[str]]:
    """Map (creditor, debtor) to unsettled expenses where creditor is owed and debtor owes"""
    related: Dict[Tuple[str, str], List[str]] = {}
    for expense in snapshot.expenses:
        if expense.settled:
            continue
        creditors = [p.user_id for p in expense.participants if p.net_amount > 0]
        debtors = [p.user_id for p in expense.participants if p.net_amount < 0]
        for creditor in creditors:
            for debtor in debtors:
                related.setdefault((creditor, debtor), []).append(expense.id)
    return related


def get_settlement_suggestions(
    snapshot: LedgerSnapshot,
    threshold: Optional[float] = None,
    now: Optional[datetime] = None,
    id_factory: IdFactory = _settlement_id,
) -> List[Settlement]:
    """
    Propose a payment for every creditor/debtor pair that has a reason to settle.

    All pairs are considered, so one creditor can appear against several
    debtors and the suggested amounts are not netted. A pair is emitted when:
    - amount = min(credit, |debt|) is at least the threshold
    - an unsettled expense has the creditor owed and the debtor owing

    threshold defaults to the snapshot's auto_settle_threshold setting.
    """
    if threshold is None:
        threshold = snapshot.settings.auto_settle_threshold
    now = now or datetime.utcnow()

    balances = calculate_all_balances(snapshot)
    creditors = [(uid, s.net_amount) for uid, s in balances.items() if s.net_amount > MONEY_EPSILON]
    debtors = [(uid, s.net_amount) for uid, s in balances.items() if s.net_amount < -MONEY_EPSILON]
    related = _related_expenses(snapshot)

    suggestions = []
    for creditor_id, credit in creditors:
        for debtor_id, debt in debtors:
            amount = min(credit, abs(debt))
            if amount < threshold:
                continue
            expense_ids = related.get((creditor_id, debtor_id))
            if not expense_ids:
                continue
            suggestions.append(
                Settlement(
                    id=id_factory(),
                    from_user_id=debtor_id,
                    to_user_id=creditor_id,
                    amount=amount,
                    currency=snapshot.settings.default_currency,
                    status=SettlementStatus.SUGGESTED,
                    expense_ids=tuple(expense_ids),
                    suggested_date=now,
                    created_at=now,
                )
            )

    return suggestions


def optimize_settlements(
    snapshot: LedgerSnapshot,
    user_ids: Sequence[str],
    now: Optional[datetime] = None,
    id_factory: IdFactory = _settlement_id,
) -> List[Settlement]:
    """
    Minimum cash flow netting over the given users.

    Greedy two-pointer sweep:
    - creditors sorted by balance, largest first
    - debtors sorted by balance, most negative first
    - each step pays min(credit, |debt|) from the current debtor to the current creditor
    - a pointer advances once its balance reaches zero

    Produces at most K - 1 payments for K users with non-zero balances that
    sum to zero. Ignores the materiality threshold and expense provenance.
    """
    now = now or datetime.utcnow()
    balances = {uid: calculate_balance(snapshot, uid).net_amount for uid in dict.fromkeys(user_ids)}

    creditors = sorted(
        ([uid, b] for uid, b in balances.items() if b > MONEY_EPSILON), key=lambda x: x[1], reverse=True
    )
    debtors = sorted(([uid, b] for uid, b in balances.items() if b < -MONEY_EPSILON), key=lambda x: x[1])

    settlements = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor_id, credit = creditors[i]
        debtor_id, debt = debtors[j]

        amount = min(credit, -debt)
        settlements.append(
            Settlement(
                id=id_factory(),
                from_user_id=debtor_id,
                to_user_id=creditor_id,
                amount=amount,
                currency=snapshot.settings.default_currency,
                status=SettlementStatus.SUGGESTED,
                expense_ids=(),
                suggested_date=now,
                created_at=now,
            )
        )

        credit -= amount
        debt += amount
        creditors[i][1] = 0.0 if abs(credit) < MONEY_EPSILON else credit
        debtors[j][1] = 0.0 if abs(debt) < MONEY_EPSILON else debt

        if creditors[i][1] == 0.0:
            i += 1
        if debtors[j][1] == 0.0:
            j += 1

    return settlements


def transition_settlement(
    settlement: Settlement,
    status: SettlementStatus,
    now: Optional[datetime] = None,
) -> Settlement:
    """
    Move a settlement along suggested -> agreed -> completed, or to declined.

    Re-applying the current status is a no-op.

    Raises:
        InvalidTransitionError: Move not allowed from the current status
    """
    status = SettlementStatus(status)
    if status == settlement.status:
        return settlement
    if status not in ALLOWED_TRANSITIONS[settlement.status]:
        raise InvalidTransitionError(settlement.status.value, status.value)

    completed_at = (now or datetime.utcnow()) if status == SettlementStatus.COMPLETED else settlement.completed_at
    return replace(settlement, status=status, completed_at=completed_at)
