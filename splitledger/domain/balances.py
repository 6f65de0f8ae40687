"""Balance aggregation - per-user debt summaries derived from the expense set"""

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from splitledger.domain.exceptions import NotFoundError
from splitledger.domain.models import (
    CounterpartyDebt,
    DebtSummary,
    Expense,
    LedgerSnapshot,
    UserDebts,
)

logger = logging.getLogger(__name__)


def _last_activity(expenses) -> Optional[date]:
    # Latest expense date in the whole ledger, not only the user's expenses
    return max((e.date for e in expenses), default=None)


def _is_known_user(snapshot: LedgerSnapshot, user_id: str) -> bool:
    if snapshot.user(user_id) is not None:
        return True
    return any(e.participant(user_id) is not None for e in snapshot.expenses)


def calculate_balance(snapshot: LedgerSnapshot, user_id: str) -> DebtSummary:
    """
    Summarize what a user is owed and owes across all unsettled participations.

    - net_amount > 0 on an unsettled record adds to total_owed
    - net_amount < 0 on an unsettled record adds (abs) to total_owing
    - expense_count counts every expense the user takes part in, settled or not

    Unknown users get an all-zero summary.
    """
    if not _is_known_user(snapshot, user_id):
        logger.debug("Balance requested for unknown user", extra={"user_id": user_id})
        return DebtSummary(user_id=user_id)

    total_owed = 0.0
    total_owing = 0.0
    expense_count = 0

    for expense in snapshot.expenses:
        participant = expense.participant(user_id)
        if participant is None:
            continue
        expense_count += 1
        if participant.settled:
            continue
        if participant.net_amount > 0:
            total_owed += participant.net_amount
        elif participant.net_amount < 0:
            total_owing += -participant.net_amount

    return DebtSummary(
        user_id=user_id,
        total_owed=total_owed,
        total_owing=total_owing,
        net_amount=total_owed - total_owing,
        expense_count=expense_count,
        last_activity=_last_activity(snapshot.expenses),
    )


def calculate_all_balances(snapshot: LedgerSnapshot) -> Dict[str, DebtSummary]:
    """
    One pass over the expense set producing every user's summary.

    Keys are the snapshot's users followed by any participant ids not in the
    user list, in first-seen order. Values equal calculate_balance per user.
    """
    owed: Dict[str, float] = defaultdict(float)
    owing: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    order: List[str] = [u.id for u in snapshot.users]
    known = set(order)

    for expense in snapshot.expenses:
        for participant in expense.participants:
            user_id = participant.user_id
            if user_id not in known:
                known.add(user_id)
                order.append(user_id)
            counts[user_id] += 1
            if participant.settled:
                continue
            if participant.net_amount > 0:
                owed[user_id] += participant.net_amount
            elif participant.net_amount < 0:
                owing[user_id] += -participant.net_amount

    last_activity = _last_activity(snapshot.expenses)
    return {
        user_id: DebtSummary(
            user_id=user_id,
            total_owed=owed[user_id],
            total_owing=owing[user_id],
            net_amount=owed[user_id] - owing[user_id],
            expense_count=counts[user_id],
            last_activity=last_activity,
        )
        for user_id in order
    }


def get_expenses_by_group(snapshot: LedgerSnapshot, group_id: str) -> List[Expense]:
    """Expenses of a group, newest first"""
    expenses = [e for e in snapshot.expenses if e.group_id == group_id]
    return sorted(expenses, key=lambda e: e.date, reverse=True)


def calculate_group_balance(snapshot: LedgerSnapshot, group_id: str) -> Dict[str, float]:
    """
    Net unsettled position of each member within one group.

    Raises:
        NotFoundError: Group does not exist
    """
    group = next((g for g in snapshot.groups if g.id == group_id), None)
    if group is None:
        raise NotFoundError(f"group {group_id} not found")

    balances: Dict[str, float] = {member: 0.0 for member in group.member_ids}
    for expense in get_expenses_by_group(snapshot, group_id):
        for participant in expense.participants:
            if participant.settled:
                continue
            balances[participant.user_id] = balances.get(participant.user_id, 0.0) + participant.net_amount
    return balances


def get_user_debts(snapshot: LedgerSnapshot, user_id: str) -> UserDebts:
    """
    Break a user's unsettled position down by counterparty.

    Within each unsettled expense, what a debtor owes is attributed to the
    creditors of that expense in proportion to what each creditor is owed.
    """
    owes: Dict[str, float] = defaultdict(float)
    owed: Dict[str, float] = defaultdict(float)
    owes_expenses: Dict[str, List[str]] = defaultdict(list)
    owed_expenses: Dict[str, List[str]] = defaultdict(list)

    for expense in snapshot.expenses:
        me = expense.participant(user_id)
        if me is None or me.settled or me.net_amount == 0:
            continue
        open_records = [p for p in expense.participants if not p.settled and p.user_id != user_id]
        if me.net_amount < 0:
            others = [p for p in open_records if p.net_amount > 0]
            pool = sum(p.net_amount for p in others)
            for other in others:
                owes[other.user_id] += -me.net_amount * other.net_amount / pool
                owes_expenses[other.user_id].append(expense.id)
        else:
            others = [p for p in open_records if p.net_amount < 0]
            pool = sum(-p.net_amount for p in others)
            for other in others:
                owed[other.user_id] += me.net_amount * -other.net_amount / pool
                owed_expenses[other.user_id].append(expense.id)

    return UserDebts(
        owes=tuple(
            CounterpartyDebt(user_id=uid, amount=amount, expense_ids=tuple(owes_expenses[uid]))
            for uid, amount in sorted(owes.items(), key=lambda item: item[1], reverse=True)
        ),
        owed=tuple(
            CounterpartyDebt(user_id=uid, amount=amount, expense_ids=tuple(owed_expenses[uid]))
            for uid, amount in sorted(owed.items(), key=lambda item: item[1], reverse=True)
        ),
    )


def get_unread_reminders(snapshot: LedgerSnapshot, user_id: str):
    """Pending reminders addressed to a user, newest first"""
    pending = [r for r in snapshot.reminders if r.to_user_id == user_id and r.status == "pending"]
    return sorted(pending, key=lambda r: r.created_at.isoformat() if r.created_at else "", reverse=True)
