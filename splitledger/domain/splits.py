"""Split calculator - divides an expense total among its participants"""

import math
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from splitledger.domain.exceptions import ValidationError
from splitledger.domain.models import Expense, Participant, SplitDeclaration, SplitType

# Percentages are compared as floats; anything closer than this to 100 counts as 100
PERCENTAGE_EPSILON = 1e-9
DEFAULT_EXACT_TOLERANCE = 0.01


def compute_splits(
    total_amount: float,
    declarations: Sequence[SplitDeclaration],
    policy: Union[SplitType, str],
    exact_tolerance: float = DEFAULT_EXACT_TOLERANCE,
) -> Tuple[Participant, ...]:
    """
    Compute each participant's owed amount for one expense.

    Every returned participant has net_amount = -owed_amount; crediting payers
    is a separate step (see reconcile_payers).

    Policies:
    - equal:      total / n
    - percentage: total * value / 100, values must sum to 100
    - exact:      value as given, values must sum to total within exact_tolerance
    - shares:     total * value / sum(values), missing value = 1 share
    - itemized:   not computed, each declaration must carry owed_amount

    Raises:
        ValidationError: When inputs are inconsistent. Nothing is returned partially.
    """
    try:
        policy = SplitType(policy)
    except ValueError:
        raise ValidationError(f"unknown split policy: {policy}")

    if not declarations:
        raise ValidationError("at least one participant is required")
    if total_amount <= 0:
        raise ValidationError("total amount must be positive")

    if policy == SplitType.EQUAL:
        share = total_amount / len(declarations)
        owed = [share] * len(declarations)

    elif policy == SplitType.PERCENTAGE:
        values = _require_values(declarations, policy)
        if not math.isclose(sum(values), 100.0, rel_tol=0.0, abs_tol=PERCENTAGE_EPSILON):
            raise ValidationError("percentages must sum to 100")
        owed = [total_amount * v / 100 for v in values]

    elif policy == SplitType.EXACT:
        values = _require_values(declarations, policy)
        if abs(sum(values) - total_amount) > exact_tolerance:
            raise ValidationError("exact amounts must equal total")
        owed = list(values)

    elif policy == SplitType.SHARES:
        values = [1.0 if d.split_value is None else float(d.split_value) for d in declarations]
        if any(v < 0 for v in values):
            raise ValidationError("share counts cannot be negative")
        total_shares = sum(values)
        if total_shares <= 0:
            raise ValidationError("at least one share is required")
        owed = [total_amount * v / total_shares for v in values]

    else:
        # Itemized amounts come from the caller (receipt line items)
        missing = [d.user_id for d in declarations if d.owed_amount is None]
        if missing:
            raise ValidationError(f"itemized splits need an owed amount for: {', '.join(missing)}")
        owed = [float(d.owed_amount) for d in declarations]
        if abs(sum(owed) - total_amount) > exact_tolerance:
            raise ValidationError("itemized amounts must equal total")

    return tuple(
        Participant(
            user_id=d.user_id,
            owed_amount=amount,
            net_amount=-amount,
            split_type=policy,
            split_value=d.split_value,
        )
        for d, amount in zip(declarations, owed)
    )


def _require_values(declarations: Sequence[SplitDeclaration], policy: SplitType) -> List[float]:
    missing = [d.user_id for d in declarations if d.split_value is None]
    if missing:
        raise ValidationError(f"{policy.value} split needs a value for: {', '.join(missing)}")
    values = [float(d.split_value) for d in declarations]
    if any(v < 0 for v in values):
        raise ValidationError(f"{policy.value} split values cannot be negative")
    return values


def reconcile_payers(
    participants: Iterable[Participant],
    paid_by: Sequence[str],
    total_amount: float,
) -> Tuple[Participant, ...]:
    """
    Credit payers so that net_amount = paid_amount - owed_amount.

    The total is attributed in equal parts to every payer. A payer who is not
    a participant gets an entry that owes nothing and is excluded from the split.
    Across one expense the net amounts then sum to zero.
    """
    if not paid_by:
        raise ValidationError("at least one payer is required")

    payer_share = total_amount / len(paid_by)
    payers = set(paid_by)
    result = []
    seen = set()

    for p in participants:
        paid = payer_share if p.user_id in payers else 0.0
        result.append(replace(p, paid_amount=paid, net_amount=paid - p.owed_amount))
        seen.add(p.user_id)

    for user_id in paid_by:
        if user_id in seen:
            continue
        seen.add(user_id)
        result.append(
            Participant(
                user_id=user_id,
                owed_amount=0.0,
                paid_amount=payer_share,
                net_amount=payer_share,
                split_type=SplitType.ITEMIZED,
                split_value=0.0,
                in_split=False,
            )
        )

    return tuple(result)


def _declarations_from(participants: Iterable[Participant]) -> List[SplitDeclaration]:
    return [
        SplitDeclaration(
            user_id=p.user_id,
            split_type=p.split_type,
            split_value=p.split_value,
            owed_amount=p.owed_amount,
        )
        for p in participants
        if p.in_split
    ]


def normalize_expense(expense: Expense, exact_tolerance: float = DEFAULT_EXACT_TOLERANCE) -> Expense:
    """
    Recompute derived fields of an expense and enforce its invariants.

    - total_amount = base_amount + tax + tip
    - owed amounts re-derived from each participant's split declaration
    - payers credited, settled flags carried over

    Idempotent: normalizing a normalized expense returns an equal expense.

    Raises:
        ValidationError: Empty participant or payer list, or a split that does not reconcile
    """
    declarations = _declarations_from(expense.participants)
    if not declarations:
        raise ValidationError("expense needs at least one participant")
    if not expense.paid_by:
        raise ValidationError("expense needs at least one payer")
    if min(expense.base_amount, expense.tax, expense.tip) < 0:
        raise ValidationError("amounts cannot be negative")

    total = expense.base_amount + expense.tax + expense.tip
    split = compute_splits(total, declarations, expense.split_type, exact_tolerance)
    paid_by = tuple(dict.fromkeys(expense.paid_by))
    participants = reconcile_payers(split, paid_by, total)

    settled: Dict[str, bool] = {p.user_id: p.settled for p in expense.participants}
    participants = tuple(
        replace(p, settled=expense.settled or settled.get(p.user_id, False)) for p in participants
    )

    return replace(
        expense,
        total_amount=total,
        participants=participants,
        paid_by=paid_by,
        split_type=SplitType(expense.split_type),
    )


def build_expense(
    expense_id: str,
    title: str,
    base_amount: float,
    declarations: Sequence[SplitDeclaration],
    paid_by: Sequence[str],
    split_type: Union[SplitType, str] = SplitType.EQUAL,
    expense_date: Optional[date] = None,
    tax: float = 0.0,
    tip: float = 0.0,
    currency: str = "USD",
    now: Optional[datetime] = None,
    exact_tolerance: float = DEFAULT_EXACT_TOLERANCE,
    **extra,
) -> Expense:
    """
    Create a normalized expense from raw form input.

    Extra keyword arguments (category, group_id, notes, tags, created_by, ...)
    are passed to the Expense constructor unchanged.
    """
    now = now or datetime.utcnow()
    split_type = SplitType(split_type)
    draft = Expense(
        id=expense_id,
        title=title,
        base_amount=base_amount,
        tax=tax,
        tip=tip,
        total_amount=base_amount + tax + tip,
        currency=currency,
        split_type=split_type,
        participants=tuple(
            Participant(
                user_id=d.user_id,
                owed_amount=d.owed_amount or 0.0,
                net_amount=-(d.owed_amount or 0.0),
                split_type=split_type,
                split_value=d.split_value,
            )
            for d in declarations
        ),
        paid_by=tuple(paid_by),
        date=expense_date or now.date(),
        created_at=now,
        updated_at=now,
        **extra,
    )
    return normalize_expense(draft, exact_tolerance)
