"""State transition function - (snapshot, command) -> next snapshot

Snapshots are immutable; every handler builds a new snapshot with
dataclasses.replace and leaves its input untouched. A ValidationError raised
by a handler aborts the whole command.
"""

import logging
from dataclasses import fields, replace
from typing import Callable, Dict, Optional, Tuple, TypeVar

from splitledger.domain import commands as cmd
from splitledger.domain.exceptions import ValidationError
from splitledger.domain.models import ActivityEntry, LedgerSettings, LedgerSnapshot, SettlementStatus
from splitledger.domain.settlements import transition_settlement
from splitledger.domain.splits import DEFAULT_EXACT_TOLERANCE, normalize_expense

logger = logging.getLogger(__name__)

ACTIVITY_FEED_LIMIT = 50

T = TypeVar("T")


def _add(items: Tuple[T, ...], entity: T, label: str) -> Tuple[T, ...]:
    if any(item.id == entity.id for item in items):
        raise ValidationError(f"{label} {entity.id} already exists")
    return items + (entity,)


def _update(items: Tuple[T, ...], entity_id: str, fn: Callable[[T], T], label: str) -> Tuple[T, ...]:
    if not any(item.id == entity_id for item in items):
        logger.warning("Ignoring update of unknown %s", label, extra={"entity_id": entity_id})
        return items
    return tuple(fn(item) if item.id == entity_id else item for item in items)


def _remove(items: Tuple[T, ...], entity_id: str, label: str) -> Tuple[T, ...]:
    remaining = tuple(item for item in items if item.id != entity_id)
    if len(remaining) == len(items):
        logger.warning("Ignoring delete of unknown %s", label, extra={"entity_id": entity_id})
    return remaining


class LedgerReducer:
    """
    Applies commands to snapshots.

    activity_limit caps the activity feed (oldest entries dropped);
    exact_tolerance is the money-rounding tolerance for exact splits.
    """

    def __init__(self, activity_limit: int = ACTIVITY_FEED_LIMIT, exact_tolerance: float = DEFAULT_EXACT_TOLERANCE):
        self.activity_limit = activity_limit
        self.exact_tolerance = exact_tolerance
        self._handlers: Dict[type, Callable] = {
            cmd.AddUser: self._add_user,
            cmd.UpdateUser: self._update_user,
            cmd.DeactivateUser: self._deactivate_user,
            cmd.SetCurrentUser: self._set_current_user,
            cmd.AddExpense: self._add_expense,
            cmd.UpdateExpense: self._update_expense,
            cmd.DeleteExpense: self._delete_expense,
            cmd.SettleExpense: self._settle_expense,
            cmd.AddGroup: self._add_group,
            cmd.UpdateGroup: self._update_group,
            cmd.DeleteGroup: self._delete_group,
            cmd.AddPayment: self._add_payment,
            cmd.AddSettlement: self._add_settlement,
            cmd.UpdateSettlement: self._update_settlement,
            cmd.TransitionSettlement: self._transition_settlement,
            cmd.DeleteSettlement: self._delete_settlement,
            cmd.AddReminder: self._add_reminder,
            cmd.UpdateReminder: self._update_reminder,
            cmd.DeleteReminder: self._delete_reminder,
            cmd.DismissReminder: self._dismiss_reminder,
            cmd.AddCategory: self._add_category,
            cmd.UpdateCategory: self._update_category,
            cmd.DeleteCategory: self._delete_category,
            cmd.UpdateSettings: self._update_settings,
        }

    def apply(self, snapshot: LedgerSnapshot, command: cmd.Command) -> LedgerSnapshot:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise ValidationError(f"unsupported command: {type(command).__name__}")
        return handler(snapshot, command)

    # ---------- Activity ----------
    def _log_activity(self, snapshot: LedgerSnapshot, entry: ActivityEntry) -> Tuple[ActivityEntry, ...]:
        return ((entry,) + snapshot.activity_feed)[: self.activity_limit]

    # ---------- Users ----------
    def _add_user(self, snapshot, command: cmd.AddUser):
        return replace(snapshot, users=_add(snapshot.users, command.user, "user"))

    def _update_user(self, snapshot, command: cmd.UpdateUser):
        users = _update(snapshot.users, command.user.id, lambda _: command.user, "user")
        return replace(snapshot, users=users)

    def _deactivate_user(self, snapshot, command: cmd.DeactivateUser):
        users = _update(snapshot.users, command.user_id, lambda u: replace(u, is_active=False), "user")
        return replace(snapshot, users=users)

    def _set_current_user(self, snapshot, command: cmd.SetCurrentUser):
        if command.user_id is not None and snapshot.user(command.user_id) is None:
            raise ValidationError(f"user {command.user_id} does not exist")
        return replace(snapshot, current_user_id=command.user_id)

    # ---------- Expenses ----------
    def _add_expense(self, snapshot, command: cmd.AddExpense):
        expense = normalize_expense(command.expense, self.exact_tolerance)
        entry = ActivityEntry(
            id=f"activity-{expense.id}",
            type="expense_added",
            entity_id=expense.id,
            description=f'Added expense "{expense.title}"',
            user_id=expense.created_by,
            amount=expense.total_amount,
            timestamp=expense.created_at,
        )
        return replace(
            snapshot,
            expenses=_add(snapshot.expenses, expense, "expense"),
            activity_feed=self._log_activity(snapshot, entry),
        )

    def _update_expense(self, snapshot, command: cmd.UpdateExpense):
        if snapshot.expense(command.expense.id) is None:
            logger.warning("Ignoring update of unknown expense", extra={"entity_id": command.expense.id})
            return snapshot
        expense = normalize_expense(command.expense, self.exact_tolerance)
        return replace(snapshot, expenses=_update(snapshot.expenses, expense.id, lambda _: expense, "expense"))

    def _delete_expense(self, snapshot, command: cmd.DeleteExpense):
        return replace(snapshot, expenses=_remove(snapshot.expenses, command.expense_id, "expense"))

    def _settle_expense(self, snapshot, command: cmd.SettleExpense):
        # Manual attestation: every participant is marked settled unconditionally
        def settle(expense):
            participants = tuple(replace(p, settled=True) for p in expense.participants)
            return replace(expense, settled=True, participants=participants)

        return replace(snapshot, expenses=_update(snapshot.expenses, command.expense_id, settle, "expense"))

    # ---------- Groups ----------
    def _add_group(self, snapshot, command: cmd.AddGroup):
        group = command.group
        entry = ActivityEntry(
            id=f"activity-{group.id}",
            type="group_created",
            entity_id=group.id,
            description=f'Created group "{group.name}"',
            user_id=group.created_by,
            timestamp=group.created_at,
        )
        return replace(
            snapshot,
            groups=_add(snapshot.groups, group, "group"),
            activity_feed=self._log_activity(snapshot, entry),
        )

    def _update_group(self, snapshot, command: cmd.UpdateGroup):
        return replace(snapshot, groups=_update(snapshot.groups, command.group.id, lambda _: command.group, "group"))

    def _delete_group(self, snapshot, command: cmd.DeleteGroup):
        return replace(snapshot, groups=_remove(snapshot.groups, command.group_id, "group"))

    # ---------- Payments ----------
    def _add_payment(self, snapshot, command: cmd.AddPayment):
        payment = command.payment
        if payment.amount <= 0:
            raise ValidationError("payment amount must be positive")
        entry = ActivityEntry(
            id=f"activity-{payment.id}",
            type="payment_made",
            entity_id=payment.id,
            description=f"Payment from {payment.from_user_id} to {payment.to_user_id}",
            user_id=payment.from_user_id,
            amount=payment.amount,
            timestamp=payment.created_at,
        )
        return replace(
            snapshot,
            payments=_add(snapshot.payments, payment, "payment"),
            activity_feed=self._log_activity(snapshot, entry),
        )

    # ---------- Settlements ----------
    def _add_settlement(self, snapshot, command: cmd.AddSettlement):
        if command.settlement.amount <= 0:
            raise ValidationError("settlement amount must be positive")
        return replace(snapshot, settlements=_add(snapshot.settlements, command.settlement, "settlement"))

    def _update_settlement(self, snapshot, command: cmd.UpdateSettlement):
        new = command.settlement

        def update(current):
            # Only the status (and its completion stamp) may change
            if replace(new, status=current.status, completed_at=current.completed_at) != current:
                raise ValidationError(f"settlement {current.id} can only change status")
            return transition_settlement(current, new.status, new.completed_at)

        return replace(snapshot, settlements=_update(snapshot.settlements, new.id, update, "settlement"))

    def _transition_settlement(self, snapshot, command: cmd.TransitionSettlement):
        status = SettlementStatus(command.status)
        settlements = _update(
            snapshot.settlements,
            command.settlement_id,
            lambda s: transition_settlement(s, status, command.at),
            "settlement",
        )
        return replace(snapshot, settlements=settlements)

    def _delete_settlement(self, snapshot, command: cmd.DeleteSettlement):
        return replace(snapshot, settlements=_remove(snapshot.settlements, command.settlement_id, "settlement"))

    # ---------- Reminders ----------
    def _add_reminder(self, snapshot, command: cmd.AddReminder):
        return replace(snapshot, reminders=_add(snapshot.reminders, command.reminder, "reminder"))

    def _update_reminder(self, snapshot, command: cmd.UpdateReminder):
        reminders = _update(snapshot.reminders, command.reminder.id, lambda _: command.reminder, "reminder")
        return replace(snapshot, reminders=reminders)

    def _delete_reminder(self, snapshot, command: cmd.DeleteReminder):
        return replace(snapshot, reminders=_remove(snapshot.reminders, command.reminder_id, "reminder"))

    def _dismiss_reminder(self, snapshot, command: cmd.DismissReminder):
        reminders = _update(
            snapshot.reminders, command.reminder_id, lambda r: replace(r, status="dismissed"), "reminder"
        )
        return replace(snapshot, reminders=reminders)

    # ---------- Categories ----------
    def _add_category(self, snapshot, command: cmd.AddCategory):
        return replace(snapshot, categories=_add(snapshot.categories, command.category, "category"))

    def _update_category(self, snapshot, command: cmd.UpdateCategory):
        categories = _update(snapshot.categories, command.category.id, lambda _: command.category, "category")
        return replace(snapshot, categories=categories)

    def _delete_category(self, snapshot, command: cmd.DeleteCategory):
        return replace(snapshot, categories=_remove(snapshot.categories, command.category_id, "category"))

    # ---------- Settings ----------
    def _update_settings(self, snapshot, command: cmd.UpdateSettings):
        known = {f.name for f in fields(LedgerSettings)}
        unknown = sorted(set(command.changes) - known)
        if unknown:
            raise ValidationError(f"unknown settings: {', '.join(unknown)}")
        changes = dict(command.changes)
        if "supported_currencies" in changes:
            changes["supported_currencies"] = tuple(changes["supported_currencies"])
        threshold = changes.get("auto_settle_threshold", 0.0)
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or threshold < 0:
            raise ValidationError("auto_settle_threshold must be a non-negative number")
        return replace(snapshot, settings=replace(snapshot.settings, **changes))


_default_reducer = LedgerReducer()


def apply(
    snapshot: LedgerSnapshot,
    command: cmd.Command,
    reducer: Optional[LedgerReducer] = None,
) -> LedgerSnapshot:
    """Apply one command and return the next snapshot"""
    return (reducer or _default_reducer).apply(snapshot, command)
