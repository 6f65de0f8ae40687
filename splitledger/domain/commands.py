"""Commands accepted by the state transition function

Each command is a frozen dataclass tagged with a `kind` matching the wire
protocol `{"kind": ..., "payload": ...}`.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Union

from splitledger.domain.models import (
    Category,
    Expense,
    Group,
    Payment,
    Reminder,
    Settlement,
    SettlementStatus,
    User,
)


@dataclass(frozen=True)
class AddUser:
    kind: ClassVar[str] = "ADD_USER"
    user: User


@dataclass(frozen=True)
class UpdateUser:
    kind: ClassVar[str] = "UPDATE_USER"
    user: User


@dataclass(frozen=True)
class DeactivateUser:
    kind: ClassVar[str] = "DEACTIVATE_USER"
    user_id: str


@dataclass(frozen=True)
class SetCurrentUser:
    kind: ClassVar[str] = "SET_CURRENT_USER"
    user_id: Optional[str]


@dataclass(frozen=True)
class AddExpense:
    kind: ClassVar[str] = "ADD_EXPENSE"
    expense: Expense


@dataclass(frozen=True)
class UpdateExpense:
    kind: ClassVar[str] = "UPDATE_EXPENSE"
    expense: Expense


@dataclass(frozen=True)
class DeleteExpense:
    kind: ClassVar[str] = "DELETE_EXPENSE"
    expense_id: str


@dataclass(frozen=True)
class SettleExpense:
    kind: ClassVar[str] = "SETTLE_EXPENSE"
    expense_id: str


@dataclass(frozen=True)
class AddGroup:
    kind: ClassVar[str] = "ADD_GROUP"
    group: Group


@dataclass(frozen=True)
class UpdateGroup:
    kind: ClassVar[str] = "UPDATE_GROUP"
    group: Group


@dataclass(frozen=True)
class DeleteGroup:
    kind: ClassVar[str] = "DELETE_GROUP"
    group_id: str


@dataclass(frozen=True)
class AddPayment:
    kind: ClassVar[str] = "ADD_PAYMENT"
    payment: Payment


@dataclass(frozen=True)
class AddSettlement:
    kind: ClassVar[str] = "ADD_SETTLEMENT"
    settlement: Settlement


@dataclass(frozen=True)
class UpdateSettlement:
    kind: ClassVar[str] = "UPDATE_SETTLEMENT"
    settlement: Settlement


@dataclass(frozen=True)
class TransitionSettlement:
    kind: ClassVar[str] = "TRANSITION_SETTLEMENT"
    settlement_id: str
    status: SettlementStatus
    at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class DeleteSettlement:
    kind: ClassVar[str] = "DELETE_SETTLEMENT"
    settlement_id: str


@dataclass(frozen=True)
class AddReminder:
    kind: ClassVar[str] = "ADD_REMINDER"
    reminder: Reminder


@dataclass(frozen=True)
class UpdateReminder:
    kind: ClassVar[str] = "UPDATE_REMINDER"
    reminder: Reminder


@dataclass(frozen=True)
class DeleteReminder:
    kind: ClassVar[str] = "DELETE_REMINDER"
    reminder_id: str


@dataclass(frozen=True)
class DismissReminder:
    kind: ClassVar[str] = "DISMISS_REMINDER"
    reminder_id: str


@dataclass(frozen=True)
class AddCategory:
    kind: ClassVar[str] = "ADD_CATEGORY"
    category: Category


@dataclass(frozen=True)
class UpdateCategory:
    kind: ClassVar[str] = "UPDATE_CATEGORY"
    category: Category


@dataclass(frozen=True)
class DeleteCategory:
    kind: ClassVar[str] = "DELETE_CATEGORY"
    category_id: str


@dataclass(frozen=True)
class UpdateSettings:
    """Partial settings update, keys are LedgerSettings field names"""

    kind: ClassVar[str] = "UPDATE_SETTINGS"
    changes: Dict[str, Any]


Command = Union[
    AddUser,
    UpdateUser,
    DeactivateUser,
    SetCurrentUser,
    AddExpense,
    UpdateExpense,
    DeleteExpense,
    SettleExpense,
    AddGroup,
    UpdateGroup,
    DeleteGroup,
    AddPayment,
    AddSettlement,
    UpdateSettlement,
    TransitionSettlement,
    DeleteSettlement,
    AddReminder,
    UpdateReminder,
    DeleteReminder,
    DismissReminder,
    AddCategory,
    UpdateCategory,
    DeleteCategory,
    UpdateSettings,
]

COMMAND_TYPES = {cls.kind: cls for cls in Command.__args__}
