"""Domain models - immutable dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple


class SplitType(str, Enum):
    """Rule used to divide an expense total among participants"""

    EQUAL = "equal"
    PERCENTAGE = "percentage"
    EXACT = "exact"
    SHARES = "shares"
    ITEMIZED = "itemized"


class SettlementStatus(str, Enum):
    """suggested -> agreed -> completed, or declined"""

    SUGGESTED = "suggested"
    AGREED = "agreed"
    COMPLETED = "completed"
    DECLINED = "declined"


@dataclass(frozen=True)
class User:
    """Ledger member, referenced by id everywhere else"""

    id: str
    name: str
    email: str = ""
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SplitDeclaration:
    """Caller input for one participant before amounts are computed"""

    user_id: str
    split_type: SplitType = SplitType.EQUAL
    split_value: Optional[float] = None  # percentage, exact amount or share count
    owed_amount: Optional[float] = None  # only read for itemized splits


@dataclass(frozen=True)
class Participant:
    """One user's position inside a single expense"""

    user_id: str
    owed_amount: float
    net_amount: float  # negative = owes, positive = is owed
    paid_amount: float = 0.0
    settled: bool = False
    split_type: SplitType = SplitType.EQUAL
    split_value: Optional[float] = None
    in_split: bool = True  # False for a payer who takes no share of the expense


@dataclass(frozen=True)
class Expense:
    """A monetary event shared between participants"""

    id: str
    title: str
    base_amount: float
    total_amount: float
    participants: Tuple[Participant, ...]
    paid_by: Tuple[str, ...]
    date: date
    tax: float = 0.0
    tip: float = 0.0
    currency: str = "USD"
    split_type: SplitType = SplitType.EQUAL
    settled: bool = False
    category: Optional[str] = None
    group_id: Optional[str] = None
    description: str = ""
    notes: Optional[str] = None
    tags: Tuple[str, ...] = ()
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def participant(self, user_id: str) -> Optional[Participant]:
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None


@dataclass(frozen=True)
class Settlement:
    """Proposed or executed payment from one user to another"""

    id: str
    from_user_id: str
    to_user_id: str
    amount: float
    currency: str = "USD"
    status: SettlementStatus = SettlementStatus.SUGGESTED
    expense_ids: Tuple[str, ...] = ()
    suggested_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class Group:
    """Named set of users sharing expenses"""

    id: str
    name: str
    member_ids: Tuple[str, ...] = ()
    admin_ids: Tuple[str, ...] = ()
    description: str = ""
    currency: str = "USD"
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    is_active: bool = True


@dataclass(frozen=True)
class Payment:
    """Recorded transfer of money between two users"""

    id: str
    from_user_id: str
    to_user_id: str
    amount: float
    currency: str = "USD"
    method: str = "cash"
    expense_ids: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Reminder:
    """Nudge from a creditor to a debtor"""

    id: str
    from_user_id: str
    to_user_id: str
    amount: float
    currency: str = "USD"
    message: str = ""
    type: str = "gentle"  # gentle | urgent | overdue
    status: str = "pending"  # pending | acknowledged | dismissed
    expense_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    icon: str = ""
    color: str = ""


@dataclass(frozen=True)
class ActivityEntry:
    """Single line of the activity feed"""

    id: str
    type: str  # expense_added | group_created | payment_made
    entity_id: str
    description: str
    user_id: Optional[str] = None
    amount: Optional[float] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class LedgerSettings:
    """User-facing preferences stored in the snapshot"""

    default_currency: str = "USD"
    supported_currencies: Tuple[str, ...] = ("USD", "EUR", "GBP", "INR")
    auto_settle_threshold: float = 1.0
    theme: str = "light"
    language: str = "en"
    notifications_enabled: bool = True
    backup_enabled: bool = False


@dataclass(frozen=True)
class LedgerSnapshot:
    """Complete immutable state of the ledger at one point in time"""

    users: Tuple[User, ...] = ()
    expenses: Tuple[Expense, ...] = ()
    groups: Tuple[Group, ...] = ()
    payments: Tuple[Payment, ...] = ()
    reminders: Tuple[Reminder, ...] = ()
    settlements: Tuple[Settlement, ...] = ()
    categories: Tuple[Category, ...] = ()
    activity_feed: Tuple[ActivityEntry, ...] = ()
    current_user_id: Optional[str] = None
    settings: LedgerSettings = field(default_factory=LedgerSettings)

    def user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def expense(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)


@dataclass(frozen=True)
class DebtSummary:
    """Derived per-user balance view, never persisted"""

    user_id: str
    total_owed: float = 0.0  # others owe this user
    total_owing: float = 0.0  # this user owes others
    net_amount: float = 0.0
    expense_count: int = 0
    last_activity: Optional[date] = None


@dataclass(frozen=True)
class CounterpartyDebt:
    """Outstanding amount between a user and one other user"""

    user_id: str
    amount: float
    expense_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UserDebts:
    """owes: people this user must pay; owed: people who must pay this user"""

    owes: Tuple[CounterpartyDebt, ...] = ()
    owed: Tuple[CounterpartyDebt, ...] = ()
