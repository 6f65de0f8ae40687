"""Snapshot <-> JSON document mapping and command protocol parsing

The persisted document uses camelCase keys:
users, expenses, groups, payments, reminders, settlements, categories,
activityFeed, currentUser, settings.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from splitledger.domain import commands as cmd
from splitledger.domain.exceptions import ValidationError
from splitledger.domain.models import (
    ActivityEntry,
    Category,
    Expense,
    Group,
    LedgerSettings,
    LedgerSnapshot,
    Participant,
    Payment,
    Reminder,
    Settlement,
    SettlementStatus,
    SplitType,
    User,
)


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _parse_day(value: str) -> date:
    # Accept full timestamps as well as plain dates
    return date.fromisoformat(value[:10])


# ---------- Encoders ----------
def user_to_dict(u: User) -> Dict[str, Any]:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "phone": u.phone,
        "avatar": u.avatar,
        "isActive": u.is_active,
        "createdAt": _ts(u.created_at),
    }


def participant_to_dict(p: Participant) -> Dict[str, Any]:
    return {
        "userId": p.user_id,
        "owedAmount": p.owed_amount,
        "paidAmount": p.paid_amount,
        "netAmount": p.net_amount,
        "settled": p.settled,
        "splitType": p.split_type.value,
        "splitValue": p.split_value,
        "inSplit": p.in_split,
    }


def expense_to_dict(e: Expense) -> Dict[str, Any]:
    return {
        "id": e.id,
        "title": e.title,
        "description": e.description,
        "baseAmount": e.base_amount,
        "tax": e.tax,
        "tip": e.tip,
        "totalAmount": e.total_amount,
        "currency": e.currency,
        "category": e.category,
        "date": e.date.isoformat(),
        "splitType": e.split_type.value,
        "participants": [participant_to_dict(p) for p in e.participants],
        "paidBy": list(e.paid_by),
        "groupId": e.group_id,
        "settled": e.settled,
        "tags": list(e.tags),
        "notes": e.notes,
        "createdBy": e.created_by,
        "createdAt": _ts(e.created_at),
        "updatedAt": _ts(e.updated_at),
    }


def settlement_to_dict(s: Settlement) -> Dict[str, Any]:
    return {
        "id": s.id,
        "fromUserId": s.from_user_id,
        "toUserId": s.to_user_id,
        "amount": s.amount,
        "currency": s.currency,
        "status": s.status.value,
        "expenseIds": list(s.expense_ids),
        "suggestedDate": _ts(s.suggested_date),
        "createdAt": _ts(s.created_at),
        "completedAt": _ts(s.completed_at),
    }


def group_to_dict(g: Group) -> Dict[str, Any]:
    return {
        "id": g.id,
        "name": g.name,
        "members": list(g.member_ids),
        "admins": list(g.admin_ids),
        "description": g.description,
        "currency": g.currency,
        "createdBy": g.created_by,
        "createdAt": _ts(g.created_at),
        "isActive": g.is_active,
    }


def payment_to_dict(p: Payment) -> Dict[str, Any]:
    return {
        "id": p.id,
        "fromUserId": p.from_user_id,
        "toUserId": p.to_user_id,
        "amount": p.amount,
        "currency": p.currency,
        "method": p.method,
        "expenseIds": list(p.expense_ids),
        "createdAt": _ts(p.created_at),
    }


def reminder_to_dict(r: Reminder) -> Dict[str, Any]:
    return {
        "id": r.id,
        "fromUserId": r.from_user_id,
        "toUserId": r.to_user_id,
        "amount": r.amount,
        "currency": r.currency,
        "message": r.message,
        "type": r.type,
        "status": r.status,
        "expenseId": r.expense_id,
        "createdAt": _ts(r.created_at),
    }


def category_to_dict(c: Category) -> Dict[str, Any]:
    return {"id": c.id, "name": c.name, "icon": c.icon, "color": c.color}


def activity_to_dict(a: ActivityEntry) -> Dict[str, Any]:
    return {
        "id": a.id,
        "type": a.type,
        "entityId": a.entity_id,
        "description": a.description,
        "userId": a.user_id,
        "amount": a.amount,
        "timestamp": _ts(a.timestamp),
    }


SETTINGS_KEYS = {
    "default_currency": "defaultCurrency",
    "supported_currencies": "supportedCurrencies",
    "auto_settle_threshold": "autoSettleThreshold",
    "theme": "theme",
    "language": "language",
    "notifications_enabled": "notificationsEnabled",
    "backup_enabled": "backupEnabled",
}


def settings_to_dict(s: LedgerSettings) -> Dict[str, Any]:
    out = {key: getattr(s, name) for name, key in SETTINGS_KEYS.items()}
    out["supportedCurrencies"] = list(s.supported_currencies)
    return out


def snapshot_to_document(snapshot: LedgerSnapshot) -> Dict[str, Any]:
    """Persistable document; derived views and transient flags are never included"""
    return {
        "users": [user_to_dict(u) for u in snapshot.users],
        "expenses": [expense_to_dict(e) for e in snapshot.expenses],
        "groups": [group_to_dict(g) for g in snapshot.groups],
        "payments": [payment_to_dict(p) for p in snapshot.payments],
        "reminders": [reminder_to_dict(r) for r in snapshot.reminders],
        "settlements": [settlement_to_dict(s) for s in snapshot.settlements],
        "categories": [category_to_dict(c) for c in snapshot.categories],
        "activityFeed": [activity_to_dict(a) for a in snapshot.activity_feed],
        "currentUser": snapshot.current_user_id,
        "settings": settings_to_dict(snapshot.settings),
    }


# ---------- Decoders ----------
def user_from_dict(d: Dict[str, Any]) -> User:
    return User(
        id=d["id"],
        name=d["name"],
        email=d.get("email", ""),
        phone=d.get("phone"),
        avatar=d.get("avatar"),
        is_active=d.get("isActive", True),
        created_at=_parse_ts(d.get("createdAt")),
    )


def participant_from_dict(d: Dict[str, Any]) -> Participant:
    owed = float(d.get("owedAmount", 0.0))
    return Participant(
        user_id=d["userId"],
        owed_amount=owed,
        paid_amount=float(d.get("paidAmount", 0.0)),
        net_amount=float(d.get("netAmount", -owed)),
        settled=d.get("settled", False),
        split_type=SplitType(d.get("splitType", "equal")),
        split_value=d.get("splitValue"),
        in_split=d.get("inSplit", True),
    )


def expense_from_dict(d: Dict[str, Any]) -> Expense:
    base = float(d.get("baseAmount", d.get("totalAmount", 0.0)))
    tax = float(d.get("tax", 0.0))
    tip = float(d.get("tip", 0.0))
    return Expense(
        id=d["id"],
        title=d["title"],
        description=d.get("description", ""),
        base_amount=base,
        tax=tax,
        tip=tip,
        total_amount=float(d.get("totalAmount", base + tax + tip)),
        currency=d.get("currency", "USD"),
        category=d.get("category"),
        date=_parse_day(d["date"]),
        split_type=SplitType(d.get("splitType", "equal")),
        participants=tuple(participant_from_dict(p) for p in d["participants"]),
        paid_by=tuple(d["paidBy"]),
        group_id=d.get("groupId"),
        settled=d.get("settled", False),
        tags=tuple(d.get("tags", ())),
        notes=d.get("notes"),
        created_by=d.get("createdBy"),
        created_at=_parse_ts(d.get("createdAt")),
        updated_at=_parse_ts(d.get("updatedAt")),
    )


def settlement_from_dict(d: Dict[str, Any]) -> Settlement:
    return Settlement(
        id=d["id"],
        from_user_id=d["fromUserId"],
        to_user_id=d["toUserId"],
        amount=float(d["amount"]),
        currency=d.get("currency", "USD"),
        status=SettlementStatus(d.get("status", "suggested")),
        expense_ids=tuple(d.get("expenseIds", ())),
        suggested_date=_parse_ts(d.get("suggestedDate")),
        created_at=_parse_ts(d.get("createdAt")),
        completed_at=_parse_ts(d.get("completedAt")),
    )


def group_from_dict(d: Dict[str, Any]) -> Group:
    return Group(
        id=d["id"],
        name=d["name"],
        member_ids=tuple(d.get("members", ())),
        admin_ids=tuple(d.get("admins", ())),
        description=d.get("description", ""),
        currency=d.get("currency", "USD"),
        created_by=d.get("createdBy"),
        created_at=_parse_ts(d.get("createdAt")),
        is_active=d.get("isActive", True),
    )


def payment_from_dict(d: Dict[str, Any]) -> Payment:
    return Payment(
        id=d["id"],
        from_user_id=d["fromUserId"],
        to_user_id=d["toUserId"],
        amount=float(d["amount"]),
        currency=d.get("currency", "USD"),
        method=d.get("method", "cash"),
        expense_ids=tuple(d.get("expenseIds", ())),
        created_at=_parse_ts(d.get("createdAt")),
    )


def reminder_from_dict(d: Dict[str, Any]) -> Reminder:
    return Reminder(
        id=d["id"],
        from_user_id=d["fromUserId"],
        to_user_id=d["toUserId"],
        amount=float(d["amount"]),
        currency=d.get("currency", "USD"),
        message=d.get("message", ""),
        type=d.get("type", "gentle"),
        status=d.get("status", "pending"),
        expense_id=d.get("expenseId"),
        created_at=_parse_ts(d.get("createdAt")),
    )


def category_from_dict(d: Dict[str, Any]) -> Category:
    return Category(id=d["id"], name=d["name"], icon=d.get("icon", ""), color=d.get("color", ""))


def activity_from_dict(d: Dict[str, Any]) -> ActivityEntry:
    return ActivityEntry(
        id=d["id"],
        type=d["type"],
        entity_id=d["entityId"],
        description=d.get("description", ""),
        user_id=d.get("userId"),
        amount=d.get("amount"),
        timestamp=_parse_ts(d.get("timestamp")),
    )


class SettingsChanges(BaseModel):
    """Partial settings update in document (camelCase) form; absent keys stay unchanged"""

    model_config = ConfigDict(extra="forbid")

    default_currency: str = Field(None, alias="defaultCurrency", min_length=1)
    supported_currencies: List[str] = Field(None, alias="supportedCurrencies")
    auto_settle_threshold: float = Field(None, alias="autoSettleThreshold", ge=0)
    theme: str = Field(None, alias="theme")
    language: str = Field(None, alias="language")
    notifications_enabled: bool = Field(None, alias="notificationsEnabled")
    backup_enabled: bool = Field(None, alias="backupEnabled")


def settings_changes_from_dict(d: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate camelCase settings keys and translate them to LedgerSettings field names.

    Raises:
        ValidationError: Unknown key, explicit null or a value of the wrong type
    """
    try:
        changes = SettingsChanges.model_validate(d).model_dump(exclude_unset=True)
    except PydanticValidationError as e:
        problems = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        raise ValidationError(f"invalid settings: {problems}") from e
    if "supported_currencies" in changes:
        changes["supported_currencies"] = tuple(changes["supported_currencies"])
    return changes


def settings_from_dict(d: Dict[str, Any]) -> LedgerSettings:
    return LedgerSettings(**settings_changes_from_dict(d))


def snapshot_from_document(doc: Dict[str, Any]) -> LedgerSnapshot:
    """
    Rebuild a snapshot from a persisted document.

    Raises:
        KeyError, ValueError, TypeError: Document is malformed
        ValidationError: Stored settings fail validation
    """
    return LedgerSnapshot(
        users=tuple(user_from_dict(u) for u in doc.get("users", [])),
        expenses=tuple(expense_from_dict(e) for e in doc.get("expenses", [])),
        groups=tuple(group_from_dict(g) for g in doc.get("groups", [])),
        payments=tuple(payment_from_dict(p) for p in doc.get("payments", [])),
        reminders=tuple(reminder_from_dict(r) for r in doc.get("reminders", [])),
        settlements=tuple(settlement_from_dict(s) for s in doc.get("settlements", [])),
        categories=tuple(category_from_dict(c) for c in doc.get("categories", [])),
        activity_feed=tuple(activity_from_dict(a) for a in doc.get("activityFeed", [])),
        current_user_id=doc.get("currentUser"),
        settings=settings_from_dict(doc.get("settings", {})),
    )


# ---------- Command protocol ----------
_ENTITY_DECODERS = {
    cmd.AddUser: ("user", user_from_dict),
    cmd.UpdateUser: ("user", user_from_dict),
    cmd.AddExpense: ("expense", expense_from_dict),
    cmd.UpdateExpense: ("expense", expense_from_dict),
    cmd.AddGroup: ("group", group_from_dict),
    cmd.UpdateGroup: ("group", group_from_dict),
    cmd.AddPayment: ("payment", payment_from_dict),
    cmd.AddSettlement: ("settlement", settlement_from_dict),
    cmd.UpdateSettlement: ("settlement", settlement_from_dict),
    cmd.AddReminder: ("reminder", reminder_from_dict),
    cmd.UpdateReminder: ("reminder", reminder_from_dict),
    cmd.AddCategory: ("category", category_from_dict),
    cmd.UpdateCategory: ("category", category_from_dict),
}

_ID_COMMANDS = {
    cmd.DeactivateUser: "user_id",
    cmd.DeleteExpense: "expense_id",
    cmd.SettleExpense: "expense_id",
    cmd.DeleteGroup: "group_id",
    cmd.DeleteSettlement: "settlement_id",
    cmd.DeleteReminder: "reminder_id",
    cmd.DismissReminder: "reminder_id",
    cmd.DeleteCategory: "category_id",
}


def parse_command(message: Dict[str, Any]) -> cmd.Command:
    """
    Build a typed command from a wire message {"kind": ..., "payload": ...}.

    Raises:
        ValidationError: Unknown kind or malformed payload
    """
    kind = message.get("kind")
    command_type = cmd.COMMAND_TYPES.get(kind)
    if command_type is None:
        raise ValidationError(f"unknown command kind: {kind}")
    payload = message.get("payload")

    try:
        if command_type in _ENTITY_DECODERS:
            field_name, decode = _ENTITY_DECODERS[command_type]
            return command_type(**{field_name: decode(payload)})
        if command_type in _ID_COMMANDS:
            if not isinstance(payload, str):
                raise TypeError("payload must be an id string")
            return command_type(**{_ID_COMMANDS[command_type]: payload})
        if command_type is cmd.SetCurrentUser:
            return cmd.SetCurrentUser(user_id=payload)
        if command_type is cmd.TransitionSettlement:
            kwargs = {
                "settlement_id": payload["settlementId"],
                "status": SettlementStatus(payload["status"]),
            }
            if payload.get("at"):
                kwargs["at"] = _parse_ts(payload["at"])
            return cmd.TransitionSettlement(**kwargs)
        return cmd.UpdateSettings(changes=settings_changes_from_dict(payload))
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise ValidationError(f"malformed {kind} payload: {e}") from e
