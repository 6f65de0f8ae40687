"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from splitledger.domain.models import SettlementStatus


class CommandRequest(BaseModel):
    """Body for POST /v1/commands"""

    kind: str = Field(..., min_length=1, description="Command name, e.g. ADD_EXPENSE")
    payload: Any = Field(None, description="Entity document or entity id")


class CommandResponse(BaseModel):
    """Response for POST /v1/commands"""

    kind: str
    applied: bool
    sync_status: str


class DebtSummarySchema(BaseModel):
    """Per-user balance derived from unsettled expenses"""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    total_owed: float
    total_owing: float
    net_amount: float
    expense_count: int
    last_activity: Optional[date] = None


class BalancesResponse(BaseModel):
    """Response for GET /v1/balances"""

    balances: List[DebtSummarySchema]


class CounterpartyDebtSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    amount: float
    expense_ids: List[str]


class UserDebtsResponse(BaseModel):
    """Response for GET /v1/users/{user_id}/debts"""

    user_id: str
    owes: List[CounterpartyDebtSchema]
    owed: List[CounterpartyDebtSchema]


class GroupBalanceResponse(BaseModel):
    """Response for GET /v1/groups/{group_id}/balances"""

    group_id: str
    balances: Dict[str, float]


class SettlementSchema(BaseModel):
    """Proposed or recorded settlement"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    from_user_id: str
    to_user_id: str
    amount: float
    currency: str
    status: SettlementStatus
    expense_ids: List[str]
    suggested_date: Optional[datetime] = None


class SettlementListResponse(BaseModel):
    settlements: List[SettlementSchema]


class OptimizeRequest(BaseModel):
    """Body for POST /v1/settlements/optimize"""

    user_ids: List[str] = Field(..., min_length=1, description="Users to net against each other")


class StatusResponse(BaseModel):
    """Transient store state, never persisted"""

    is_loading: bool
    sync_status: str
    last_error: Optional[str] = None


class ReminderSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    from_user_id: str
    to_user_id: str
    amount: float
    currency: str
    message: str
    type: str
    expense_id: Optional[str] = None
    created_at: Optional[datetime] = None


class ReminderListResponse(BaseModel):
    """Response for GET /v1/users/{user_id}/reminders"""

    reminders: List[ReminderSchema]
