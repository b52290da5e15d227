from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class ShiftOpenRequest(BaseModel):
    opening_balance: Decimal


class ShiftCloseRequest(BaseModel):
    actual_balance: Decimal


class ShiftForceCloseRequest(BaseModel):
    actual_balance: Decimal | None = None
    reason: str | None = None


class ShiftSummary(BaseModel):
    id: str
    tenant_id: str
    user_id: str
    status: str
    opening_balance: Decimal
    expected_balance: Decimal | None = None
    actual_balance: Decimal | None = None
    opened_at: datetime
    closed_at: datetime | None = None
    closed_by_user_id: str | None = None
    forced_by_user_id: str | None = None
    force_close_reason: str | None = None


class ShiftResponse(BaseModel):
    shift: ShiftSummary


class RunningTotalsResponse(BaseModel):
    opening_balance: Decimal
    total_sales: Decimal
    sale_count: int
    total_expenses: Decimal
    expense_count: int
    expected_balance: Decimal


class CurrentShiftResponse(BaseModel):
    shift: ShiftSummary | None
    running_totals: RunningTotalsResponse | None = None


class ReconciliationResponse(BaseModel):
    opening_balance: Decimal
    total_sales: Decimal
    total_expenses: Decimal
    expected: Decimal
    actual: Decimal
    difference: Decimal
    status: str


class ShiftCloseResponse(BaseModel):
    shift: ShiftSummary
    reconciliation: ReconciliationResponse


class MessageResponse(BaseModel):
    message: str


class UserRef(BaseModel):
    id: str
    username: str
    name: str | None = None


class ShiftHistoryItem(ShiftSummary):
    difference: Decimal | None = None
    reconciliation_status: str | None = None
    user: UserRef | None = None


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int


class ShiftListResponse(BaseModel):
    data: list[ShiftHistoryItem]
    meta: PageMeta


class OpenShiftItem(BaseModel):
    id: str
    opened_at: datetime
    opening_balance: Decimal
    user: UserRef


class OpenShiftListResponse(BaseModel):
    data: list[OpenShiftItem]


class CloseAllShiftsResponse(BaseModel):
    closed: int
    shift_ids: list[str]


class ExpenseSummary(BaseModel):
    id: str
    shift_id: str
    user_id: str
    type: str
    amount: Decimal
    description: str | None = None
    created_at: datetime
